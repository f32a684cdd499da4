from ..config.session_config import SessionConfig, RedisSessionConfig


class SessionStoreFactory:
    """
    会话存储工厂类
    用于根据配置创建不同类型的会话存储实例
    支持创建Redis存储和内存存储
    """

    @staticmethod
    def create_store(config: SessionConfig):
        """
        根据配置创建会话存储实例的工厂方法

        Args:
            config: 会话配置对象,可以是RedisSessionConfig或SessionConfig类型

        Returns:
            根据配置返回对应的存储实例:
            - 如果是RedisSessionConfig配置,返回RedisSessionStore实例
            - 如果是SessionConfig配置,返回MemorySessionStore实例
        """
        if isinstance(config, RedisSessionConfig):
            # 如果是Redis配置,则创建Redis存储
            from .redis_store import RedisSessionStore
            return RedisSessionStore(
                redis_url=config.url,  # Redis连接URL
                ttl=config.ttl,  # 会话过期时间
                key_prefix=config.key_prefix  # 键前缀
            )
        else:
            # 默认创建内存存储
            from .memory import MemorySessionStore
            return MemorySessionStore(
                capacity=config.capacity,  # 最大会话数
                ttl=config.ttl  # 会话过期时间
            )
