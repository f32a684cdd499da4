# 导入所需的Python标准库
from dataclasses import dataclass
from typing import Optional

@dataclass
class SessionConfig:
    """会话配置的基类

    定义了基本的会话参数,包括存储类型、容量、TTL(生存时间)以及会话cookie属性
    """
    type: str = "memory"  # 存储类型,默认为进程内存
    capacity: int = 10000  # 最多保存的会话数
    ttl: int = 7200  # 会话空闲过期时间,默认7200秒(2小时)
    cookie_name: str = "session_id"  # 会话cookie名称
    cookie_path: str = "/"  # cookie作用路径
    cookie_secure: bool = False  # 是否仅通过HTTPS发送
    cookie_samesite: str = "lax"  # SameSite策略

@dataclass
class RedisSessionConfig(SessionConfig):
    """Redis会话配置类

    继承自SessionConfig,添加了Redis特有的连接参数
    """
    type: str = "redis"  # 指定存储类型为redis
    host: str = "localhost"  # Redis服务器地址,默认本地
    port: int = 6379  # Redis端口号,默认6379
    password: Optional[str] = None  # Redis密码,可选
    db: int = 0  # Redis数据库编号,默认0号库
    key_prefix: str = "session:"  # 会话键前缀

    @property
    def url(self) -> str:
        """生成Redis连接URL

        Returns:
            str: 标准格式的Redis连接URL
        """
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"
