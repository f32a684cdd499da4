import redis.asyncio as aioredis  # 导入异步Redis客户端
from typing import Optional, Any, Dict  # 导入类型提示相关的类型
import pickle  # 导入序列化/反序列化库
import logging  # 导入日志模块

# 获取logger实例
logger = logging.getLogger(__name__)

class RedisSessionStore:
    """Redis会话存储类,提供异步的会话读写接口"""

    def __init__(self, redis_url: str = "redis://localhost:6379",
                 ttl: int = 7200,
                 key_prefix: str = "session:",
                 client: Optional[aioredis.Redis] = None):
        """
        初始化Redis会话存储
        Args:
            redis_url: Redis连接URL,默认为localhost:6379
            ttl: 会话过期时间(秒),默认2小时
            key_prefix: 会话键前缀
            client: 已创建的Redis客户端,为None时在connect中创建
        """
        self.redis_url = redis_url
        self.ttl = ttl
        self.key_prefix = key_prefix
        self._redis: Optional[aioredis.Redis] = client  # Redis客户端实例
        # 存储统计信息
        self._stats = {
            'hits': 0,    # 命中次数
            'misses': 0,  # 未命中次数
            'errors': 0   # 错误次数
        }

    async def connect(self):
        """
        建立Redis连接
        Raises:
            Exception: Redis连接失败时抛出异常
        """
        if self._redis is not None:
            return
        try:
            self._redis = aioredis.from_url(self.redis_url)
            await self._redis.ping()
            logger.info(f"Connected to Redis at {self.redis_url}")
        except Exception as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    async def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        """
        加载会话数据
        Args:
            session_id: 会话ID
        Returns:
            dict: 会话数据,如果不存在则返回None
        """
        await self.connect()
        try:
            if self.ttl:
                # 读取的同时刷新过期时间
                value = await self._redis.getex(self._key(session_id), ex=self.ttl)
            else:
                value = await self._redis.get(self._key(session_id))
        except Exception as e:
            self._stats['errors'] += 1
            logger.error(f"Redis get error: {e}")
            raise
        if value:
            self._stats['hits'] += 1
            return pickle.loads(value)  # 反序列化会话数据
        self._stats['misses'] += 1
        return None

    async def save(self, session_id: str, data: Dict[str, Any]):
        """
        保存会话数据
        Args:
            session_id: 会话ID
            data: 会话数据
        """
        await self.connect()
        try:
            pickled_value = pickle.dumps(dict(data))  # 序列化值
            await self._redis.set(self._key(session_id), pickled_value, ex=self.ttl or None)
        except Exception as e:
            self._stats['errors'] += 1
            logger.error(f"Redis set error: {e}")
            raise

    async def delete(self, session_id: str):
        """
        删除会话
        Args:
            session_id: 要删除的会话ID
        """
        await self.connect()
        try:
            await self._redis.delete(self._key(session_id))
        except Exception as e:
            self._stats['errors'] += 1
            logger.error(f"Redis delete error: {e}")
            raise

    def get_stats(self):
        """
        获取存储统计信息
        Returns:
            dict: 包含命中次数、未命中次数、错误次数和命中率的统计信息
        """
        total = self._stats['hits'] + self._stats['misses']
        hit_rate = self._stats['hits'] / total if total > 0 else 0
        return {
            **self._stats,
            'hit_rate': f"{hit_rate:.2%}"  # 格式化命中率为百分比
        }

    async def close(self):
        """关闭Redis连接"""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
