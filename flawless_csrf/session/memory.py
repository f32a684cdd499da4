# 导入所需的标准库
import time  # 用于时间相关操作
import asyncio  # 用于异步编程
import logging  # 用于日志记录
from typing import Optional, Any, Dict  # 类型提示
from collections import OrderedDict  # 有序字典数据结构

class SessionItem:
    """会话项类,用于存储会话数据和相关元数据"""
    def __init__(self, data: Dict[str, Any], expire_at: Optional[float] = None):
        self.data = data  # 会话数据
        self.expire_at = expire_at  # 过期时间戳
        self.created_at = time.time()  # 创建时间戳

class MemorySessionStore:
    """进程内存会话存储,按最近使用顺序淘汰"""
    def __init__(self,
                 capacity: int = 10000,  # 最大会话数
                 ttl: int = 7200,  # 会话空闲过期时间(秒)
                 logger: Optional[logging.Logger] = None):  # 日志记录器
        self.sessions: "OrderedDict[str, SessionItem]" = OrderedDict()  # 使用OrderedDict存储会话
        self.capacity = capacity  # 存储容量
        self.ttl = ttl  # 生存时间
        self._lock = asyncio.Lock()  # 异步锁
        self.logger = logger or logging.getLogger(__name__)  # 日志记录器
        self._stats = {  # 统计信息
            'hits': 0,
            'misses': 0,
            'evictions': 0
        }

    async def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        """
        加载会话数据
        :param session_id: 会话ID
        :return: 会话数据,如果不存在或已过期则返回None
        """
        async with self._lock:
            item = self.sessions.get(session_id)
            if item is None:
                self._stats['misses'] += 1
                return None

            # 检查是否过期
            if item.expire_at and time.time() > item.expire_at:
                self.sessions.pop(session_id)
                self._stats['misses'] += 1
                self.logger.debug("Session expired in memory store")
                return None

            self._stats['hits'] += 1
            # 访问即刷新空闲过期时间
            if self.ttl:
                item.expire_at = time.time() + self.ttl
            # 将访问的项移到末尾(最近使用)
            self.sessions.move_to_end(session_id)
            return dict(item.data)

    async def save(self, session_id: str, data: Dict[str, Any]):
        """
        保存会话数据,每次保存都会刷新过期时间
        :param session_id: 会话ID
        :param data: 会话数据
        """
        async with self._lock:
            expire_at = time.time() + self.ttl if self.ttl else None
            if session_id in self.sessions:
                self.sessions.move_to_end(session_id)
            self.sessions[session_id] = SessionItem(dict(data), expire_at)
            self._cleanup()

    async def delete(self, session_id: str):
        """删除会话"""
        async with self._lock:
            self.sessions.pop(session_id, None)

    def _cleanup(self):
        """清理过期和超出容量的会话"""
        current_time = time.time()

        # 清理过期项
        expired = [
            k for k, v in self.sessions.items()
            if v.expire_at and current_time > v.expire_at
        ]
        for k in expired:
            self.sessions.pop(k)

        # 清理超出容量的项
        while len(self.sessions) > self.capacity:
            self.sessions.popitem(last=False)
            self._stats['evictions'] += 1

    async def clear(self):
        """清空所有会话"""
        async with self._lock:
            self.sessions.clear()

    def get_stats(self) -> Dict[str, Any]:
        """获取存储统计信息"""
        return {
            **self._stats,
            'size': len(self.sessions),
            'capacity': self.capacity,
            'ttl': self.ttl
        }

    async def close(self):
        """内存存储无需释放资源"""
        await self.clear()
