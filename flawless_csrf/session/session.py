from typing import Any, Dict, Optional

class Session:
    """单个用户会话的数据容器

    属性:
        session_id (str): 会话ID
        data (dict): 会话数据
        is_new (bool): 是否为本次请求新建的会话
        modified (bool): 本次请求中是否被修改过
        destroyed (bool): 是否已被销毁
    """
    def __init__(self, session_id: str, data: Optional[Dict[str, Any]] = None, is_new: bool = False):
        self.session_id = session_id
        self.data = dict(data or {})
        self.is_new = is_new
        self.modified = False
        self.destroyed = False

    def has(self, key: str) -> bool:
        """判断会话中是否存在指定键"""
        return key in self.data

    def get(self, key: str, default: Any = None) -> Any:
        """获取会话值,不存在时返回default"""
        return self.data.get(key, default)

    def set(self, key: str, value: Any):
        """设置会话值"""
        if self.destroyed:
            raise RuntimeError("Session has been destroyed")
        self.data[key] = value
        self.modified = True

    def delete(self, key: str):
        """删除会话值"""
        if key in self.data:
            del self.data[key]
            self.modified = True

    def clear(self):
        """清空会话数据但保留会话"""
        if self.data:
            self.data.clear()
            self.modified = True

    def destroy(self):
        """销毁会话,请求结束后会从存储中删除"""
        self.data.clear()
        self.destroyed = True
        self.modified = True

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __repr__(self) -> str:
        return f"Session(id={self.session_id[:8]}..., keys={list(self.data)})"
