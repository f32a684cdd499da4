from .factory import SessionStoreFactory
from .memory import MemorySessionStore
from .middleware import SessionMiddleware
from .session import Session

__all__ = ["MemorySessionStore", "Session", "SessionMiddleware", "SessionStoreFactory"]
