"""FlawlessCSRF: per-session CSRF tokens for async ASGI apps."""

from .app import FlawlessApp
from .config import CSRFConfig, RedisSessionConfig, SessionConfig, Settings
from .errors import APIError, CSRFError
from .middleware import CSRFMiddleware, csrf, csrf_protect
from .requests import AsyncRequest
from .security import CSRFGuard, CSRFToken, TokenRecord
from .session import MemorySessionStore, Session, SessionMiddleware, SessionStoreFactory

__version__ = "0.1"

__all__ = [
    "APIError",
    "AsyncRequest",
    "CSRFConfig",
    "CSRFError",
    "CSRFGuard",
    "CSRFMiddleware",
    "CSRFToken",
    "FlawlessApp",
    "MemorySessionStore",
    "RedisSessionConfig",
    "Session",
    "SessionConfig",
    "SessionMiddleware",
    "SessionStoreFactory",
    "Settings",
    "TokenRecord",
    "csrf",
    "csrf_protect",
]
