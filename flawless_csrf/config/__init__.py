from .session_config import RedisSessionConfig, SessionConfig
from .settings import CSRFConfig, Settings

__all__ = ["CSRFConfig", "RedisSessionConfig", "SessionConfig", "Settings"]
