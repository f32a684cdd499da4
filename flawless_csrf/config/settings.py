# 导入所需的Python标准库
from functools import lru_cache  # 用于缓存函数结果
from typing import Any, Dict, Mapping, Optional, Tuple, Union  # 用于类型提示
import os  # 用于获取环境变量
import yaml  # 用于解析YAML配置文件
from dataclasses import dataclass, field, fields  # 用于创建数据类

# 导入会话配置类
from .session_config import RedisSessionConfig, SessionConfig

# 外部配置中可能出现的键名别名(驼峰写法 -> 字段名)
_CSRF_KEY_ALIASES = {
    "tokenLength": "token_length",
    "name": "field_name",
    "sessionKey": "session_key",
    "headerName": "header_name",
    "checkBodyAndHeader": "check_body_and_header",
    "safeMethods": "safe_methods",
}

@dataclass
class CSRFConfig:
    """
    CSRF防护配置的数据类
    控制令牌的生命周期、长度以及令牌在会话和请求中的位置
    """
    expire: int = 3600                  # 令牌有效期(秒)
    token_length: int = 32              # 令牌熵的字节数
    session_key: str = "_token"         # 令牌记录在会话中的键
    field_name: str = "_token"          # 表单/JSON中携带令牌的字段名
    header_name: str = "X-CSRF-Token"   # 携带令牌的请求头
    check_body_and_header: bool = False  # 是否由中间件自行拒绝无效令牌
    safe_methods: Tuple[str, ...] = field(
        default_factory=lambda: ("GET", "HEAD", "OPTIONS", "TRACE")
    )  # 不需要校验令牌的HTTP方法

    def __post_init__(self):
        if int(self.expire) < 0:
            raise ValueError("expire must not be negative")
        if int(self.token_length) < 1:
            raise ValueError("token_length must be at least 1")
        self.expire = int(self.expire)
        self.token_length = int(self.token_length)
        if isinstance(self.safe_methods, str):
            # YAML中写成单个方法名的情况
            self.safe_methods = (self.safe_methods,)
        self.safe_methods = tuple(m.upper() for m in self.safe_methods)

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]] = None) -> "CSRFConfig":
        """
        从普通字典创建配置,未知的键会被忽略,缺失的键使用默认值

        Args:
            options: 配置字典,如 {"expire": 1, "tokenLength": 16}

        Returns:
            CSRFConfig: 配置对象实例
        """
        if options is None:
            return cls()
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            name = _CSRF_KEY_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)

class Settings:
    """
    应用程序配置管理类
    负责从环境变量或YAML文件加载CSRF和会话配置
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        # YAML中读取的原始配置,为空时全部从环境变量读取
        self._data = data or {}

    @lru_cache()  # 使用LRU缓存装饰器缓存配置结果
    def get_csrf_config(self) -> CSRFConfig:
        """
        获取CSRF配置
        YAML中的csrf段优先,其次是环境变量

        Returns:
            CSRFConfig: CSRF配置对象
        """
        if "csrf" in self._data:
            return CSRFConfig.from_mapping(self._data["csrf"])
        return CSRFConfig(
            expire=int(os.getenv("CSRF_EXPIRE", "3600")),  # 令牌有效期
            token_length=int(os.getenv("CSRF_TOKEN_LENGTH", "32")),  # 令牌长度
            check_body_and_header=os.getenv("CSRF_ENFORCE", "false").lower() in ("1", "true", "yes"),
        )

    @lru_cache()
    def get_session_config(self) -> Union[SessionConfig, RedisSessionConfig]:
        """
        获取会话配置
        根据SESSION_TYPE返回内存会话或Redis会话的配置

        Returns:
            Union[SessionConfig, RedisSessionConfig]: 会话配置对象
        """
        section = self._data.get("session")
        if section is not None:
            config_cls = RedisSessionConfig if section.get("type") == "redis" else SessionConfig
            known = {f.name for f in fields(config_cls)}
            return config_cls(**{k: v for k, v in section.items() if k in known})

        session_type = os.getenv("SESSION_TYPE", "memory")  # 获取存储类型,默认为内存

        if session_type == "redis":
            # 如果是Redis会话,返回Redis配置
            return RedisSessionConfig(
                host=os.getenv("REDIS_HOST", "localhost"),  # Redis主机地址
                port=int(os.getenv("REDIS_PORT", "6379")),  # Redis端口
                password=os.getenv("REDIS_PASSWORD"),  # Redis密码
                db=int(os.getenv("REDIS_DB", "0")),  # Redis数据库编号
                ttl=int(os.getenv("SESSION_TTL", "7200"))  # 会话过期时间
            )

        # 默认返回内存会话配置
        return SessionConfig(
            capacity=int(os.getenv("SESSION_CAPACITY", "10000")),  # 最大会话数
            ttl=int(os.getenv("SESSION_TTL", "7200"))  # 会话过期时间
        )

    @classmethod
    def from_yaml(cls, path: str) -> "Settings":
        """
        从YAML文件加载配置

        Args:
            path (str): YAML配置文件路径

        Returns:
            Settings: 配置对象实例
        """
        with open(path) as f:
            config = yaml.safe_load(f) or {}
        return cls(config)
