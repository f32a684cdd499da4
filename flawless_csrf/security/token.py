# security/token.py
import hmac
import secrets
import time
from dataclasses import dataclass
from typing import Any, Optional

@dataclass
class TokenRecord:
    """会话中保存的CSRF令牌记录"""
    value: str          # 令牌值
    issued_at: float    # 签发时间戳
    expire: int = 3600  # 签发时生效的有效期(秒)

    def age(self, now: Optional[float] = None) -> float:
        """令牌已存在的秒数"""
        return (time.time() if now is None else now) - self.issued_at

    def is_expired(self, now: Optional[float] = None) -> bool:
        """超过有效期即视为过期"""
        return self.age(now) > self.expire

def generate_token(length: int = 32) -> str:
    """生成CSRF令牌,length为随机字节数"""
    if length < 1:
        raise ValueError("token length must be at least 1")
    return secrets.token_urlsafe(length)

def compare_tokens(expected: str, candidate: Any) -> bool:
    """常量时间比较两个令牌,任何非法输入都返回False"""
    if not isinstance(expected, str) or not expected:
        return False
    if isinstance(candidate, bytes):
        try:
            candidate = candidate.decode("utf-8")
        except UnicodeDecodeError:
            return False
    if not isinstance(candidate, str) or not candidate:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), candidate.encode("utf-8"))
