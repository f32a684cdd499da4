# security/guard.py
import html
import logging
import time
from typing import Optional

from ..config.settings import CSRFConfig
from .token import TokenRecord, compare_tokens, generate_token

logger = logging.getLogger(__name__)

class CSRFGuard:
    """CSRF令牌守卫

    负责在会话中签发、查询和校验令牌。会话由调用方显式传入,
    只依赖 has/get/set/delete 这几个方法。
    """

    def __init__(self, config: Optional[CSRFConfig] = None):
        self.config = config or CSRFConfig()

    def _load(self, session) -> Optional[TokenRecord]:
        """读取会话中未过期的令牌记录,过期或格式不对时返回None"""
        if not session.has(self.config.session_key):
            return None
        record = session.get(self.config.session_key)
        if not isinstance(record, TokenRecord) or not record.value:
            return None
        if record.is_expired():
            return None
        return record

    def ensure_token(self, session) -> TokenRecord:
        """确保会话中存在有效令牌,缺失或过期时重新签发"""
        record = self._load(session)
        if record is not None:
            return record
        if session.has(self.config.session_key):
            logger.debug("CSRF token expired, issuing a new one")
        return self.regenerate(session)

    def regenerate(self, session) -> TokenRecord:
        """无条件签发新令牌,覆盖旧记录"""
        record = TokenRecord(
            value=generate_token(self.config.token_length),
            issued_at=time.time(),
            expire=self.config.expire
        )
        session.set(self.config.session_key, record)
        logger.debug("CSRF token issued")
        return record

    def exists(self, session) -> bool:
        """会话中是否有未过期的令牌"""
        return self._load(session) is not None

    def get_token(self, session) -> Optional[str]:
        record = self._load(session)
        return record.value if record else None

    def verify_token(self, session, candidate, remove: bool = False) -> bool:
        """校验候选令牌

        Args:
            session: 当前会话
            candidate: 请求中提交的令牌,可以是任意值
            remove: 校验成功后是否作废令牌(一次性令牌)

        Returns:
            bool: 令牌存在、未过期且与候选值一致时返回True
        """
        record = self._load(session)
        if record is None:
            logger.warning("CSRF verification failed: no active token in session")
            return False
        if not compare_tokens(record.value, candidate):
            logger.warning("CSRF verification failed: token mismatch")
            return False
        if remove:
            self.invalidate(session)
        return True

    def invalidate(self, session):
        """作废会话中的令牌"""
        if session.has(self.config.session_key):
            session.delete(self.config.session_key)

    def bind(self, session) -> "CSRFToken":
        """返回绑定到当前会话的校验对象"""
        return CSRFToken(self, session)

class CSRFToken:
    """挂在请求上的CSRF校验能力(request.csrf)"""

    def __init__(self, guard: CSRFGuard, session):
        self.guard = guard
        self.session = session

    @property
    def config(self) -> CSRFConfig:
        return self.guard.config

    def exists(self) -> bool:
        return self.guard.exists(self.session)

    def get_token(self) -> Optional[str]:
        return self.guard.get_token(self.session)

    def generate_token(self) -> str:
        return self.guard.regenerate(self.session).value

    def verify_token(self, candidate, remove: bool = False) -> bool:
        return self.guard.verify_token(self.session, candidate, remove=remove)

    def invalidate(self):
        self.guard.invalidate(self.session)

    def get_token_field(self) -> str:
        """生成表单中使用的隐藏字段"""
        token = self.get_token() or self.generate_token()
        return '<input type="hidden" name="{}" value="{}">'.format(
            html.escape(self.config.field_name, quote=True),
            html.escape(token, quote=True)
        )

    async def read_candidate(self, request) -> Optional[str]:
        """从请求中取出候选令牌,请求头优先,其次是表单/JSON字段"""
        candidate = request.headers.get(self.config.header_name)
        if candidate:
            return candidate
        return await request.input(self.config.field_name)

    async def verify_request(self, request, remove: bool = False) -> bool:
        """校验请求中携带的令牌"""
        candidate = await self.read_candidate(request)
        return self.verify_token(candidate, remove=remove)
