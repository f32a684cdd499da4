import logging
import re
import secrets
from http.cookies import SimpleCookie
from typing import Optional

from starlette.datastructures import Headers
from starlette.requests import cookie_parser

from ..config.session_config import SessionConfig
from .session import Session

logger = logging.getLogger(__name__)

# secrets.token_urlsafe(32) 生成的ID格式
_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{32,128}$")

class SessionMiddleware:
    """
    会话中间件
    请求前从cookie加载会话放入scope['session'],响应开始前把修改写回存储
    """
    def __init__(self, store, config: Optional[SessionConfig] = None):
        self.store = store  # 会话存储后端
        self.config = config or SessionConfig()  # 会话配置

    async def __call__(self, scope, timing):
        """
        处理会话的加载与保存
        :param scope: ASGI scope对象
        :param timing: 中间件执行时机('before'/'after')
        :return: bool 是否继续执行后续中间件
        """
        if timing == 'before':
            scope['session'] = await self._load_session(scope)

            async def persist():
                await self._persist_session(scope)

            # 由应用在发送 http.response.start 之前调用
            scope.setdefault('response_callbacks', []).append(persist)
        elif timing == 'after':
            # 没有发出响应时在这里补写
            await self._persist_session(scope)
        return True

    async def _load_session(self, scope) -> Session:
        # 读取请求中的会话cookie
        headers = Headers(scope=scope)
        cookies = cookie_parser(headers.get('cookie', ''))
        session_id = cookies.get(self.config.cookie_name)

        if session_id and _SESSION_ID_RE.match(session_id):
            data = await self.store.load(session_id)
            if data is not None:
                # 存储已刷新过期时间,cookie的Max-Age也要跟着续期
                if self.config.ttl:
                    self._queue_cookie(scope, session_id)
                return Session(session_id, data)
            logger.debug("Unknown or expired session id, starting a new session")

        # 新建会话,并在响应中下发cookie
        session = Session(secrets.token_urlsafe(32), is_new=True)
        self._queue_cookie(scope, session.session_id)
        return session

    async def _persist_session(self, scope):
        session: Optional[Session] = scope.get('session')
        if session is None or scope.get('session_persisted'):
            return
        scope['session_persisted'] = True
        if session.destroyed:
            await self.store.delete(session.session_id)
        elif session.modified or session.is_new:
            await self.store.save(session.session_id, session.data)

    def _queue_cookie(self, scope, session_id: str):
        scope.setdefault('response_headers', []).append(
            (b'set-cookie', self._build_cookie(session_id).encode('latin-1'))
        )

    def _build_cookie(self, session_id: str) -> str:
        """构造Set-Cookie头部的值"""
        cookie: SimpleCookie = SimpleCookie()
        name = self.config.cookie_name
        cookie[name] = session_id
        cookie[name]['path'] = self.config.cookie_path
        cookie[name]['httponly'] = True
        cookie[name]['samesite'] = self.config.cookie_samesite
        if self.config.ttl:
            cookie[name]['max-age'] = self.config.ttl
        if self.config.cookie_secure:
            cookie[name]['secure'] = True
        return cookie.output(header='').strip()
