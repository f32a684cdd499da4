import functools
import logging
from typing import Any, Mapping, Optional, Union

from starlette.datastructures import Headers

from ..config.settings import CSRFConfig
from ..errors import CSRFError
from ..requests import AsyncRequest
from ..security.guard import CSRFGuard

logger = logging.getLogger(__name__)

class CSRFMiddleware:
    """CSRF防护中间件

    每个请求都会确保会话中有有效令牌,并把校验对象放到 scope['csrf']
    (即 request.csrf)。默认只提供校验能力,是否拒绝请求由路由自己决定;
    开启 check_body_and_header 后中间件会直接拒绝不安全方法上的无效令牌。
    """

    def __init__(self, config: Optional[CSRFConfig] = None):
        self.config = config or CSRFConfig()
        self.guard = CSRFGuard(self.config)

    async def __call__(self, scope, timing):
        """中间件处理方法"""
        if timing != 'before':
            return True

        session = scope.get('session')
        if session is None:
            raise RuntimeError("CSRF middleware requires SessionMiddleware to run first")

        self.guard.ensure_token(session)
        token = self.guard.bind(session)
        scope['csrf'] = token

        if self.config.check_body_and_header and scope['method'] not in self.config.safe_methods:
            if not await self._verify(scope, token):
                logger.warning("Rejected request with invalid CSRF token",
                               extra={"path": scope.get('path')})
                raise CSRFError()

        return True

    async def _verify(self, scope, token) -> bool:
        request = scope.get('request')
        if isinstance(request, AsyncRequest):
            return await token.verify_request(request)
        # 没有请求对象时只能检查请求头
        headers = Headers(scope=scope)
        return token.verify_token(headers.get(self.config.header_name))

def csrf(config: Optional[Union[CSRFConfig, Mapping[str, Any]]] = None) -> CSRFMiddleware:
    """
    创建CSRF中间件

    Args:
        config: CSRFConfig对象或普通字典,如 {"expire": 1},未知的键会被忽略

    Returns:
        CSRFMiddleware: 可直接传给 app.add_middleware 的中间件
    """
    if not isinstance(config, CSRFConfig):
        config = CSRFConfig.from_mapping(config)
    return CSRFMiddleware(config)

def csrf_protect(func):
    """路由装饰器:不安全方法上要求请求携带有效的CSRF令牌"""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        request = kwargs.get('request')
        if request is None:
            request = next((a for a in args if isinstance(a, AsyncRequest)), None)
        if request is None:
            raise RuntimeError(f"{func.__name__} must accept a 'request' argument to use csrf_protect")

        token = request.csrf
        if request.method not in token.config.safe_methods:
            if not await token.verify_request(request):
                raise CSRFError()
        return await func(*args, **kwargs)
    return wrapper
