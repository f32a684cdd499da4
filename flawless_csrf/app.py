from inspect import signature
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel

from .config.session_config import SessionConfig
from .config.settings import CSRFConfig
from .errors import ErrorHandler
from .logger import LoggerManager
from .middleware.csrf import csrf
from .requests import AsyncRequest
from .response import ApiResponse, AsyncResponse, error_response, success_response
from .session.factory import SessionStoreFactory
from .session.middleware import SessionMiddleware


class CSRFTokenInfo(BaseModel):
    """GET /_csrf 返回的数据"""
    token: str
    field_name: str
    header_name: str
    expire: int


class FlawlessApp:
    """精简的ASGI应用: 路由表 + 中间件链 + JSON响应"""

    def __init__(self, log_level: str = "INFO", log_dir: Optional[str] = None):
        self._routes: Dict[str, tuple] = {}  # 存储所有注册的路由信息
        self.middleware_stack: List[Callable] = []  # 存储中间件的列表
        self._compiled_chain = None  # 编译后的中间件链
        self.async_response = AsyncResponse()  # 创建异步响应处理器
        self.session_store = None  # 会话存储,由with_csrf设置

        # 初始化日志管理器
        self.logger_manager = LoggerManager(
            name="flawless_csrf",
            log_dir=log_dir,
            level=log_level,
            format_json=True
        )
        self.logger = self.logger_manager.get_logger()

        # 初始化错误处理器
        self.error_handler = ErrorHandler(self.logger)

    def with_csrf(self,
                  csrf_config: Optional[Union[CSRFConfig, Mapping[str, Any]]] = None,
                  session_config: Optional[SessionConfig] = None,
                  session_store=None,
                  expose_token_route: bool = True) -> "FlawlessApp":
        """
        安装会话中间件和CSRF中间件,会话中间件必须在前
        :param csrf_config: CSRF配置或配置字典
        :param session_config: 会话配置
        :param session_store: 自定义会话存储,为None时按session_config创建
        :param expose_token_route: 是否注册 GET /_csrf 路由
        """
        session_config = session_config or SessionConfig()
        self.session_store = session_store or SessionStoreFactory.create_store(session_config)
        self.add_middleware(SessionMiddleware(self.session_store, session_config))
        self.add_middleware(csrf(csrf_config))
        if expose_token_route:
            self.add_route("/_csrf", self._handle_csrf_token, ["GET"])
        return self

    async def shutdown(self):
        """应用关闭时释放会话存储"""
        if self.session_store is not None:
            await self.session_store.close()

    # 添加路由
    def add_route(self, path: str, handler: Callable, methods: List[str] = None):
        """
        注册路由
        :param path: 请求路径(精确匹配)
        :param handler: 异步处理函数
        :param methods: 允许的HTTP方法,默认GET
        """
        self._routes[path] = (handler, [m.upper() for m in (methods or ["GET"])])

    def route(self, path: str, methods: List[str] = None):
        """路由装饰器"""
        def decorator(func):
            self.add_route(path, func, methods)
            return func
        return decorator

    # 添加中间件
    def add_middleware(self, middleware: Callable):
        """
        添加中间件到中间件栈,先添加的先执行
        :param middleware: 中间件,签名为 async (scope, timing) -> bool
        """
        self.middleware_stack.append(middleware)
        self._compiled_chain = None  # 清除已编译的中间件缓存

    # ASGI生命周期处理
    async def __call__(self, scope, receive, send):
        """
        ASGI应用入口点,处理生命周期事件和HTTP请求
        :param scope: ASGI作用域信息
        :param receive: 接收消息的异步函数
        :param send: 发送消息的异步函数
        """
        if scope["type"] == "lifespan":
            while True:
                message = await receive()
                if message["type"] == "lifespan.startup":
                    await send({"type": "lifespan.startup.complete"})
                elif message["type"] == "lifespan.shutdown":
                    await self.shutdown()
                    await send({"type": "lifespan.shutdown.complete"})
                    break
        else:
            assert scope["type"] == "http"
            await self.process_middlewares(scope, receive, send)

    # 处理中间件
    async def process_middlewares(self, scope, receive, send):
        """
        处理中间件执行流程
        :param scope: ASGI scope对象,包含请求信息
        :param receive: ASGI receive函数,用于接收消息
        :param send: ASGI send函数,用于发送响应
        """
        async def tracked_send(message):
            if message["type"] == "http.response.start":
                # 响应发出前执行中间件登记的回调,如写回会话
                for callback in scope.pop("response_callbacks", []):
                    await callback()
                scope["response_started"] = True
            await send(message)

        # 请求对象在中间件之间共享,请求体只会读取一次
        scope["request"] = AsyncRequest(scope, receive)
        try:
            middleware_chain = self._compile_middleware_chain()
            await middleware_chain(scope, receive, tracked_send)
        except Exception as e:
            if scope.get("response_started"):
                raise
            resp = await self.error_handler.handle(e)
            await self.async_response.send_json_response(
                tracked_send, resp["code"], resp, scope.get("response_headers"))
        finally:
            await scope["request"].close()

    # 编译中间件链
    def _compile_middleware_chain(self):
        """
        编译并缓存中间件调用链
        :return: 编译后的中间件链函数
        """
        if self._compiled_chain is not None:
            return self._compiled_chain

        # 创建基础请求处理函数
        async def chain(scope, receive, send):
            return await self.handle_request(scope, receive, send)

        # 从后向前遍历中间件栈,构建调用链
        for middleware in reversed(self.middleware_stack):
            chain = self._create_middleware_wrapper(middleware, chain)

        self._compiled_chain = chain
        return chain

    # 创建中间件包装器
    def _create_middleware_wrapper(self, middleware, next_handler):
        """
        创建中间件包装器
        :param middleware: 中间件
        :param next_handler: 下一个处理器
        :return: 包装后的处理函数
        """
        async def wrapper(scope, receive, send):
            # 执行中间件前置处理
            try:
                await middleware(scope, 'before')
            except Exception as e:
                await self._handle_middleware_error(e, scope, send)
            else:
                # 执行下一个处理器
                await next_handler(scope, receive, send)
            # 前置处理失败时也执行后置处理,保证会话被保存
            await middleware(scope, 'after')

        return wrapper

    # 处理中间件错误
    async def _handle_middleware_error(self, error: Exception, scope, send) -> None:
        """
        处理中间件执行过程中的错误
        :param error: 异常对象
        :param scope: ASGI scope对象
        :param send: ASGI send函数
        """
        resp = await self.error_handler.handle(error)
        await self.async_response.send_json_response(
            send, resp["code"], resp, scope.get("response_headers"))

    # 处理请求
    async def handle_request(self, scope, receive, send):
        """
        查找路由并调用处理函数
        :param scope: ASGI scope对象
        :param receive: ASGI receive函数
        :param send: ASGI send函数
        """
        extra_headers = scope.get("response_headers")
        route = self._routes.get(scope["path"])
        if route is None:
            await self.async_response.send_not_found_response(send, extra_headers)
            return

        handler, methods = route
        if scope["method"] not in methods:
            resp = error_response(code=405, message="Method Not Allowed").dict()
            await self.async_response.send_json_response(send, 405, resp, extra_headers)
            return

        request = scope.get("request") or AsyncRequest(scope, receive)
        handler_kwargs = {}
        if "request" in signature(handler).parameters:
            handler_kwargs["request"] = request

        try:
            response = await handler(**handler_kwargs)
        except Exception as e:
            resp = await self.error_handler.handle(e)
            await self.async_response.send_json_response(send, resp["code"], resp, extra_headers)
            return
        await self._send_response(response, send, extra_headers)

    # 发送响应
    async def _send_response(self, response, send, extra_headers=None) -> None:
        """
        发送响应数据
        :param response: 处理函数的返回值
        :param send: ASGI send函数
        """
        if isinstance(response, ApiResponse):
            await self.async_response.send_json_response(send, response.code, response.dict(), extra_headers)
        elif isinstance(response, dict):
            # 标准JSON响应
            code = response.get('code', 200)
            await self.async_response.send_json_response(send, code, response, extra_headers)
        else:
            # 其他类型响应
            resp = success_response(data=response).dict()
            await self.async_response.send_json_response(send, 200, resp, extra_headers)

    async def _handle_csrf_token(self, request: AsyncRequest) -> ApiResponse:
        """返回当前会话的CSRF令牌,供前端放入请求头"""
        token = request.csrf
        return success_response(data=CSRFTokenInfo(
            token=token.get_token() or token.generate_token(),
            field_name=token.config.field_name,
            header_name=token.config.header_name,
            expire=token.config.expire
        ))
