import json
import typing

from python_multipart.multipart import parse_options_header
from starlette.datastructures import FormData, Headers, QueryParams, UploadFile
from starlette.formparsers import FormParser, MultiPartParser
from starlette.types import Receive, Scope


class AsyncRequest:
    """异步HTTP请求处理类"""
    def __init__(self, scope: Scope, receive: Receive):
        """初始化请求对象
        Args:
            scope: ASGI scope对象,包含请求的基本信息
            receive: ASGI receive回调,用于接收请求数据
        """
        # 确保请求类型为HTTP
        assert scope["type"] == "http"
        # 保存ASGI相关对象
        self._scope = scope
        self._receive = receive
        # 标记请求体流是否已被消费
        self._stream_consumed = False
        # 原始请求体缓存
        self._body: typing.Optional[bytes] = None
        # 表单数据缓存
        self._form: typing.Optional[FormData] = None
        # JSON数据缓存
        self._json: typing.Any = None

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def method(self) -> str:
        return self._scope["method"]

    @property
    def path(self) -> str:
        return self._scope["path"]

    @property
    def headers(self) -> Headers:
        """大小写不敏感的请求头"""
        return Headers(scope=self._scope)

    @property
    def query_params(self) -> QueryParams:
        return QueryParams(self._scope.get("query_string", b""))

    @property
    def session(self):
        """当前会话,由会话中间件放入scope"""
        if "session" not in self._scope:
            raise RuntimeError("SessionMiddleware must be installed to access request.session")
        return self._scope["session"]

    @property
    def csrf(self):
        """CSRF校验对象,由CSRF中间件放入scope"""
        if "csrf" not in self._scope:
            raise RuntimeError("CSRF middleware must be installed to access request.csrf")
        return self._scope["csrf"]

    @property
    def content_type(self) -> bytes:
        content_type, _ = parse_options_header(self.headers.get("content-type", ""))
        return content_type

    async def stream(self) -> typing.AsyncGenerator[bytes, None]:
        """异步生成器,用于读取请求体数据流
        Yields:
            bytes: 请求体数据块
        Raises:
            RuntimeError: 如果数据流已被消费则抛出异常
        """
        if self._body is not None:
            yield self._body
            # 解析器收到空块才会结束解析
            yield b""
            return
        if self._stream_consumed:
            raise RuntimeError("Stream has already been consumed.")
        self._stream_consumed = True
        while True:
            # 接收消息
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            # 只处理HTTP请求消息
            if message["type"] != "http.request":
                continue
            body = message.get("body", b"")
            if body:
                yield body
            # 如果没有更多数据,退出循环
            if not message.get("more_body", False):
                break
        yield b""

    async def body(self) -> bytes:
        """获取完整的原始请求体数据"""
        if self._body is None:
            chunks = []
            async for chunk in self.stream():
                chunks.append(chunk)
            self._body = b"".join(chunks)
        return self._body

    async def json(self) -> typing.Any:
        """获取JSON格式的请求体数据,无法解析时返回空字典"""
        if self._json is None:
            body = await self.body()
            try:
                self._json = json.loads(body.decode()) if body else {}
            except (json.JSONDecodeError, UnicodeDecodeError):
                self._json = {}
        return self._json

    async def _get_form(self, *, max_files: typing.Union[int, float] = 1000,
                        max_fields: typing.Union[int, float] = 1000) -> FormData:
        """获取表单数据
        Args:
            max_files: 最大文件数限制
            max_fields: 最大字段数限制
        Returns:
            FormData: 解析后的表单数据对象
        """
        # 如果已有缓存,直接返回
        if self._form is not None:
            return self._form
        await self.body()
        # 根据不同的Content-Type使用不同的解析器
        if self.content_type == b"multipart/form-data":
            multipart_parser = MultiPartParser(self.headers, self.stream(), max_files=max_files, max_fields=max_fields)
            self._form = await multipart_parser.parse()
        elif self.content_type == b"application/x-www-form-urlencoded":
            form_parser = FormParser(self.headers, self.stream())
            self._form = await form_parser.parse()
        else:
            self._form = FormData()
        return self._form

    async def form(self) -> FormData:
        """获取表单数据的快捷方法
        Returns:
            FormData: 解析后的表单数据对象
        """
        return await self._get_form()

    async def input(self, name: str, default: typing.Any = None) -> typing.Any:
        """读取指定字段:依次查找表单、JSON请求体和查询字符串
        Args:
            name: 字段名
            default: 未找到时的默认值
        """
        if self.content_type in (b"multipart/form-data", b"application/x-www-form-urlencoded"):
            form = await self.form()
            if name in form:
                return form[name]
        elif self.content_type == b"application/json":
            data = await self.json()
            if isinstance(data, dict) and name in data:
                return data[name]
        return self.query_params.get(name, default)

    async def close(self) -> None:
        """关闭请求,清理资源,主要是关闭上传的文件"""
        if self._form is not None:
            for value in self._form.values():
                if isinstance(value, UploadFile):
                    await value.close()
