import json
import logging
import time
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)

class AsyncResponse:
    """异步响应处理类

    负责把字典或Pydantic模型序列化为JSON并通过ASGI发送
    """

    @staticmethod
    def _serialize(body: Any) -> bytes:
        """序列化响应体"""
        # 1. 处理 Pydantic 模型
        if isinstance(body, BaseModel):
            return body.model_dump_json().encode('utf-8')
        # 2. 处理 dict 类型,递归展开嵌套的模型
        if isinstance(body, dict):
            def process(v):
                if isinstance(v, BaseModel):
                    return v.model_dump()
                if isinstance(v, dict):
                    return {k: process(i) for k, i in v.items()}
                if isinstance(v, (list, tuple)):
                    return [process(i) for i in v]
                return v
            return json.dumps(process(body)).encode('utf-8')
        # 3. 处理其他类型
        return json.dumps(str(body)).encode('utf-8')

    async def send_json_response(self, send, status_code: int, body: Any,
                                 extra_headers: Optional[List[Tuple[bytes, bytes]]] = None) -> None:
        """发送JSON响应

        Args:
            send: ASGI发送回调函数
            status_code: HTTP状态码
            body: 要发送的字典数据或Pydantic模型
            extra_headers: 额外的响应头,如中间件添加的Set-Cookie
        """
        try:
            bytes_data = self._serialize(body)
        except (TypeError, ValueError) as e:
            logger.error(f"Serialization error: {e}")
            bytes_data = json.dumps({
                "error": "Serialization failed",
                "message": str(e)
            }).encode('utf-8')
            status_code = 500

        headers = [(b'content-type', b'application/json; charset=utf-8')]
        headers.extend(extra_headers or [])
        await self._send_response(send, status_code, bytes_data, headers)

    async def send_not_found_response(self, send, extra_headers=None):
        """发送404 Not Found响应

        Args:
            send: ASGI发送回调函数
        """
        body_dict = {
            "code": 404,
            "message": "Not Found",
            "detail": "The requested resource was not found",
            "timestamp": time.time()
        }
        await self.send_json_response(send, 404, body_dict, extra_headers)

    @staticmethod
    async def _send_response(send, status_code: int, body: bytes, headers: list):
        """发送HTTP响应

        Args:
            send: ASGI发送回调函数
            status_code: HTTP状态码
            body: 响应体数据
            headers: 响应头列表
        """
        await send({
            'type': 'http.response.start',
            'status': status_code,
            'headers': headers,
        })
        await send({
            'type': 'http.response.body',
            'body': body,
            'more_body': False
        })

# 定义泛型类型变量
T = TypeVar('T')

class ApiResponse(Generic[T]):
    """统一API响应类"""
    code: int = 200
    message: str = "success"
    data: Optional[T] = None

    def __init__(
        self,
        *,
        code: int = 200,
        message: str = "success",
        data: Optional[T] = None
    ):
        self.code = code
        self.message = message
        self.data = data
        self.timestamp = time.time()

    def dict(self) -> dict:
        """转换为字典格式"""
        # 处理 Pydantic 模型
        if isinstance(self.data, BaseModel):
            data = self.data.model_dump()
        else:
            data = self.data

        return {
            "code": self.code,
            "message": self.message,
            "data": data,
            "timestamp": self.timestamp
        }

def success_response(data: Any = None, message: str = "success") -> ApiResponse:
    """成功响应"""
    return ApiResponse(code=200, message=message, data=data)

def error_response(code: int = 400, message: str = "error", data: Any = None) -> ApiResponse:
    """错误响应"""
    return ApiResponse(code=code, message=message, data=data)
