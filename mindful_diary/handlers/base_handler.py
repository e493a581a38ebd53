"""
JSON-RPC 处理器基类
定义请求信封的校验、方法分发和响应信封的构造
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from mindful_diary.utils.errors import INVALID_REQUEST, DiaryError
from mindful_diary.utils.logger import logger

JSONRPC_VERSION = "2.0"


class BaseHandler(ABC):
    """JSON-RPC 处理器基类"""

    def __init__(self):
        """初始化处理器"""
        self.logger = logger

    @abstractmethod
    async def dispatch(self, method: Any, params: Any) -> Dict[str, Any]:
        """
        执行具体方法的抽象方法

        Args:
            method: 方法名
            params: 方法参数

        Returns:
            result 字段内容

        Raises:
            DiaryError: 转换为信封中的 error
        """
        pass

    async def handle(self, message: Any) -> Dict[str, Any]:
        """
        处理一条 JSON-RPC 请求

        业务错误转换为带错误码的响应信封；其他异常向上抛出，
        由接口层统一返回 Internal error。

        Args:
            message: 解析后的请求体

        Returns:
            响应信封
        """
        if not isinstance(message, dict):
            return self.error_response(None, INVALID_REQUEST, "Invalid Request")

        request_id = message.get("id")
        if message.get("jsonrpc") != JSONRPC_VERSION:
            return self.error_response(request_id, INVALID_REQUEST, "Invalid Request")

        method = message.get("method")
        try:
            result = await self.dispatch(method, message.get("params"))
        except DiaryError as e:
            self.logger.info(f"JSON-RPC 调用失败: {method} -> {e.rpc_code} {e.message}")
            return self.error_response(request_id, e.rpc_code, e.message)

        return self.result_response(request_id, result)

    @staticmethod
    def result_response(request_id: Any, result: Dict[str, Any]) -> Dict[str, Any]:
        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}

    @staticmethod
    def error_response(request_id: Optional[Any], code: int, message: str) -> Dict[str, Any]:
        return {
            "jsonrpc": JSONRPC_VERSION,
            "id": request_id,
            "error": {"code": code, "message": message},
        }
