"""
错误类型定义
每种错误携带对应的 HTTP 状态码和 JSON-RPC 错误码
"""

# JSON-RPC 2.0 标准错误码
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class DiaryError(Exception):
    """日记服务错误基类"""

    status_code = 500
    rpc_code = INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(DiaryError):
    """服务端缺少必要配置"""

    status_code = 500
    rpc_code = INTERNAL_ERROR


class AuthenticationError(DiaryError):
    """凭证缺失、格式错误或无法匹配"""

    status_code = 401
    rpc_code = INTERNAL_ERROR


class ValidationError(DiaryError):
    """请求参数不合法"""

    status_code = 400
    rpc_code = INVALID_PARAMS


class ProtocolError(DiaryError):
    """JSON-RPC 信封错误或未知方法/工具，只出现在响应信封中"""

    def __init__(self, message: str, rpc_code: int = INVALID_REQUEST):
        super().__init__(message)
        self.rpc_code = rpc_code


class PersistenceError(DiaryError):
    """数据存储失败"""

    status_code = 500
    rpc_code = INTERNAL_ERROR
