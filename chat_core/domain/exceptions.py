"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在会话层或 UI 层做统一捕获与用户提示。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "NETWORK_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 url、trace_id 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class TransportError(BusinessError):
    """请求无法发出，或响应状态表示失败。会话层据此中止本次交换。"""


class NetworkError(TransportError):
    """网络层错误，例如连接失败、读取中断等。"""


class ApiError(TransportError):
    """中继服务返回非 2xx 状态时抛出。"""


class RateLimitError(ApiError):
    """服务端返回 429。客户端不做重试，按普通失败处理。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""
