"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
便于在 API 层或调用方做统一捕获与用户提示。

两步协议中每个异常都在 extra["phase"] 中标明出错阶段：
"talk"（创建对话）、"message"（发送消息）、"models"、"completion"。
适配器不做任何重试，是否整体重试由调用方决定。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "UPSTREAM_STATUS"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 phase、session_id 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)

    @property
    def phase(self):
        return self.extra.get("phase")


class SerializationError(BusinessError):
    """请求体无法构造或编码。"""

    def __init__(self, message: str, **extra):
        super().__init__(code="SERIALIZATION_ERROR", message=message, http_status=400, **extra)


class TransportError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""

    def __init__(self, message: str, **extra):
        super().__init__(code="NETWORK_ERROR", message=message, http_status=502, **extra)


class UpstreamStatusError(BusinessError):
    """上游返回非 2xx 状态码；body 原样保留用于排查。"""

    def __init__(self, status: int, body: str, **extra):
        self.status = status
        self.body = body
        super().__init__(
            code="UPSTREAM_STATUS",
            message=f"upstream returned status {status}: {body}",
            http_status=status,
            **extra,
        )


class ResponseParseError(BusinessError):
    """状态码成功，但响应体不是预期结构。"""

    def __init__(self, message: str, **extra):
        super().__init__(code="RESPONSE_PARSE_ERROR", message=message, http_status=502, **extra)


class ProtocolError(BusinessError):
    """适配器层前置条件不满足，例如对话中没有 user 消息。"""

    def __init__(self, message: str, code: str = "PROTOCOL_ERROR", **extra):
        super().__init__(code=code, message=message, http_status=400, **extra)


class ConfigurationError(BusinessError):
    """配置缺失或无效，例如未设置 UPSTREAM_TOKEN。"""

    def __init__(self, message: str, code: str = "CONFIG_ERROR", **extra):
        super().__init__(code=code, message=message, http_status=500, **extra)
