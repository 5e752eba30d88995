"""领域层模型与协议。

包含：
- models: 统一的 ChatMessage / ChatRequest / ChatResult 模型。
- payloads: 上游两步协议的请求/响应结构（pydantic）。
- exceptions: 业务异常类型定义。
"""
