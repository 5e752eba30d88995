"""统一的对话与结果数据模型。

本模块定义了调用方与适配器之间共享的标准数据结构：

- ChatMessage: 一条对话消息（system/user/assistant/...）。
- ChatRequest: 调用方发来的统一请求（与上游平台无关）。
- TalkSession: 两步协议第一步创建出的上游会话。
- ChatResult / ChatStreamChunk: 解析上游响应后得到的统一结果。

上游 JSON 的请求/响应结构见 payloads 模块。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional


# 消息角色类型（与 OpenAI 风格的 role 字段对应）
Role = Literal["system", "user", "assistant", "tool"]


@dataclass
class ChatMessage:
    """一条对话消息。

    - role: 消息角色，如 system/user/assistant。
    - content: 纯文本内容。
    - meta: 附加元数据，不发给上游。
    """

    role: Role
    content: str
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatRequest:
    """一次统一的聊天请求。"""

    model: str  # 客户端模型名，由 platform.resolve_upstream_model 映射为上游模型 ID
    messages: List[ChatMessage]
    stream: bool = False


@dataclass
class TalkSession:
    """第一步返回的上游会话：不持久化，创建后立即用于第二步。"""

    id: str
    model: str = ""


@dataclass
class ChatUsage:
    """token 统计信息（上游不返回时全部为 0）。"""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class ChatChoice:
    index: int
    message: ChatMessage
    finish_reason: Optional[str] = None


@dataclass
class ChatResult:
    """一次非流式调用的最终结果。

    - provider: 平台 ID（如 "zread"）。
    - model: 客户端看到的模型名。
    - raw: 上游原始响应文本，用于调试。
    """

    provider: str
    model: str
    choices: List[ChatChoice]
    usage: Optional[ChatUsage] = None
    raw: Optional[str] = None


@dataclass
class ChatStreamChoice:
    """流式返回中的单个候选增量。"""

    index: int
    delta: ChatMessage
    finish_reason: Optional[str] = None


@dataclass
class ChatStreamChunk:
    """流式对话的增量结果，结构与 ChatResult 类似。"""

    provider: str
    model: str
    choices: List[ChatStreamChoice]
    usage: Optional[ChatUsage] = None
    raw: Optional[dict] = None
