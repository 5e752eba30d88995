"""zread.ai 两步协议适配器。

zread.ai 不提供一次调用完成的 chat/completions，而是：

1. POST {base}                      -> 创建对话，返回 {"id": ..., "model": ...}
2. POST {base}/{talk_id}/message    -> 发送内容，返回 JSON 或 text/event-stream

本模块把一次统一的 chat_completion 请求翻译成这两步调用，
并把第二步的响应体原样（不缓冲）交给调用方。

单次调用内的状态流转：
Idle -> SessionOpen（create_talk 成功）-> StreamOpen（send_message 成功）
-> Closed（调用方关闭 ResponseStream）；任一步失败直接抛出，不再继续。

适配器实例除了共享的 httpx.Client 之外不保存任何可变状态，
可以在多个线程中并发调用。
"""

import time
from typing import Any, Iterator, List, Mapping, Optional, Sequence, Union
from urllib.parse import quote, urlsplit

import httpx
from pydantic import ValidationError

from chat_bridge.config.platform import (
    ZREAD_PLATFORM_ID,
    PlatformConfig,
    build_referer,
    default_platform,
    normalize_origin,
)
from chat_bridge.domain.exceptions import (
    BusinessError,
    ProtocolError,
    ResponseParseError,
    SerializationError,
    TransportError,
    UpstreamStatusError,
)
from chat_bridge.domain.models import ChatMessage, TalkSession
from chat_bridge.domain.payloads import MessageRequest, ModelList, TalkRequest, TalkResponse
from chat_bridge.infrastructure.logging.logger import logger
from chat_bridge.infrastructure.telemetry.ring_buffer import LiveRequest, RingBuffer


# 上游按自家网页端的请求来校验，因此固定使用浏览器 UA
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36"
)

MessageLike = Union[ChatMessage, Mapping[str, Any]]


def _role_and_content(message: MessageLike):
    if isinstance(message, Mapping):
        return message.get("role"), message.get("content")
    return message.role, message.content


def find_last_user_content(messages: Sequence[MessageLike]) -> Optional[str]:
    """从后往前找最近一条 user 消息的内容；找不到或内容为空时返回 None。"""

    for message in reversed(messages):
        role, content = _role_and_content(message)
        if role == "user":
            return content or None
    return None


class ResponseStream:
    """第二步响应体的句柄，所有权归调用方。

    响应体未被读取；调用方可以逐块消费，用完（或放弃）后必须 close()
    才能把连接还给连接池。推荐用 with 语句。
    """

    def __init__(self, response: httpx.Response, session_id: str):
        self._response = response
        self.session_id = session_id

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers

    @property
    def is_event_stream(self) -> bool:
        return self.headers.get("content-type", "").startswith("text/event-stream")

    @property
    def closed(self) -> bool:
        return self._response.is_closed

    def iter_bytes(self, chunk_size: Optional[int] = None) -> Iterator[bytes]:
        return self._response.iter_bytes(chunk_size)

    def iter_raw(self, chunk_size: Optional[int] = None) -> Iterator[bytes]:
        return self._response.iter_raw(chunk_size)

    def iter_lines(self) -> Iterator[str]:
        return self._response.iter_lines()

    def read(self) -> bytes:
        return self._response.read()

    def close(self) -> None:
        self._response.close()

    def __iter__(self) -> Iterator[bytes]:
        return self.iter_bytes()

    def __enter__(self) -> "ResponseStream":
        return self

    def __exit__(self, *exc) -> bool:
        self.close()
        return False


class ZreadAdapter:
    """zread.ai 两步协议客户端。

    - base_url: 创建对话的端点，第二步为 {base_url}/{talk_id}/message。
    - token: 访问令牌，放在 platform.token_header 指定的请求头里。
    - client: 共享的 httpx.Client；不传时由适配器自行创建并负责关闭。
    - talk_model: 创建对话时使用的模型名；为 None 时使用调用方的模型。
    - telemetry: 可选的环形缓冲区，每次 chat_completion 结束写入一条 LiveRequest。
    """

    name = ZREAD_PLATFORM_ID

    def __init__(
        self,
        base_url: str,
        token: str,
        client: Optional[httpx.Client] = None,
        platform: Optional[PlatformConfig] = None,
        talk_model: Optional[str] = None,
        telemetry: Optional[RingBuffer] = None,
        timeout: float = 60.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._platform = platform or default_platform(ZREAD_PLATFORM_ID)
        self._talk_model = talk_model
        self._telemetry = telemetry
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, trust_env=False)

    @classmethod
    def from_platform(cls, platform: PlatformConfig, token: str, **kwargs) -> "ZreadAdapter":
        return cls(platform.chat_url, token, platform=platform, **kwargs)

    @property
    def base_url(self) -> str:
        return self._base_url

    # ---- 两步协议 ----

    def create_talk(self, model: str, messages: Sequence[MessageLike] = ()) -> TalkSession:
        """第一步：创建上游对话，返回非空的会话 ID。

        创建对话本身是普通的请求/响应，不使用流式。
        messages 目前不进入请求体，保留参数以便上游需要上下文时扩展。
        """

        talk_model = self._talk_model or model
        try:
            body = TalkRequest(model=talk_model).model_dump_json()
        except ValidationError as e:
            raise SerializationError(f"invalid talk request: {e}", phase="talk") from e

        try:
            resp = self._client.post(self._base_url, content=body, headers=self._headers())
        except httpx.RequestError as e:
            raise TransportError(f"failed to send talk request: {e}", phase="talk") from e

        if not resp.is_success:
            logger.warning(
                "talk.failed",
                extra={"extra": {"status": resp.status_code, "platform": self._platform.id}},
            )
            raise UpstreamStatusError(resp.status_code, resp.text, phase="talk")

        try:
            parsed = TalkResponse.model_validate_json(resp.content)
        except ValidationError as e:
            raise ResponseParseError(f"unexpected talk response: {e}", phase="talk") from e

        logger.info(
            "talk.created",
            extra={"extra": {"session_id": parsed.id, "model": talk_model, "platform": self._platform.id}},
        )
        return TalkSession(id=parsed.id, model=parsed.model)

    def send_message(self, session_id: str, content: str, model: str, stream: bool = False) -> ResponseStream:
        """第二步：向已创建的对话发送内容。

        成功时返回未读取的响应体；失败时读完响应体、释放连接，
        再抛出带 status/body 的 UpstreamStatusError。
        """

        payload = self._message_request(content, model, stream, phase="message", session_id=session_id)
        return self._post_message(session_id, payload)

    def _post_message(self, session_id: str, payload: MessageRequest) -> ResponseStream:
        url = f"{self._base_url}/{quote(session_id, safe='')}/message"
        request = self._client.build_request(
            "POST", url, content=payload.model_dump_json(), headers=self._headers(stream=payload.stream)
        )
        try:
            resp = self._client.send(request, stream=True)
        except httpx.RequestError as e:
            raise TransportError(
                f"failed to send message request: {e}", phase="message", session_id=session_id
            ) from e

        if not resp.is_success:
            try:
                resp.read()
            except httpx.RequestError as e:
                raise TransportError(
                    f"failed to read error body: {e}", phase="message", session_id=session_id
                ) from e
            finally:
                resp.close()
            raise UpstreamStatusError(resp.status_code, resp.text, phase="message", session_id=session_id)

        return ResponseStream(resp, session_id)

    def chat_completion(self, model: str, messages: Sequence[MessageLike], stream: bool = False) -> ResponseStream:
        """完整的两步聊天流程。

        先找到 user 消息并构造好第二步的请求体，再创建对话，
        避免输入有误时产生无法使用的上游会话。
        第二步失败时第一步创建的会话不会被清理（上游没有删除接口），
        会话 ID 会记录在异常的 extra["session_id"] 与告警日志中。
        """

        started = time.perf_counter()
        status = 0
        error: Optional[str] = None
        try:
            content = find_last_user_content(messages)
            if content is None:
                raise ProtocolError("no user message found", code="NO_USER_MESSAGE", phase="completion")
            payload = self._message_request(content, model, stream, phase="completion")

            session = self.create_talk(model, messages)
            try:
                result = self._post_message(session.id, payload)
            except BusinessError as e:
                logger.warning(
                    "message.failed",
                    extra={"extra": {"session_id": session.id, "code": e.code, "orphaned_session": True}},
                )
                raise
            status = result.status_code
            return result
        except UpstreamStatusError as e:
            status = e.status
            error = e.code
            raise
        except BusinessError as e:
            error = e.code
            raise
        except Exception as e:
            error = type(e).__name__
            raise
        finally:
            self._record(model, status, started, error)

    # ---- 其他端点 ----

    def list_models(self) -> List[str]:
        """读取平台的模型列表端点，返回模型 ID 列表。"""

        try:
            resp = self._client.get(self._platform.models_url, headers=self._headers())
        except httpx.RequestError as e:
            raise TransportError(f"failed to list models: {e}", phase="models") from e
        if not resp.is_success:
            raise UpstreamStatusError(resp.status_code, resp.text, phase="models")
        try:
            parsed = ModelList.model_validate_json(resp.content)
        except ValidationError as e:
            raise ResponseParseError(f"unexpected models response: {e}", phase="models") from e
        return [entry.id for entry in parsed.data]

    # ---- 辅助方法 ----

    @staticmethod
    def _message_request(content: str, model: str, stream: bool, **context) -> MessageRequest:
        try:
            return MessageRequest(content=content, model=model, stream=stream)
        except ValidationError as e:
            raise SerializationError(f"invalid message request: {e}", **context) from e

    def _headers(self, stream: bool = False) -> dict:
        platform = self._platform
        headers = {
            "Content-Type": "application/json",
            platform.token_header: f"Bearer {self._token}",
            "User-Agent": USER_AGENT,
            "Origin": normalize_origin(platform.origin_base),
            "Referer": build_referer(platform),
            "X-FE-Version": platform.client_version,
        }
        if stream:
            headers["Accept"] = "text/event-stream"
        return headers

    def _record(self, model: str, status: int, started: float, error: Optional[str]) -> None:
        if self._telemetry is None:
            return
        self._telemetry.append(
            LiveRequest(
                method="POST",
                path=urlsplit(self._base_url).path or "/",
                status=status,
                duration_ms=(time.perf_counter() - started) * 1000,
                model=model,
                error=error,
            )
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "ZreadAdapter":
        return self

    def __exit__(self, *exc) -> bool:
        self.close()
        return False
