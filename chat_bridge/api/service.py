"""对外 API 服务模块。

把配置、平台识别、连接池、两步适配器与遥测缓冲区组装在一起，
返回统一的 ChatResult / ChatStreamChunk，供上层应用调用。
"""

from typing import Iterator, List, Optional

import httpx

from chat_bridge.config.platform import PlatformConfig, detect_platform, resolve_upstream_model
from chat_bridge.config.settings import Settings
from chat_bridge.domain.exceptions import BusinessError, TransportError
from chat_bridge.domain.models import (
    ChatChoice,
    ChatMessage,
    ChatRequest,
    ChatResult,
    ChatStreamChoice,
    ChatStreamChunk,
    ChatUsage,
)
from chat_bridge.infrastructure.http.transport import create_http_client
from chat_bridge.infrastructure.logging.logger import logger
from chat_bridge.infrastructure.telemetry.ring_buffer import LiveRequest, RingBuffer
from chat_bridge.providers import create_adapter
from chat_bridge.providers.zread_events import collect_answer, iter_answer_texts


class ChatService:
    """统一聊天入口。

    所有依赖都通过构造参数显式传入；未传入时按 settings 创建，
    由本实例负责关闭自己创建的 httpx.Client。
    """

    def __init__(
        self,
        settings: Settings,
        platform: Optional[PlatformConfig] = None,
        client: Optional[httpx.Client] = None,
        telemetry: Optional[RingBuffer[LiveRequest]] = None,
    ):
        self._settings = settings
        self._platform = platform or detect_platform()
        self._owns_client = client is None
        self._client = client or create_http_client(settings)
        self._telemetry = telemetry if telemetry is not None else RingBuffer(settings.telemetry_capacity)
        try:
            self._adapter = create_adapter(self._platform, settings, client=self._client, telemetry=self._telemetry)
        except BusinessError:
            self.close()
            raise

    @property
    def platform(self) -> PlatformConfig:
        return self._platform

    def complete(self, req: ChatRequest) -> ChatResult:
        """执行一次非流式对话，读完上游响应后解析为 ChatResult。"""

        display, upstream = resolve_upstream_model(self._platform, req.model)
        try:
            with self._adapter.chat_completion(upstream, req.messages, stream=False) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except httpx.RequestError as e:
            raise TransportError(f"failed to read message response: {e}", phase="message") from e
        except BusinessError as e:
            logger.error("completion.failed", extra={"extra": {"code": e.code, "phase": e.phase}})
            raise

        content = collect_answer(raw)
        return ChatResult(
            provider=self._platform.id,
            model=display,
            choices=[
                ChatChoice(
                    index=0,
                    message=ChatMessage(role="assistant", content=content),
                    finish_reason="stop",
                )
            ],
            usage=ChatUsage(),
            raw=raw,
        )

    def stream(self, req: ChatRequest) -> Iterator[ChatStreamChunk]:
        """执行一次流式对话，每段 answer 文本产出一个增量，最后产出 stop 块。"""

        display, upstream = resolve_upstream_model(self._platform, req.model)
        try:
            resp = self._adapter.chat_completion(upstream, req.messages, stream=True)
        except BusinessError as e:
            logger.error("completion.failed", extra={"extra": {"code": e.code, "phase": e.phase}})
            raise

        with resp:
            try:
                for text in iter_answer_texts(resp.iter_lines()):
                    yield self._chunk(display, ChatMessage(role="assistant", content=text))
            except httpx.RequestError as e:
                raise TransportError(
                    f"message stream interrupted: {e}", phase="message", session_id=resp.session_id
                ) from e
        yield self._chunk(display, ChatMessage(role="assistant", content=""), finish_reason="stop")

    def models(self) -> List[str]:
        return self._adapter.list_models()

    def recent_requests(self, n: int = 20) -> List[LiveRequest]:
        return self._telemetry.latest(n)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _chunk(self, model: str, delta: ChatMessage, finish_reason: Optional[str] = None) -> ChatStreamChunk:
        return ChatStreamChunk(
            provider=self._platform.id,
            model=model,
            choices=[ChatStreamChoice(index=0, delta=delta, finish_reason=finish_reason)],
        )


def create_service(settings: Optional[Settings] = None) -> ChatService:
    """按当前环境创建 ChatService。"""

    return ChatService(settings or Settings(), platform=detect_platform())
