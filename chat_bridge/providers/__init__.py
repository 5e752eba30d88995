"""上游平台适配层。

该包下的模块负责：
- 两步协议适配器 (zread_adapter)。
- 上游事件流解析 (zread_events)。
"""

from typing import Optional

import httpx

from chat_bridge.config.platform import PlatformConfig
from chat_bridge.domain.exceptions import ConfigurationError
from chat_bridge.infrastructure.telemetry.ring_buffer import RingBuffer
from chat_bridge.providers.zread_adapter import ResponseStream, ZreadAdapter


def create_adapter(
    platform: PlatformConfig,
    settings,
    client: Optional[httpx.Client] = None,
    telemetry: Optional[RingBuffer] = None,
) -> ZreadAdapter:
    """根据平台配置与进程配置创建两步协议适配器。"""

    token = getattr(settings, "upstream_token", None)
    if not token:
        raise ConfigurationError("UPSTREAM_TOKEN not set", code="MISSING_TOKEN")
    return ZreadAdapter.from_platform(
        platform,
        token,
        client=client,
        talk_model=getattr(settings, "talk_model", None),
        telemetry=telemetry,
        timeout=getattr(settings, "http_timeout", 60.0),
    )


__all__ = ["create_adapter", "ResponseStream", "ZreadAdapter"]
