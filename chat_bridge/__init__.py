"""Chat Bridge 顶层包。

把统一的 chat completion 请求翻译成上游平台的两步会话协议，
包括平台识别、配置加载、领域模型、两步适配器、事件流解析与遥测缓冲区。
"""

from chat_bridge.config.platform import PlatformConfig, detect_platform
from chat_bridge.providers.zread_adapter import ResponseStream, ZreadAdapter

__all__ = ["PlatformConfig", "detect_platform", "ResponseStream", "ZreadAdapter"]
