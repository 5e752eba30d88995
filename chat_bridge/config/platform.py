"""上游平台识别与平台配置。

本模块把“选哪个上游平台”与“平台的各个端点/默认值”集中在一处：

- PLATFORM_PROFILES: 每个平台一份硬编码默认值（目前只有 zai 与 zread）。
- detect_platform(): 读取环境变量，选出唯一的平台，并对每个字段应用
  “环境变量覆盖优先，否则取平台默认值”的规则。

detect_platform 不做缓存，环境不变时多次调用结果相同；
调用方可以在进程生命周期内自行缓存返回的 PlatformConfig。
"""

import json
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from chat_bridge.infrastructure.logging.logger import logger

ZAI_PLATFORM_ID = "zai"
ZREAD_PLATFORM_ID = "zread"
ZREAD_DOMAIN = "zread.ai"
DEFAULT_PLATFORM_ID = ZAI_PLATFORM_ID


@dataclass(frozen=True)
class PlatformConfig:
    """单个上游平台的完整配置，构造后不可变。"""

    id: str
    name: str
    brand: str
    home_url: str
    origin_base: str
    api_base: str
    referer_prefix: str
    chat_url: str
    models_url: str
    auth_url: str
    owned_by: str
    token_header: str
    default_model_id: str
    client_version: str
    # 客户端模型别名（小写） -> 上游模型 ID
    model_id_map: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


# 字段名 -> 覆盖它的环境变量
ENV_OVERRIDES: Mapping[str, str] = {
    "name": "PROVIDER_NAME",
    "brand": "PROVIDER_BRAND",
    "home_url": "PROVIDER_HOME_URL",
    "origin_base": "ORIGIN_BASE",
    "api_base": "PLATFORM_API_BASE",
    "referer_prefix": "REFERER_PREFIX",
    "chat_url": "UPSTREAM_URL",
    "models_url": "MODELS_URL",
    "auth_url": "AUTH_URL",
    "owned_by": "OWNED_BY",
    "token_header": "PLATFORM_TOKEN_HEADER",
    "default_model_id": "UPSTREAM_MODEL_ID_DEFAULT",
    "client_version": "X_FE_VERSION",
}


ZAI_DEFAULTS: Mapping[str, str] = {
    "name": "Z.ai",
    "brand": "Z.ai",
    "home_url": "https://chat.z.ai",
    "origin_base": "https://chat.z.ai",
    "api_base": "https://chat.z.ai",
    "referer_prefix": "/c/",
    "chat_url": "https://chat.z.ai/api/chat/completions",
    "models_url": "https://chat.z.ai/v1/models",
    "auth_url": "https://chat.z.ai/api/v1/auths/",
    "owned_by": "z.ai",
    "token_header": "Authorization",
    "default_model_id": "0727-360B-API",
    "client_version": "prod-fe-1.0.94",
}

ZREAD_DEFAULTS: Mapping[str, str] = {
    "name": "zread.ai",
    "brand": "zread.ai",
    "home_url": "https://zread.ai",
    "origin_base": "https://zread.ai",
    "api_base": "https://zread.ai",
    "referer_prefix": "/chat/",
    "chat_url": "https://zread.ai/api/chat/completions",
    "models_url": "https://zread.ai/v1/models",
    "auth_url": "https://zread.ai/api/v1/auths/",
    "owned_by": "zread.ai",
    "token_header": "Authorization",
    "default_model_id": "glm-4.5",
    "client_version": "prod-fe-1.0.94",
}


PLATFORM_PROFILES: Mapping[str, Mapping[str, str]] = {
    ZAI_PLATFORM_ID: ZAI_DEFAULTS,
    ZREAD_PLATFORM_ID: ZREAD_DEFAULTS,
}


def _get_env(environ: Mapping[str, str], key: str, default: str) -> str:
    """获取环境变量，空字符串视为未设置。"""

    value = environ.get(key)
    if value:
        return value
    return default


def _select_platform_id(environ: Mapping[str, str]) -> str:
    explicit = (environ.get("PLATFORM_ID") or "").strip().lower()
    if explicit:
        # 未知的平台 ID 直接回落到默认平台
        return explicit if explicit in PLATFORM_PROFILES else DEFAULT_PLATFORM_ID
    if ZREAD_DOMAIN in environ.get("PROVIDER_HOME_URL", ""):
        return ZREAD_PLATFORM_ID
    return DEFAULT_PLATFORM_ID


def parse_model_id_map(raw: Optional[str]) -> Mapping[str, str]:
    """解析 UPSTREAM_MODEL_ID_MAP（JSON 对象），键统一转为小写。

    解析失败时记录告警并返回空映射，不抛异常。
    """

    mapping: Dict[str, str] = {}
    if not raw:
        return MappingProxyType(mapping)
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("platform.model_map_invalid", extra={"extra": {"reason": "invalid json"}})
        return MappingProxyType(mapping)
    if not isinstance(parsed, dict):
        logger.warning("platform.model_map_invalid", extra={"extra": {"reason": "not an object"}})
        return MappingProxyType(mapping)
    for key, value in parsed.items():
        alias = str(key).strip()
        if alias:
            mapping[alias.lower()] = str(value)
    return MappingProxyType(mapping)


def detect_platform(environ: Optional[Mapping[str, str]] = None) -> PlatformConfig:
    """根据环境变量选出目标平台并构造 PlatformConfig。

    选择规则：
    1. PLATFORM_ID 显式指定时以它为准（未知值回落到 zai）。
    2. 否则，PROVIDER_HOME_URL 含 zread.ai 时选 zread。
    3. 其余情况使用默认平台 zai。
    """

    env = os.environ if environ is None else environ
    platform_id = _select_platform_id(env)
    defaults = PLATFORM_PROFILES[platform_id]
    values = {name: _get_env(env, var, defaults[name]) for name, var in ENV_OVERRIDES.items()}
    return PlatformConfig(
        id=platform_id,
        model_id_map=parse_model_id_map(env.get("UPSTREAM_MODEL_ID_MAP")),
        **values,
    )


def normalize_origin(value: str) -> str:
    return value[:-1] if value.endswith("/") else value


def build_referer(platform: PlatformConfig, chat_id: str = "") -> str:
    """拼出与上游网页端一致的 Referer，例如 https://chat.z.ai/c/<chat_id>。"""

    prefix = platform.referer_prefix if platform.referer_prefix.endswith("/") else f"{platform.referer_prefix}/"
    return f"{normalize_origin(platform.origin_base)}{prefix}{chat_id}"


def resolve_upstream_model(platform: PlatformConfig, requested: Optional[str]) -> Tuple[str, str]:
    """把客户端请求的模型名解析为 (展示名, 上游模型 ID)。

    未在映射表中的模型统一落到平台的 default_model_id。
    """

    display = (requested or "").strip() or platform.default_model_id
    upstream = platform.model_id_map.get(display.lower()) or platform.default_model_id
    return display, upstream


def default_platform(platform_id: str = DEFAULT_PLATFORM_ID) -> PlatformConfig:
    """不读取环境变量，直接返回某个平台的默认配置。"""

    return detect_platform({"PLATFORM_ID": platform_id})
