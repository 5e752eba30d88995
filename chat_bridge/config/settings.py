"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置。

平台相关的端点/默认值（PLATFORM_ID、UPSTREAM_URL 等）不在这里，
由 chat_bridge.config.platform 直接从环境变量解析。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """优先读取 CHAT_BRIDGE_CONFIG_FILE，其次读取当前目录下的 config.yaml。"""
    explicit = os.getenv("CHAT_BRIDGE_CONFIG_FILE")
    candidates = [Path(explicit).expanduser()] if explicit else []
    candidates.append(Path.cwd() / "config.yaml")

    for path in candidates:
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """进程级配置（使用 Pydantic）。

    在进程入口处构造一次，再显式传给 ChatService / ZreadAdapter，
    测试中可以直接 Settings(...) 构造独立实例。
    """

    # ---- 上游认证 ----
    upstream_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("upstream_token", "zai_token"),
        description="上游平台访问令牌（UPSTREAM_TOKEN，兼容 ZAI_TOKEN）",
    )

    # ---- 连接池 / 超时 ----
    http_timeout: float = Field(default=60.0, ge=1.0, description="单次请求超时时间（秒）")
    connect_timeout: float = Field(default=30.0, ge=1.0, description="建立连接超时时间（秒）")
    max_connections: int = Field(default=50, ge=1, description="连接池最大连接数")
    max_keepalive_connections: int = Field(default=10, ge=0, description="最大空闲保活连接数")
    keepalive_expiry: float = Field(default=90.0, ge=0.0, description="空闲连接保留时间（秒）")

    # ---- 两步协议 ----
    talk_model: Optional[str] = Field(
        default=None,
        description="创建对话（第一步）时发送的模型名；为空时使用调用方传入的模型",
    )

    # ---- 遥测 / 日志 ----
    telemetry_capacity: int = Field(default=100, ge=1, description="最近请求环形缓冲区容量")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否截断日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("upstream_token", "talk_model")
    @classmethod
    def blank_as_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
