"""Runtime settings."""

from __future__ import annotations

from typing import Literal
from urllib.parse import urlparse, urlunparse

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_VERSION = "0.1.0"


def normalize_upstream_base(raw_base: str) -> str:
    candidate = raw_base.strip()
    parsed = urlparse(candidate)
    if parsed.scheme not in {"http", "https"}:
        raise ValueError("invalid_upstream_scheme")
    if not parsed.netloc:
        raise ValueError("invalid_upstream_host")
    if parsed.query or parsed.fragment:
        raise ValueError("invalid_upstream_query_fragment")
    cleaned_path = parsed.path.rstrip("/")
    return urlunparse((parsed.scheme, parsed.netloc, cleaned_path, "", "", ""))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CHATRELAY_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "chatrelay"
    env: str = "dev"
    log_level: str = "info"
    # 空串表示只打 stderr
    log_file: str = "logs/chatrelay.log"
    host: str = "127.0.0.1"
    port: int = 8080
    endpoint_path: str = "/api/chat"

    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("openai_api_key", "CHATRELAY_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    upstream_base_url: str = "https://api.openai.com/v1"
    upstream_chat_path: str = "/chat/completions"
    upstream_timeout_seconds: float = 60.0
    upstream_max_connections: int = 100
    upstream_max_keepalive_connections: int = 20

    default_model: str = "gpt-4o-mini"
    default_temperature: float = 0.7
    default_stream: bool = True

    max_request_body_bytes: int = 2_000_000
    cors_allow_origin: str = "*"
    # close: 上游流中断时静默结束；event: 先补发一条 SSE error 事件
    stream_error_mode: Literal["close", "event"] = "close"
    status_tip: str = "Status check only. Send chat requests from the client with POST."

    @field_validator("upstream_base_url")
    @classmethod
    def _check_upstream_base(cls, value: str) -> str:
        return normalize_upstream_base(value)

    @field_validator("upstream_chat_path", "endpoint_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith("/"):
            value = f"/{value}"
        return value

    @property
    def upstream_url(self) -> str:
        return f"{self.upstream_base_url}{self.upstream_chat_path}"

    @property
    def version(self) -> str:
        return f"{self.app_name}@{APP_VERSION}"
