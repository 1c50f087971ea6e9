"""Runtime settings read from `LABRUN_*` environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from labrun.log import get_logger

log = get_logger(__name__)

DEFAULT_API_URL = "http://localhost:8000"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LABRUN_",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    api_url: str = DEFAULT_API_URL
    api_token: str | None = None
    http_timeout: float = Field(10.0, gt=0)
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    tick_ms: int = Field(1000, gt=0)
    ui_theme: Literal["dark", "light"] = "dark"

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/") or DEFAULT_API_URL

    @field_validator("api_token", mode="before")
    @classmethod
    def _blank_token_is_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("http_timeout", "tick_ms", "log_format", "ui_theme", mode="wrap")
    @classmethod
    def _fall_back_to_default(cls, value: Any, handler, info: ValidationInfo) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if info.field_name in ("log_format", "ui_theme"):
                value = value.lower()
        try:
            return handler(value)
        except ValidationError:
            default = cls.model_fields[info.field_name].default
            log.warning(
                "invalid_setting",
                name=f"LABRUN_{info.field_name.upper()}",
                value=value,
                default=default,
            )
            return default


def load_settings() -> Settings:
    return Settings()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
