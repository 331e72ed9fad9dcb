"""Centralised client configuration and environment validation."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("settings")

_SECRET_FIELDS = {
    "MUSIC_API_KEY",
}

_CRITICAL_ENDPOINT_FIELDS = {
    "MUSIC_API_BASE_URL",
    "MUSIC_API_GEN_PATH",
    "MUSIC_API_FETCH_PATH",
}

def _mask(value: Optional[str]) -> str:
    if not value:
        return ""
    text = str(value).strip()
    if len(text) <= 4:
        return text
    return f"***{text[-4:]}"

class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    LOG_LEVEL: str = Field(default="INFO")
    LOG_JSON: bool = Field(default=True)
    MAX_IN_LOG_BODY: int = Field(default=2048, ge=256, le=65536)
    APP_ENV: str = Field(default="prod")

    MUSIC_API_KEY: Optional[str] = Field(default=None)
    MUSIC_API_DEV_MODE: bool = Field(default=False)
    MUSIC_API_DEV_PROXY_URL: str = Field(default="http://localhost:5173/api/apicore")
    MUSIC_API_BASE_URL: str = Field(default="https://api.apicore.ai")
    MUSIC_API_BACKUP_URLS: str = Field(default="")
    MUSIC_API_GEN_PATH: str = Field(default="/suno/submit/music")
    MUSIC_API_FETCH_PATH: str = Field(default="/suno/fetch")
    MUSIC_API_MODEL: str = Field(default="suno-v3.5")
    MUSIC_API_STREAM: bool = Field(default=True)

    HTTP_TIMEOUT: float = Field(default=15.0, ge=0.1, le=600.0)
    HTTP_RETRY_ATTEMPTS: int = Field(default=2, ge=1, le=10)
    HTTP_RETRY_DELAY: float = Field(default=2.0, ge=0.0, le=60.0)

    POLL_INTERVAL: float = Field(default=2.0, ge=0.0, le=300.0)
    POLL_MAX_ATTEMPTS: int = Field(default=180, ge=1, le=10000)
    POLL_MAX_CONSECUTIVE_ERRORS: int = Field(default=3, ge=1, le=100)
    POLL_ERROR_DELAY_CAP: float = Field(default=5.0, ge=0.0, le=300.0)

    # Runtime/computed attributes populated by ``_post_init``
    MUSIC_API_BASE_URLS_EFFECTIVE: list[str] = Field(default_factory=list, exclude=True)

    @field_validator(
        "MUSIC_API_DEV_PROXY_URL",
        "MUSIC_API_BASE_URL",
        "MUSIC_API_GEN_PATH",
        "MUSIC_API_FETCH_PATH",
        "MUSIC_API_BACKUP_URLS",
        mode="before",
    )
    def _strip_required(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            return ""
        return text

    @field_validator("MUSIC_API_KEY", mode="before")
    def _strip_optional(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("LOG_LEVEL", mode="before")
    def _normalize_level(cls, value: Any) -> str:
        if value is None:
            return "INFO"
        text = str(value).strip().upper()
        if text not in logging._nameToLevel:  # type: ignore[attr-defined]
            return "INFO"
        return text

    @field_validator("MUSIC_API_MODEL", mode="before")
    def _normalize_model(cls, value: Any) -> str:
        text = str(value or "suno-v3.5").strip()
        return text or "suno-v3.5"

    @field_validator("MUSIC_API_GEN_PATH", "MUSIC_API_FETCH_PATH", mode="after")
    def _normalize_path(cls, value: str) -> str:
        if not value:
            return value
        text = value.rstrip("/") or "/"
        if not text.startswith("/"):
            text = f"/{text}"
        return text

    @model_validator(mode="after")
    def _post_init(self) -> "Settings":
        for field in _CRITICAL_ENDPOINT_FIELDS:
            value = getattr(self, field)
            if not value:
                msg = f"Critical endpoint '{field}' is not configured"
                logger.error(msg)
                raise RuntimeError(msg)

        primary = self.MUSIC_API_DEV_PROXY_URL if self.MUSIC_API_DEV_MODE else self.MUSIC_API_BASE_URL
        if not primary:
            msg = "Critical endpoint 'MUSIC_API_DEV_PROXY_URL' is not configured"
            logger.error(msg)
            raise RuntimeError(msg)

        urls: list[str] = []
        for candidate in [primary, *self.MUSIC_API_BACKUP_URLS.split(",")]:
            text = candidate.strip().rstrip("/")
            if text and text not in urls:
                urls.append(text)
        self.MUSIC_API_BASE_URLS_EFFECTIVE = urls
        return self

    def configuration_summary(self) -> Mapping[str, Any]:
        keys: dict[str, Any] = {
            "APP_ENV": self.APP_ENV,
            "MUSIC_API_DEV_MODE": self.MUSIC_API_DEV_MODE,
            "MUSIC_API_BASE_URLS": list(self.MUSIC_API_BASE_URLS_EFFECTIVE),
            "MUSIC_API_GEN_PATH": self.MUSIC_API_GEN_PATH,
            "MUSIC_API_FETCH_PATH": self.MUSIC_API_FETCH_PATH,
            "MUSIC_API_MODEL": self.MUSIC_API_MODEL,
        }
        for secret in sorted(_SECRET_FIELDS):
            value = getattr(self, secret, None)
            keys[secret] = _mask(value)
        return keys

def _load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as exc:
        errors = []
        for entry in exc.errors():
            loc = "::".join(str(part) for part in entry.get("loc", ()))
            msg = entry.get("msg", "invalid value")
            errors.append(f"{loc}: {msg}")
        message = "Invalid configuration: " + ", ".join(errors)
        logger.error(message)
        raise RuntimeError(message) from exc

settings = _load_settings()

def reload_settings() -> Settings:
    """Reload settings from the environment and update the module global."""

    global settings
    settings = _load_settings()
    return settings


__all__ = [
    "Settings",
    "settings",
    "reload_settings",
]
