"""Injected configuration for the music API client."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.settings import Settings


@dataclass(frozen=True, slots=True)
class MusicApiConfig:
    api_key: str
    base_urls: tuple[str, ...]
    generate_path: str = "/suno/submit/music"
    fetch_path: str = "/suno/fetch"
    model: str = "suno-v3.5"
    stream: bool = True
    request_timeout: float = 15.0
    retry_attempts: int = 2
    retry_delay: float = 2.0
    poll_interval: float = 2.0
    poll_max_attempts: int = 180
    poll_max_consecutive_errors: int = 3
    poll_error_delay_cap: float = 5.0

    def __post_init__(self) -> None:
        urls = tuple(str(url).strip().rstrip("/") for url in self.base_urls if str(url or "").strip())
        if not urls:
            raise ValueError("at least one base url is required")
        object.__setattr__(self, "base_urls", urls)
        object.__setattr__(self, "api_key", (self.api_key or "").strip())
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be positive")
        if self.poll_max_attempts < 1:
            raise ValueError("poll_max_attempts must be positive")
        if self.poll_max_consecutive_errors < 1:
            raise ValueError("poll_max_consecutive_errors must be positive")

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "MusicApiConfig":
        if settings is None:
            from core import settings as settings_module

            settings = settings_module.settings
        return cls(
            api_key=settings.MUSIC_API_KEY or "",
            base_urls=tuple(settings.MUSIC_API_BASE_URLS_EFFECTIVE),
            generate_path=settings.MUSIC_API_GEN_PATH,
            fetch_path=settings.MUSIC_API_FETCH_PATH,
            model=settings.MUSIC_API_MODEL,
            stream=bool(settings.MUSIC_API_STREAM),
            request_timeout=float(settings.HTTP_TIMEOUT),
            retry_attempts=int(settings.HTTP_RETRY_ATTEMPTS),
            retry_delay=float(settings.HTTP_RETRY_DELAY),
            poll_interval=float(settings.POLL_INTERVAL),
            poll_max_attempts=int(settings.POLL_MAX_ATTEMPTS),
            poll_max_consecutive_errors=int(settings.POLL_MAX_CONSECUTIVE_ERRORS),
            poll_error_delay_cap=float(settings.POLL_ERROR_DELAY_CAP),
        )


__all__ = ["MusicApiConfig"]
