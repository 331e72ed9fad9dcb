"""High level music generation service: submit, wait, return tracks."""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Union

from .client import MusicApiClient
from .config import MusicApiConfig
from .poller import ProgressCallback, TaskPoller
from .schemas import GenerationRequest, MusicTrack, TaskData

log = logging.getLogger("music_api.service")


class MusicApiService:
    """Facade exposing the public operations of the client and the poller."""

    def __init__(
        self,
        config: Optional[MusicApiConfig] = None,
        *,
        client: Optional[MusicApiClient] = None,
        poller: Optional[TaskPoller] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if client is None:
            client = MusicApiClient(config or MusicApiConfig.from_settings(), sleep=sleep)
        self.config = client.config
        self.client = client
        self.poller = poller or TaskPoller(
            client,
            interval=self.config.poll_interval,
            max_attempts=self.config.poll_max_attempts,
            max_consecutive_errors=self.config.poll_max_consecutive_errors,
            error_delay_cap=self.config.poll_error_delay_cap,
            sleep=sleep,
        )

    def close(self) -> None:
        self.client.close()

    def generate_music(self, request: Union[GenerationRequest, str]) -> str:
        return self.client.generate_music(request)

    def fetch_task(self, task_id: str) -> TaskData:
        return self.client.fetch_task(task_id)

    def poll_task_until_complete(
        self,
        task_id: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[MusicTrack]:
        return self.poller.poll(task_id, on_progress=on_progress)

    def generate_and_wait(
        self,
        request: Union[GenerationRequest, str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[MusicTrack]:
        task_id = self.generate_music(request)
        log.info("music_api.service waiting", extra={"meta": {"taskId": task_id}})
        return self.poll_task_until_complete(task_id, on_progress=on_progress)

    def validate_audio_url(self, url: str) -> bool:
        return self.client.validate_audio_url(url)

    def health_check(self) -> bool:
        return self.client.health_check()


_DEFAULT_SERVICE: Optional[MusicApiService] = None
_DEFAULT_LOCK = threading.Lock()


def get_default_service() -> MusicApiService:
    """Return a process-wide service configured from the environment."""

    global _DEFAULT_SERVICE
    if _DEFAULT_SERVICE is not None:
        return _DEFAULT_SERVICE
    with _DEFAULT_LOCK:
        if _DEFAULT_SERVICE is None:
            _DEFAULT_SERVICE = MusicApiService()
        return _DEFAULT_SERVICE


def reset_default_service() -> None:
    global _DEFAULT_SERVICE
    with _DEFAULT_LOCK:
        if _DEFAULT_SERVICE is not None:
            _DEFAULT_SERVICE.close()
        _DEFAULT_SERVICE = None


__all__ = [
    "MusicApiService",
    "get_default_service",
    "reset_default_service",
]
