import os
import sys
from typing import Any, Iterable, Optional, Union

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from music_api.config import MusicApiConfig
from music_api.errors import ErrorCategory, MusicApiServerError
from music_api.schemas import TaskData

API_KEY = "sk-test-key-0123456789"
PRIMARY = "https://primary.example"
BACKUP = "https://backup.example"


def make_config(*base_urls: str, **overrides: Any) -> MusicApiConfig:
    params: dict[str, Any] = {
        "api_key": API_KEY,
        "base_urls": base_urls or (PRIMARY,),
    }
    params.update(overrides)
    return MusicApiConfig(**params)


def track(
    track_id: str = "clip-1",
    *,
    audio_url: str = "https://cdn.example/clip-1.mp3",
    state: Optional[str] = "succeeded",
    status: Optional[str] = "complete",
    **extra: Any,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": track_id,
        "title": "Lofi Beat",
        "audio_url": audio_url,
        "image_url": "https://cdn.example/clip-1.jpg",
        "duration": 121.5,
        "state": state,
        "status": status,
    }
    payload.update(extra)
    return payload


def task_payload(
    status: Optional[str],
    *,
    tracks: Optional[list[dict[str, Any]]] = None,
    progress: Optional[str] = None,
    fail_reason: Optional[str] = None,
    task_id: str = "task-123",
) -> dict[str, Any]:
    return {
        "code": "success",
        "message": "",
        "data": {
            "task_id": task_id,
            "action": "MUSIC",
            "status": status,
            "fail_reason": fail_reason,
            "progress": progress,
            "data": tracks,
        },
    }


def network_error() -> MusicApiServerError:
    return MusicApiServerError("Network connection failed", category=ErrorCategory.NETWORK)


class FakeFetcher:
    """Replays scripted status records or errors, one per ``fetch_task`` call."""

    def __init__(self, script: Iterable[Union[dict[str, Any], BaseException]]) -> None:
        self.script = list(script)
        self.calls: list[str] = []

    def fetch_task(self, task_id: str) -> TaskData:
        self.calls.append(task_id)
        if not self.script:
            raise AssertionError("fetch_task called more often than scripted")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return TaskData.model_validate(item["data"])


__all__ = [
    "API_KEY",
    "BACKUP",
    "FakeFetcher",
    "PRIMARY",
    "make_config",
    "network_error",
    "task_payload",
    "track",
]
