"""Pydantic models for the music generation API payloads."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

log = logging.getLogger("music_api.schemas")


class TaskStatus(str, Enum):
    """Task state reported by the vendor, plus ``UNKNOWN`` for anything else."""

    PENDING = "PENDING"
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "TaskStatus":
        text = (raw or "").strip()
        if not text:
            return cls.UNKNOWN
        status = _STATUS_LOOKUP.get(text)
        if status is None:
            if text not in _UNRECOGNIZED_SEEN and len(_UNRECOGNIZED_SEEN) < _UNRECOGNIZED_LIMIT:
                _UNRECOGNIZED_SEEN.add(text)
                log.warning("unrecognized task status", extra={"meta": {"status": text}})
            else:
                log.debug("unrecognized task status", extra={"meta": {"status": text}})
            return cls.UNKNOWN
        return status

    @property
    def is_in_progress(self) -> bool:
        return self in _IN_PROGRESS


_STATUS_LOOKUP: dict[str, TaskStatus] = {
    "PENDING": TaskStatus.PENDING,
    "QUEUED": TaskStatus.QUEUED,
    "RUNNING": TaskStatus.RUNNING,
    "PROCESSING": TaskStatus.PROCESSING,
    "SUCCESS": TaskStatus.SUCCESS,
    "FAILED": TaskStatus.FAILED,
}
_IN_PROGRESS = frozenset(
    {TaskStatus.PENDING, TaskStatus.QUEUED, TaskStatus.RUNNING, TaskStatus.PROCESSING, TaskStatus.UNKNOWN}
)
# warned once each; anything past the limit goes to debug
_UNRECOGNIZED_LIMIT = 32
_UNRECOGNIZED_SEEN: set[str] = set()


def _loose_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, Mapping):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple, set)):
        return ", ".join(str(item) for item in value if item is not None)
    return str(value)


def _strict_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _loose_float(value: Any) -> Optional[float]:
    if value in (None, "") or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _loose_int(value: Any) -> Optional[int]:
    number = _loose_float(value)
    return int(number) if number is not None else None


def _loose_flag(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)


class GenerationRequest(BaseModel):
    """Caller-provided generation input."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    model: Optional[str] = None
    stream: Optional[bool] = None

    @field_validator("prompt")
    @classmethod
    def _require_prompt(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("prompt must not be empty")
        return value


class TrackMetadata(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None
    prompt: Optional[str] = None
    stream: Optional[bool] = None
    duration: Optional[float] = None
    is_remix: Optional[bool] = None
    priority: Optional[int] = None
    can_remix: Optional[bool] = None
    refund_credits: Optional[bool] = None
    free_quota_category: Optional[str] = None

    @field_validator("type", "prompt", "free_quota_category", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return _loose_text(value)

    @field_validator("stream", "is_remix", "can_remix", "refund_credits", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> Optional[bool]:
        return _loose_flag(value)

    @field_validator("duration", mode="before")
    @classmethod
    def _duration(cls, value: Any) -> Optional[float]:
        return _loose_float(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, value: Any) -> Optional[int]:
        return _loose_int(value)


class MusicTrack(BaseModel):
    """Single generated track as returned by the vendor.

    Only ``audio_url``, ``state`` and ``status`` decide whether a track is
    playable; they keep their value only when it is a string. Every other
    field is descriptive and coerced leniently so one odd value never rejects
    the whole status record.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = ""
    title: Optional[str] = None
    prompt: Optional[str] = None
    audio_url: Optional[str] = None
    image_url: Optional[str] = None
    image_large_url: Optional[str] = None
    video_url: Optional[str] = None
    duration: Optional[float] = None
    created_at: Optional[str] = None
    status: Optional[str] = None
    model_name: Optional[str] = None
    handle: Optional[str] = None
    display_name: Optional[str] = None
    state: Optional[str] = None
    clip_id: Optional[str] = None
    explicit: bool = False
    is_liked: bool = False
    is_public: bool = False
    tags: Optional[str] = None
    mv: Optional[str] = None
    metadata: Optional[TrackMetadata] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return _loose_text(value) or ""

    @field_validator(
        "title",
        "prompt",
        "image_url",
        "image_large_url",
        "video_url",
        "created_at",
        "model_name",
        "handle",
        "display_name",
        "clip_id",
        "tags",
        "mv",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _loose_text(value)

    @field_validator("audio_url", "state", "status", mode="before")
    @classmethod
    def _playability_text(cls, value: Any) -> Optional[str]:
        return _strict_text(value)

    @field_validator("duration", mode="before")
    @classmethod
    def _coerce_duration(cls, value: Any) -> Optional[float]:
        return _loose_float(value)

    @field_validator("explicit", "is_liked", "is_public", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        return bool(_loose_flag(value))

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_mapping(cls, value: Any) -> Any:
        return value if isinstance(value, Mapping) else None


class TaskData(BaseModel):
    """Task status record re-fetched on every poll."""

    model_config = ConfigDict(extra="ignore")

    task_id: Optional[str] = None
    action: Optional[str] = None
    status: Optional[str] = None
    fail_reason: Optional[str] = None
    submit_time: Optional[int] = None
    start_time: Optional[int] = None
    finish_time: Optional[int] = None
    progress: Optional[str] = None
    data: Optional[list[MusicTrack]] = None

    @field_validator("task_id", "action", "status", "fail_reason", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _loose_text(value)

    @field_validator("submit_time", "start_time", "finish_time", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Optional[int]:
        return _loose_int(value)

    @field_validator("data", mode="before")
    @classmethod
    def _tracks_only(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return None
        return [item for item in value if isinstance(item, (Mapping, MusicTrack))]

    @field_validator("progress", mode="before")
    @classmethod
    def _progress_text(cls, value: Any) -> Optional[str]:
        if value in (None, ""):
            return None
        return _loose_text(value)

    @property
    def task_status(self) -> TaskStatus:
        return TaskStatus.parse(self.status)


class MusicGenerationResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: Optional[str] = None
    message: Optional[str] = None
    data: Optional[str] = None

    @field_validator("code", "message", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Optional[str]:
        text = _loose_text(value)
        return text.strip() if text is not None else None

    @field_validator("data", mode="before")
    @classmethod
    def _task_id(cls, value: Any) -> Optional[str]:
        if isinstance(value, Mapping):
            value = value.get("task_id") or value.get("taskId")
        if isinstance(value, str):
            return value.strip()
        # bool is an int subclass but never a task id
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return str(value)
        return None


class FetchTaskResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    code: Optional[str] = None
    message: Optional[str] = None
    data: TaskData = Field(default_factory=TaskData)

    @field_validator("code", "message", mode="before")
    @classmethod
    def _code_text(cls, value: Any) -> Optional[str]:
        return _loose_text(value)

    @field_validator("data", mode="before")
    @classmethod
    def _data_mapping(cls, value: Any) -> Any:
        if isinstance(value, (Mapping, TaskData)):
            return value
        return {}


__all__ = [
    "FetchTaskResponse",
    "GenerationRequest",
    "MusicGenerationResponse",
    "MusicTrack",
    "TaskData",
    "TaskStatus",
    "TrackMetadata",
]
