"""Selection of tracks that are actually playable."""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, TypeVar, Union

from .schemas import MusicTrack

_COMPLETED_STATE = "succeeded"
_COMPLETED_STATUS = "complete"

TrackLike = Union[MusicTrack, Mapping[str, Any]]
T = TypeVar("T", MusicTrack, Mapping[str, Any])


def _field(track: TrackLike, name: str) -> Optional[Any]:
    if isinstance(track, Mapping):
        return track.get(name)
    return getattr(track, name, None)


def is_valid_track(track: TrackLike) -> bool:
    """A track is valid when it has an audio URL and a completed state."""

    audio_url = _field(track, "audio_url")
    if not isinstance(audio_url, str) or not audio_url.strip():
        return False
    return _field(track, "state") == _COMPLETED_STATE or _field(track, "status") == _COMPLETED_STATUS


def filter_valid_tracks(tracks: Optional[Iterable[T]]) -> list[T]:
    if not tracks:
        return []
    return [track for track in tracks if is_valid_track(track)]


__all__ = ["filter_valid_tracks", "is_valid_track"]
