"""Public surface for the music generation API client."""
from .client import MusicApiClient
from .config import MusicApiConfig
from .errors import (
    EndpointsExhaustedError,
    ErrorCategory,
    MusicApiClientError,
    MusicApiError,
    MusicApiServerError,
    MusicTaskError,
)
from .schemas import GenerationRequest, MusicTrack, TaskData, TaskStatus
from .service import MusicApiService, get_default_service
from .validator import filter_valid_tracks, is_valid_track

__all__ = [
    "EndpointsExhaustedError",
    "ErrorCategory",
    "GenerationRequest",
    "MusicApiClient",
    "MusicApiClientError",
    "MusicApiConfig",
    "MusicApiError",
    "MusicApiServerError",
    "MusicApiService",
    "MusicTaskError",
    "MusicTrack",
    "TaskData",
    "TaskStatus",
    "filter_valid_tracks",
    "get_default_service",
    "is_valid_track",
]
