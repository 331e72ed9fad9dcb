"""Polling loop that waits for a generation task to finish."""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Protocol

from metrics import music_api_poll_attempts, music_api_poll_total

from .errors import ErrorCategory, MusicApiError, MusicTaskError
from .progress import estimate_progress
from .schemas import MusicTrack, TaskData, TaskStatus
from .validator import filter_valid_tracks

log = logging.getLogger("music_api.poller")

ProgressCallback = Callable[[str, str, Optional[list[MusicTrack]]], None]

_INITIAL_PROGRESS = "0%"
_COMPLETE_PROGRESS = "100%"


class TaskFetcher(Protocol):
    def fetch_task(self, task_id: str) -> TaskData: ...


class TaskPoller:
    """Fetch task status until it succeeds with playable tracks, fails, or times out."""

    def __init__(
        self,
        fetcher: TaskFetcher,
        *,
        interval: float = 2.0,
        max_attempts: int = 180,
        max_consecutive_errors: int = 3,
        error_delay_cap: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.fetcher = fetcher
        self.interval = max(0.0, float(interval))
        self.max_attempts = max(1, int(max_attempts))
        self.max_consecutive_errors = max(1, int(max_consecutive_errors))
        self.error_delay_cap = max(0.0, float(error_delay_cap))
        self._sleep = sleep

    def _finish(self, outcome: str, attempts: int) -> None:
        music_api_poll_total.labels(outcome=outcome).inc()
        music_api_poll_attempts.observe(attempts)

    def poll(self, task_id: str, on_progress: Optional[ProgressCallback] = None) -> list[MusicTrack]:
        consecutive_errors = 0
        last_progress = _INITIAL_PROGRESS
        log.info(
            "music_api.poll start",
            extra={"meta": {"taskId": task_id, "max_attempts": self.max_attempts, "interval": self.interval}},
        )

        for attempt in range(self.max_attempts):
            try:
                task = self.fetcher.fetch_task(task_id)
            except MusicApiError as exc:
                consecutive_errors += 1
                log.warning(
                    "music_api.poll fetch failed",
                    extra={
                        "meta": {
                            "taskId": task_id,
                            "attempt": attempt + 1,
                            "consecutive_errors": consecutive_errors,
                            "category": exc.category.value,
                        }
                    },
                )
                if consecutive_errors >= self.max_consecutive_errors:
                    self._finish("unstable", attempt + 1)
                    raise MusicTaskError(
                        f"Status check failed {self.max_consecutive_errors} times in a row; "
                        "the service may be unstable",
                        category=ErrorCategory.POLL_UNSTABLE,
                        payload=exc.display_message,
                    ) from exc
                if attempt < self.max_attempts - 1:
                    self._sleep(min(self.interval * 2, self.error_delay_cap))
                    continue
                self._finish("error", attempt + 1)
                raise

            consecutive_errors = 0
            status = task.task_status
            if task.progress:
                progress = task.progress
            elif attempt > 0:
                progress = estimate_progress(attempt, self.interval)
            else:
                progress = last_progress
            last_progress = progress

            log.info(
                "music_api.poll step",
                extra={
                    "meta": {
                        "taskId": task_id,
                        "attempt": attempt + 1,
                        "status": task.status,
                        "mapped_state": status.value,
                        "progress": progress,
                    }
                },
            )
            if on_progress is not None:
                on_progress(progress, task.status or "", task.data)

            if status is TaskStatus.SUCCESS:
                valid_tracks = filter_valid_tracks(task.data)
                if valid_tracks:
                    log.info(
                        "music_api.poll ready",
                        extra={
                            "meta": {
                                "taskId": task_id,
                                "takes": len(valid_tracks),
                                "durations": [track.duration for track in valid_tracks],
                            }
                        },
                    )
                    if on_progress is not None:
                        on_progress(_COMPLETE_PROGRESS, TaskStatus.SUCCESS.value, valid_tracks)
                    self._finish("success", attempt + 1)
                    return valid_tracks
                log.warning(
                    "music_api.poll success without playable tracks, still polling",
                    extra={"meta": {"taskId": task_id, "tracks": len(task.data or [])}},
                )
            elif status is TaskStatus.FAILED:
                self._finish("failed", attempt + 1)
                log.error(
                    "music_api.poll task failed",
                    extra={"meta": {"taskId": task_id, "fail_reason": task.fail_reason}},
                )
                raise MusicTaskError(
                    task.fail_reason or "Music generation failed",
                    category=ErrorCategory.TASK_FAILED,
                    payload=task.model_dump(),
                )
            elif not status.is_in_progress:
                self._finish("error", attempt + 1)
                raise MusicTaskError(
                    f"Unhandled task status {status.value}",
                    category=ErrorCategory.UNKNOWN,
                    payload=task.model_dump(),
                )

            if attempt < self.max_attempts - 1:
                self._sleep(self.interval)

        self._finish("timeout", self.max_attempts)
        log.warning(
            "music_api.poll timeout",
            extra={"meta": {"taskId": task_id, "attempts": self.max_attempts}},
        )
        raise MusicTaskError(
            f"Music generation timed out after {self.max_attempts} status checks; contact support or try again later",
            category=ErrorCategory.POLL_TIMEOUT,
        )


__all__ = ["ProgressCallback", "TaskFetcher", "TaskPoller"]
