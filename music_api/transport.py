"""HTTP transport with a per-attempt timeout and bounded retry."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping, MutableMapping, Optional

import requests
from requests import Response, Session
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_fixed

from metrics import music_api_http_retries_total

from .errors import MusicApiError, MusicApiServerError, classify_exception, classify_http_status

log = logging.getLogger("music_api.transport")

DEFAULT_TIMEOUT = 15.0
DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_RETRY_DELAY = 2.0


class _ServerStatus(MusicApiServerError):
    """A 5xx response kept around so it can be retried and finally surfaced."""

    def __init__(self, response: Response, error: MusicApiError) -> None:
        super().__init__(
            error.display_message,
            category=error.category,
            status=response.status_code,
            payload=error.payload,
        )
        self.response = response


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, MusicApiError) and exc.retryable


class HttpTransport:
    """Thin wrapper around :mod:`requests` with fixed-delay retries."""

    def __init__(
        self,
        *,
        session: Optional[Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = float(timeout)
        self.max_attempts = max(1, int(max_attempts))
        self.retry_delay = max(0.0, float(retry_delay))
        self._sleep = sleep

    def close(self) -> None:
        self.session.close()

    def _send_once(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]],
        json_payload: Optional[Mapping[str, Any]],
        attempt: int,
        max_attempts: int,
    ) -> Response:
        log.info(
            "music_api.http request",
            extra={"meta": {"method": method.upper(), "url": url, "attempt": attempt, "of": max_attempts}},
        )
        start_ts = time.monotonic()
        try:
            response = self.session.request(
                method.upper(),
                url,
                headers=dict(headers or {}),
                json=json_payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            error = classify_exception(exc)
            log.warning(
                "music_api.http failure",
                extra={
                    "meta": {
                        "method": method.upper(),
                        "url": url,
                        "attempt": attempt,
                        "of": max_attempts,
                        "category": error.category.value,
                        "error": str(exc),
                    }
                },
            )
            raise error from exc

        duration_ms = max(0.0, (time.monotonic() - start_ts) * 1000.0)
        status = response.status_code
        log.info(
            "music_api.http response",
            extra={
                "meta": {
                    "method": method.upper(),
                    "url": url,
                    "status": status,
                    "reason": response.reason,
                    "ms": round(duration_ms, 3),
                    "attempt": attempt,
                }
            },
        )
        # 4xx is returned as is, retrying cannot change the answer
        if status < 500:
            return response
        log.warning(
            "music_api.http server error",
            extra={"meta": {"url": url, "status": status, "attempt": attempt, "of": max_attempts}},
        )
        raise _ServerStatus(response, classify_http_status(status, f"HTTP {status}: {response.reason}", response.text))

    def _log_retry(self, retry_state: Any) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        reason = error.category.value if isinstance(error, MusicApiError) else "error"
        music_api_http_retries_total.labels(reason=reason).inc()
        log.warning(
            "music_api.http retry",
            extra={
                "meta": {
                    "attempt": retry_state.attempt_number,
                    "delay": self.retry_delay,
                    "reason": reason,
                }
            },
        )

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        json_payload: Optional[Mapping[str, Any]] = None,
        max_attempts: Optional[int] = None,
    ) -> Response:
        """Send a request, retrying server errors, timeouts and network failures.

        Successful responses and client errors (4xx) are returned after the
        first attempt. Once attempts are exhausted the last error is raised as
        a :class:`MusicApiServerError`.
        """

        attempts = max(1, int(max_attempts or self.max_attempts))
        counter: MutableMapping[str, int] = {"attempt": 0}

        def _attempt() -> Response:
            counter["attempt"] += 1
            return self._send_once(
                method,
                url,
                headers=headers,
                json_payload=json_payload,
                attempt=counter["attempt"],
                max_attempts=attempts,
            )

        retryer = Retrying(
            stop=stop_after_attempt(attempts),
            wait=wait_fixed(self.retry_delay),
            retry=retry_if_exception(_is_transient),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return retryer(_attempt)
        except _ServerStatus as exc:
            raise MusicApiServerError(
                exc.display_message,
                category=exc.category,
                status=exc.status,
                payload=exc.payload,
            ) from exc


__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_TIMEOUT",
    "HttpTransport",
]
