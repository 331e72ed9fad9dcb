"""Structured errors raised by the music API client and their classifier."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

import requests

log = logging.getLogger("music_api.errors")


class ErrorCategory(str, Enum):
    MAINTENANCE = "maintenance"
    GATEWAY = "gateway"
    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    FORBIDDEN = "forbidden"
    BAD_REQUEST = "bad_request"
    SERVER_ERROR = "server_error"
    GENERIC = "generic"
    TIMEOUT = "timeout"
    NETWORK = "network"
    UNKNOWN = "unknown"
    FORMAT = "format"
    API_FAILURE = "api_failure"
    INVALID_REQUEST = "invalid_request"
    NO_ENDPOINTS = "no_endpoints"
    TASK_FAILED = "task_failed"
    POLL_UNSTABLE = "poll_unstable"
    POLL_TIMEOUT = "poll_timeout"


class MusicApiError(RuntimeError):
    """Base error carrying a category and a user-facing message."""

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        status: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.display_message = message
        self.status = status
        self.payload = payload

    @property
    def retryable(self) -> bool:
        return self.category in _TRANSIENT_CATEGORIES


class MusicApiClientError(MusicApiError):
    """Represents a 4xx response or input rejected before sending."""


class MusicApiServerError(MusicApiError):
    """Represents 5xx responses and network failures."""


class MusicTaskError(MusicApiError):
    """Raised when a generation task fails, stalls or times out."""


class EndpointsExhaustedError(MusicApiError):
    """Raised when every configured base URL failed for one logical call."""

    def __init__(self, errors: list[tuple[str, MusicApiError]]) -> None:
        self.errors = list(errors)
        self.last_error: Optional[MusicApiError] = self.errors[-1][1] if self.errors else None
        message = _NO_ENDPOINTS_MESSAGE
        if self.last_error is not None:
            message = f"{message}\n\nLast error:\n{self.last_error.display_message}"
        super().__init__(
            message,
            category=ErrorCategory.NO_ENDPOINTS,
            status=self.last_error.status if self.last_error is not None else None,
        )


_TRANSIENT_CATEGORIES = frozenset(
    {
        ErrorCategory.MAINTENANCE,
        ErrorCategory.GATEWAY,
        ErrorCategory.SERVER_ERROR,
        ErrorCategory.TIMEOUT,
        ErrorCategory.NETWORK,
    }
)

_NO_ENDPOINTS_MESSAGE = (
    "All API endpoints are unavailable\n\n"
    "Possible causes:\n"
    "• Network connection problems\n"
    "• The service is under maintenance\n\n"
    "What to do:\n"
    "• Check your network connection\n"
    "• Try again later\n"
    "• Contact support"
)

_STATUS_MESSAGES: dict[int, tuple[ErrorCategory, str]] = {
    503: (
        ErrorCategory.MAINTENANCE,
        "The music generation service is temporarily under maintenance\n\n"
        "What to do:\n"
        "• Wait 10-30 minutes and retry\n"
        "• Check your network connection\n"
        "• Contact support if the problem persists",
    ),
    502: (
        ErrorCategory.GATEWAY,
        "Server gateway error\n\n"
        "What to do:\n"
        "• The network is unstable, retry later\n"
        "• Check firewall settings",
    ),
    504: (
        ErrorCategory.GATEWAY,
        "Server gateway error\n\n"
        "What to do:\n"
        "• The network is unstable, retry later\n"
        "• Check firewall settings",
    ),
    429: (
        ErrorCategory.RATE_LIMITED,
        "Too many requests\n\n"
        "What to do:\n"
        "• Wait 30 seconds before trying again\n"
        "• Lower the request rate",
    ),
    401: (
        ErrorCategory.AUTH_FAILED,
        "API authentication failed\n\n"
        "Possible causes:\n"
        "• The API key has expired\n"
        "• The account balance is exhausted\n"
        "• Ask an administrator to check the configuration",
    ),
    403: (
        ErrorCategory.FORBIDDEN,
        "API access denied\n\n"
        "Possible causes:\n"
        "• Insufficient balance\n"
        "• Missing permissions\n"
        "• Check the account status",
    ),
    400: (
        ErrorCategory.BAD_REQUEST,
        "Malformed request\n\n"
        "What to do:\n"
        "• Check the input\n"
        "• Make sure the music description is reasonable",
    ),
}

_SERVER_ERROR_MESSAGE = (
    "Internal server error\n\n"
    "What to do:\n"
    "• The server is temporarily failing\n"
    "• Try again later"
)

TIMEOUT_MESSAGE = (
    "The request timed out\n\n"
    "What to do:\n"
    "• Check your network connection\n"
    "• Try again later"
)

NETWORK_MESSAGE = (
    "Network connection failed\n\n"
    "Possible causes:\n"
    "• Unstable network\n"
    "• A proxy or firewall blocked the request\n\n"
    "What to do:\n"
    "• Check your network connection\n"
    "• Try again"
)


def classify_http_status(status: int, context: str, response_text: Optional[str] = None) -> MusicApiError:
    """Map an HTTP status to a categorized error with guidance text."""

    log.error(
        "http error %s in %s",
        status,
        context,
        extra={"meta": {"status": status, "context": context, "body": response_text}},
    )
    known = _STATUS_MESSAGES.get(status)
    if known is not None:
        category, message = known
    elif status >= 500:
        category, message = ErrorCategory.SERVER_ERROR, _SERVER_ERROR_MESSAGE
    else:
        category = ErrorCategory.GENERIC
        message = f"{context} failed ({status})\n\nCheck your network connection and retry"
    error_cls = MusicApiServerError if status >= 500 else MusicApiClientError
    return error_cls(message, category=category, status=status, payload=response_text)


# the connection failed, including a body cut off or garbled mid-stream
_NETWORK_EXCEPTIONS = (
    requests.ConnectionError,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
)


def classify_exception(exc: BaseException) -> MusicApiError:
    """Map a transport exception to a categorized error."""

    if isinstance(exc, MusicApiError):
        return exc
    if isinstance(exc, requests.Timeout):
        return MusicApiServerError(TIMEOUT_MESSAGE, category=ErrorCategory.TIMEOUT, payload=str(exc))
    if isinstance(exc, _NETWORK_EXCEPTIONS):
        return MusicApiServerError(NETWORK_MESSAGE, category=ErrorCategory.NETWORK, payload=str(exc))
    message = str(exc) or "Unknown network error"
    return MusicApiError(message, category=ErrorCategory.UNKNOWN, payload=repr(exc))


__all__ = [
    "EndpointsExhaustedError",
    "ErrorCategory",
    "MusicApiClientError",
    "MusicApiError",
    "MusicApiServerError",
    "MusicTaskError",
    "NETWORK_MESSAGE",
    "TIMEOUT_MESSAGE",
    "classify_exception",
    "classify_http_status",
]
