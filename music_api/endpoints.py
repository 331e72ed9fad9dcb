"""Endpoint fallback: the same logical call tried against several base URLs."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

from requests import Response

from metrics import music_api_endpoint_failures_total

from .errors import EndpointsExhaustedError, MusicApiError, classify_http_status
from .transport import HttpTransport

log = logging.getLogger("music_api.endpoints")


def join_url(base_url: str, path: str) -> str:
    if path.startswith("http://") or path.startswith("https://"):
        return path
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{base_url.rstrip('/')}{path}"


class EndpointFallback:
    """Try each configured base URL in order until one answers successfully."""

    def __init__(self, base_urls: Sequence[str], transport: HttpTransport) -> None:
        urls = [str(url).strip().rstrip("/") for url in base_urls if str(url or "").strip()]
        if not urls:
            raise ValueError("at least one base url is required")
        self.base_urls: tuple[str, ...] = tuple(urls)
        self.transport = transport

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Mapping[str, str]] = None,
        json_payload: Optional[Mapping[str, Any]] = None,
    ) -> Response:
        errors: list[tuple[str, MusicApiError]] = []
        log.debug(
            "music_api.endpoints trying",
            extra={"meta": {"path": path, "endpoints": list(self.base_urls)}},
        )
        for base_url in self.base_urls:
            url = join_url(base_url, path)
            try:
                response = self.transport.request(method, url, headers=headers, json_payload=json_payload)
            except MusicApiError as exc:
                error = exc
            else:
                if response.ok:
                    log.info(
                        "music_api.endpoints ok",
                        extra={"meta": {"endpoint": base_url, "path": path, "status": response.status_code}},
                    )
                    return response
                error = classify_http_status(response.status_code, f"API call ({base_url})", response.text)
            music_api_endpoint_failures_total.labels(endpoint=base_url).inc()
            log.warning(
                "music_api.endpoints failed",
                extra={
                    "meta": {
                        "endpoint": base_url,
                        "path": path,
                        "status": error.status,
                        "category": error.category.value,
                    }
                },
            )
            errors.append((base_url, error))
        raise EndpointsExhaustedError(errors)


__all__ = ["EndpointFallback", "join_url"]
