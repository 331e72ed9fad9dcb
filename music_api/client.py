"""HTTP client for the asynchronous music generation API."""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Mapping, MutableMapping, Optional, Union

import requests
from pydantic import ValidationError
from requests import Response, Session

from logging_utils import register_secret
from metrics import music_api_request_duration_seconds, music_api_requests_total

from .config import MusicApiConfig
from .endpoints import EndpointFallback
from .errors import ErrorCategory, MusicApiClientError, MusicApiError
from .schemas import FetchTaskResponse, GenerationRequest, MusicGenerationResponse, TaskData
from .transport import HttpTransport

log = logging.getLogger("music_api.client")

_SUCCESS_CODE = "success"
_EXCERPT_LENGTH = 200
_FETCH_FAILURE_MESSAGE = "Failed to fetch task status"

_FORMAT_MESSAGE = (
    "The server returned a malformed response\n\n"
    "Response: {excerpt}...\n\n"
    "What to do:\n"
    "• Try again later\n"
    "• Contact support"
)
_MISSING_TASK_ID_MESSAGE = (
    "No valid task id was returned\n\n"
    "What to do:\n"
    "• Submit the generation again\n"
    "• Check the input"
)
_API_FAILURE_MESSAGE = (
    "API call failed\n\n"
    "Returned code: {code}\n\n"
    "What to do:\n"
    "• Check your network connection\n"
    "• Try again later"
)


def _key_preview(api_key: str) -> str:
    if not api_key:
        return ""
    return api_key[:10] + "..."


class MusicApiClient:
    """Submit generation tasks and fetch their status."""

    def __init__(
        self,
        config: MusicApiConfig,
        *,
        session: Optional[Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        if not config.api_key:
            log.warning("MusicApiClient initialized without API key; requests will fail")
        register_secret(config.api_key)
        self.transport = HttpTransport(
            session=session,
            timeout=config.request_timeout,
            max_attempts=config.retry_attempts,
            retry_delay=config.retry_delay,
            sleep=sleep,
        )
        self.endpoints = EndpointFallback(config.base_urls, self.transport)

    # ------------------------------------------------------------------ helpers
    @property
    def session(self) -> Session:
        return self.transport.session

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "MusicApiClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _headers(self) -> MutableMapping[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "stream": self.config.stream,
        }

    @staticmethod
    def _parse_json(response: Response) -> Any:
        text = response.text or ""
        try:
            return json.loads(text)
        except ValueError as exc:
            log.error(
                "music_api.client invalid json",
                extra={"meta": {"status": response.status_code, "body": text}},
            )
            raise MusicApiError(
                _FORMAT_MESSAGE.format(excerpt=text[:_EXCERPT_LENGTH]),
                category=ErrorCategory.FORMAT,
                status=response.status_code,
                payload=text,
            ) from exc

    @staticmethod
    def _format_error(response: Response, payload: Any, exc: ValidationError, failure_message: str) -> MusicApiError:
        # a vendor failure code outranks an unexpected payload shape
        if isinstance(payload, Mapping) and str(payload.get("code")) != _SUCCESS_CODE:
            vendor_message = payload.get("message")
            return MusicApiError(
                vendor_message if isinstance(vendor_message, str) and vendor_message.strip() else failure_message,
                category=ErrorCategory.API_FAILURE,
                status=response.status_code,
                payload=payload,
            )
        excerpt = json.dumps(payload, ensure_ascii=False, default=str)[:_EXCERPT_LENGTH]
        log.error(
            "music_api.client unexpected payload",
            extra={"meta": {"status": response.status_code, "errors": exc.errors(include_url=False)}},
        )
        return MusicApiError(
            _FORMAT_MESSAGE.format(excerpt=excerpt),
            category=ErrorCategory.FORMAT,
            status=response.status_code,
            payload=payload,
        )

    def _observe(self, operation: str, start_ts: float, result: str) -> None:
        music_api_requests_total.labels(operation=operation, result=result).inc()
        music_api_request_duration_seconds.labels(operation=operation).observe(
            max(0.0, time.monotonic() - start_ts)
        )

    # ------------------------------------------------------------------ public API
    def generate_music(self, request: Union[GenerationRequest, str]) -> str:
        """Submit a generation request and return the vendor task id."""

        if isinstance(request, str):
            try:
                request = GenerationRequest(prompt=request)
            except ValidationError as exc:
                raise MusicApiClientError(
                    "A music description is required",
                    category=ErrorCategory.INVALID_REQUEST,
                ) from exc
        payload = self.build_payload(request)
        log.info(
            "music_api.client generate",
            extra={
                "meta": {
                    "prompt_length": len(request.prompt),
                    "model": payload["model"],
                    "key": _key_preview(self.config.api_key),
                    "endpoints": list(self.endpoints.base_urls),
                }
            },
        )
        start_ts = time.monotonic()
        try:
            response = self.endpoints.request(
                "POST",
                self.config.generate_path,
                headers=self._headers(),
                json_payload=payload,
            )
            raw = self._parse_json(response)
            try:
                result = MusicGenerationResponse.model_validate(raw if isinstance(raw, Mapping) else {"data": raw})
            except ValidationError as exc:
                code = raw.get("code") if isinstance(raw, Mapping) else None
                raise self._format_error(response, raw, exc, _API_FAILURE_MESSAGE.format(code=code)) from exc

            if result.code != _SUCCESS_CODE:
                log.error("music_api.client generate rejected", extra={"meta": {"response": raw}})
                raise MusicApiError(
                    result.message or _API_FAILURE_MESSAGE.format(code=result.code),
                    category=ErrorCategory.API_FAILURE,
                    status=response.status_code,
                    payload=raw,
                )
            if not result.data:
                log.error("music_api.client generate without task id", extra={"meta": {"response": raw}})
                raise MusicApiError(
                    _MISSING_TASK_ID_MESSAGE,
                    category=ErrorCategory.API_FAILURE,
                    status=response.status_code,
                    payload=raw,
                )
        except MusicApiError as exc:
            self._observe("generate", start_ts, exc.category.value)
            log.error(
                "music_api.client generate failed",
                extra={
                    "meta": {
                        "category": exc.category.value,
                        "status": exc.status,
                        "key": _key_preview(self.config.api_key),
                        "endpoints": list(self.endpoints.base_urls),
                    }
                },
            )
            raise

        self._observe("generate", start_ts, "ok")
        log.info("music_api.client task created", extra={"meta": {"taskId": result.data}})
        return result.data

    def fetch_task(self, task_id: str) -> TaskData:
        """Fetch the current status record of ``task_id``."""

        lookup_id = str(task_id or "").strip()
        if not lookup_id:
            raise MusicApiClientError("taskId is required for status check", category=ErrorCategory.INVALID_REQUEST)
        start_ts = time.monotonic()
        try:
            response = self.endpoints.request(
                "GET",
                f"{self.config.fetch_path}/{lookup_id}",
                headers=self._headers(),
            )
            raw = self._parse_json(response)
            try:
                result = FetchTaskResponse.model_validate(raw if isinstance(raw, Mapping) else {})
            except ValidationError as exc:
                raise self._format_error(response, raw, exc, _FETCH_FAILURE_MESSAGE) from exc
            if result.code != _SUCCESS_CODE:
                raise MusicApiError(
                    result.message or _FETCH_FAILURE_MESSAGE,
                    category=ErrorCategory.API_FAILURE,
                    status=response.status_code,
                    payload=raw,
                )
        except MusicApiError as exc:
            self._observe("fetch", start_ts, exc.category.value)
            log.warning(
                "music_api.client fetch failed",
                extra={"meta": {"taskId": lookup_id, "category": exc.category.value, "status": exc.status}},
            )
            raise

        self._observe("fetch", start_ts, "ok")
        log.debug(
            "music_api.client fetch",
            extra={
                "meta": {
                    "taskId": lookup_id,
                    "status": result.data.status,
                    "progress": result.data.progress,
                    "tracks": len(result.data.data or []),
                }
            },
        )
        return result.data

    def validate_audio_url(self, url: str) -> bool:
        """Best-effort check that ``url`` answers a HEAD request."""

        target = str(url or "").strip()
        if not target:
            return False
        try:
            response = self.session.head(target, allow_redirects=True, timeout=self.config.request_timeout)
        except requests.RequestException as exc:
            log.warning("music_api.client audio url check failed", extra={"meta": {"url": target, "error": str(exc)}})
            return False
        if response.status_code >= 400:
            log.warning(
                "music_api.client audio url unavailable",
                extra={"meta": {"url": target, "status": response.status_code}},
            )
            return False
        return True

    def health_check(self) -> bool:
        """Return ``True`` when any configured endpoint answers below 500."""

        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        for base_url in self.endpoints.base_urls:
            try:
                response = self.session.head(base_url, headers=headers, timeout=self.config.request_timeout)
            except requests.RequestException as exc:
                log.warning(
                    "music_api.client health check failed",
                    extra={"meta": {"endpoint": base_url, "error": str(exc)}},
                )
                continue
            if response.status_code < 500:
                log.info(
                    "music_api.client health check passed",
                    extra={"meta": {"endpoint": base_url, "status": response.status_code}},
                )
                return True
            log.warning(
                "music_api.client health check failed",
                extra={"meta": {"endpoint": base_url, "status": response.status_code}},
            )
        return False


__all__ = ["MusicApiClient"]
