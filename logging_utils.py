"""Structured JSON logging with secret redaction for the music API client."""
from __future__ import annotations

import json
import logging
import os
import re
import threading
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from core import settings as settings_module

MAX_IN_LOG_BODY = int(settings_module.settings.MAX_IN_LOG_BODY)
_TRUNCATED_SUFFIX = "…(truncated)"

_SECRET_SUFFIXES = ("_TOKEN", "_KEY", "_SECRET")
_MIN_SECRET_LENGTH = 4


def _env_secrets() -> set[str]:
    return {
        value
        for name, value in os.environ.items()
        if value and (name.upper().endswith(_SECRET_SUFFIXES) or name.upper() == "MUSIC_API_KEY")
    }


_SECRETS_LOCK = threading.Lock()
_ENV_SECRETS = _env_secrets()
# values handed over at runtime, such as an injected API key
_REGISTERED_SECRETS: set[str] = set()


def refresh_secret_cache() -> None:
    """Re-read secret values from the environment; registered values are kept."""

    global _ENV_SECRETS
    fresh = _env_secrets()
    with _SECRETS_LOCK:
        _ENV_SECRETS = fresh


def register_secret(value: Optional[str]) -> None:
    """Redact ``value`` from every log record from now on."""

    text = (value or "").strip()
    if len(text) < _MIN_SECRET_LENGTH:
        return
    with _SECRETS_LOCK:
        _REGISTERED_SECRETS.add(text)


_CREDENTIAL_RE = re.compile(r"(token=|Bearer\s+)([^&\s]+)", re.IGNORECASE)


def _redact(text: str) -> str:
    if not text:
        return text
    with _SECRETS_LOCK:
        secrets = _ENV_SECRETS | _REGISTERED_SECRETS
    # longest first so a secret containing another is fully masked
    for secret in sorted(secrets, key=len, reverse=True):
        if secret in text:
            text = text.replace(secret, "***")
    return _CREDENTIAL_RE.sub(r"\1***", text)


def _clip(text: str) -> str:
    if len(text) <= MAX_IN_LOG_BODY:
        return text
    return text[:MAX_IN_LOG_BODY] + _TRUNCATED_SUFFIX


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return _clip(_redact(value))
    if isinstance(value, Mapping):
        return {str(key): _scrub(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_scrub(item) for item in value]
    return value


class JsonFormatter(logging.Formatter):
    """Render a record as one JSON line: ``{ts, level, msg, meta}``.

    Structured context is passed as ``extra={"meta": {...}}``; every string in
    it is redacted and clipped like the message itself.
    """

    def format(self, record: logging.LogRecord) -> str:
        extra_meta = getattr(record, "meta", None)
        if isinstance(extra_meta, Mapping):
            meta: dict[str, Any] = _scrub(dict(extra_meta))
        elif extra_meta is not None:
            meta = {"extra": _scrub(extra_meta)}
        else:
            meta = {}
        meta.setdefault("logger", record.name)
        meta.setdefault("module", record.module)
        meta.setdefault("pid", os.getpid())
        if record.exc_info:
            meta["exc_info"] = _clip(_redact(self.formatException(record.exc_info)))

        return json.dumps(
            {
                "ts": datetime.now(timezone.utc).isoformat(),
                "level": record.levelname,
                "msg": _clip(_redact(record.getMessage())),
                "meta": meta,
            },
            ensure_ascii=False,
            default=str,
        )


_CONFIGURED = False
_CONFIG_LOCK = threading.Lock()


def init_logging(app_name: str, level: str | None = None, *, json_logs: bool | None = None) -> None:
    """Install one root handler (JSON or plain text) and log the masked configuration."""

    current = settings_module.settings
    resolved = logging.getLevelName(str(level or current.LOG_LEVEL).strip().upper())
    effective_level = resolved if isinstance(resolved, int) else logging.INFO
    use_json = current.LOG_JSON if json_logs is None else bool(json_logs)

    global _CONFIGURED
    with _CONFIG_LOCK:
        root = logging.getLogger()
        if not _CONFIGURED:
            handler = logging.StreamHandler()
            handler.setFormatter(
                JsonFormatter() if use_json else logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
            )
            root.handlers.clear()
            root.addHandler(handler)
            logging.captureWarnings(True)
            for noisy in ("urllib3", "requests", "pydantic"):
                logging.getLogger(noisy).setLevel(logging.WARNING)
            _CONFIGURED = True
        root.setLevel(effective_level)

    logging.getLogger(app_name).log(
        max(logging.INFO, effective_level),
        "configuration summary",
        extra={"meta": current.configuration_summary()},
    )


__all__ = [
    "JsonFormatter",
    "MAX_IN_LOG_BODY",
    "init_logging",
    "refresh_secret_cache",
    "register_secret",
]
