from __future__ import annotations

import json
import logging
import re
import sys
from typing import Any

from socialauth.core.config import BaseAppSettings, settings

# LogRecord attributes that are not user supplied ``extra`` values
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}

# OAuth parameters that must never reach a log line in clear
_SECRET_PARAMS = re.compile(
    r"(?P<key>\b(?:code|access_token|refresh_token|client_secret|code_verifier|id_token)=)[^&\s\"']+",
    re.IGNORECASE,
)


def redact(text: str) -> str:
    return _SECRET_PARAMS.sub(r"\g<key>***", text)


class RedactingFilter(logging.Filter):
    """Masks OAuth codes and tokens that appear in URLs or form bodies."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - formatting logic
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        extra = {
            key: value
            for key, value in record.__dict__.items()
            if not key.startswith("_") and key not in _RESERVED_ATTRS
        }
        if extra:
            payload["extra"] = extra
        return json.dumps(payload, default=str)


def init_logging(app_settings: BaseAppSettings | None = None, level: int | None = None) -> None:
    """Install one stdout handler on the root logger (idempotent)."""
    root = logging.getLogger()
    if any(getattr(h, "_socialauth", False) for h in root.handlers):
        return
    cfg = app_settings or settings
    effective_level = level or getattr(logging, cfg.LOG_LEVEL.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler._socialauth = True  # type: ignore[attr-defined]
    handler.addFilter(RedactingFilter())
    if cfg.LOG_FORMAT.lower() == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s"))

    root.setLevel(effective_level)
    root.addHandler(handler)
    # httpx logs every request line at INFO, including authorization codes in query strings
    logging.getLogger("httpx").setLevel(max(effective_level, logging.WARNING))
