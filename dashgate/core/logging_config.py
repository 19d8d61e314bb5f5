"""Structured logging configuration for Dashgate.

JSON lines by default, human-readable text when LOG_FORMAT=text. The
request id set by the request context middleware is attached to every
record emitted while that request is being handled.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional


# Set by request_context middleware, read by the JSON formatter.
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")


class _JsonFormatter(logging.Formatter):
    """Emit each log record as a single JSON line.

    ``extra`` fields are merged into the top-level object, so
    ``logger.info("Area created", extra={"area_id": 3})`` yields
    ``{"area_id": 3, ...}`` next to the standard fields.
    """

    _RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys())

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid = request_id_var.get("")
        if rid:
            payload["request_id"] = rid

        for key, value in record.__dict__.items():
            if key not in self._RESERVED and key not in payload:
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


# ---------------------------------------------------------------------------
# Secret redaction: session tokens, passwords and reset tokens
# ---------------------------------------------------------------------------

_SECRET_PATTERNS = [
    re.compile(r'(?i)(bearer\s+)[a-zA-Z0-9._\-]{20,}'),                # Authorization header
    re.compile(r'\b(eyJ[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+\.)[a-zA-Z0-9_\-]+'),  # bare JWTs
    re.compile(                                                          # key=value secrets
        r'(?i)((?:password|new_password|current_password|token|reset_token|secret|jwt_secret_key)'
        r'["\']?\s*[=:]\s*["\']?)[^\s,\'"&]{4,}'
    ),
    re.compile(r'\b[0-9a-f]{64}\b'),                                     # reset tokens
]

_REDACTED = "***REDACTED***"


class _SecretFilter(logging.Filter):
    """Redact credentials from log messages and exception text."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            # Render now so interpolated arguments are redacted too.
            record.msg = record.getMessage()
            record.args = None
        record.msg = self._redact(str(record.msg))
        if record.exc_text:
            record.exc_text = self._redact(record.exc_text)
        return True

    @staticmethod
    def _redact(text: str) -> str:
        for pattern in _SECRET_PATTERNS:
            text = pattern.sub(
                lambda m: m.group(1) + _REDACTED if m.lastindex else _REDACTED,
                text,
            )
        return text


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure application-wide logging.

    Args:
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL. Defaults to INFO.
        log_format: ``"json"`` for structured output, ``"text"`` for human-readable.
                    Defaults to ``"json"``.
    """
    level = (log_level or "INFO").upper()
    fmt = (log_format or "json").lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_SecretFilter())

    if fmt == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    # passlib warns on every hash when the bcrypt backend lacks __about__.
    logging.getLogger("passlib").setLevel(logging.ERROR)

    logger = logging.getLogger(__name__)
    logger.info("Logging configured", extra={"level": level, "format": fmt})
