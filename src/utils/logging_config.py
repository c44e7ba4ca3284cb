"""Logging setup for the spot agent: plain, redacted or JSON-lines output."""

from __future__ import annotations

import json
import logging
import re
import sys
from pathlib import Path
from typing import Any

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord carries; anything else came from ``extra``.
_STANDARD_ATTRS = frozenset(
    logging.makeLogRecord({}).__dict__.keys() | {"message", "asctime", "taskName"}
)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, including any ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                payload[key] = value
        return json.dumps(payload, default=str)


class SanitizingFormatter(logging.Formatter):
    """Redact bearer tokens and ``key=value`` secrets from rendered messages."""

    SENSITIVE_KEYS = ("api_token", "token", "authorization", "password", "secret")
    _BEARER = re.compile(r"(bearer\s+)[\w\-\.=]+", re.IGNORECASE)

    def __init__(self, fmt: str | None = None, datefmt: str | None = None) -> None:
        super().__init__(fmt, datefmt)
        keys = "|".join(re.escape(key) for key in self.SENSITIVE_KEYS)
        self._key_value = re.compile(
            rf"({keys})['\"]?\s*[:=]\s*['\"]?[\w\-\.]+", re.IGNORECASE
        )

    def redact(self, message: str) -> str:
        message = self._BEARER.sub(r"\1[REDACTED]", message)
        return self._key_value.sub(r"\1=[REDACTED]", message)

    def format(self, record: logging.LogRecord) -> str:
        clean = logging.makeLogRecord(record.__dict__)
        clean.msg = self.redact(record.getMessage())
        clean.args = ()
        return super().format(clean)


def setup_logging(
    level: str = "INFO",
    *,
    structured: bool = False,
    sanitize: bool = True,
    log_file: str | None = None,
) -> None:
    """Replace the root handlers with a stdout handler and optional file handler."""
    root = logging.getLogger()
    root.handlers.clear()
    log_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(log_level)

    if structured:
        formatter: logging.Formatter = StructuredFormatter()
    elif sanitize:
        formatter = SanitizingFormatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT)
    else:
        formatter = logging.Formatter(DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(path))
        except OSError as exc:
            root.warning("Failed to set up file logging to %s: %s", log_file, exc)
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str, **context: Any) -> logging.LoggerAdapter:
    """Logger adapter that attaches ``context`` to every record.

    Example:
        logger = get_logger("spot_agent.runner", market_id="abc")
        logger.info("Agent started")
    """
    return logging.LoggerAdapter(logging.getLogger(name), context)


class LogContext:
    """Attach fields to every record created inside the ``with`` block."""

    def __init__(self, **fields: Any) -> None:
        self.fields = fields
        self._previous: Any = None

    def __enter__(self) -> "LogContext":
        previous = self._previous = logging.getLogRecordFactory()
        fields = self.fields

        def factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = previous(*args, **kwargs)
            for key, value in fields.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(factory)
        return self

    def __exit__(self, *exc: Any) -> None:
        logging.setLogRecordFactory(self._previous)
