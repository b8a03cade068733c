"""
Structured logging configuration for modelbridge.

Provides JSON-formatted structured logging with:
- Security filtering (no credentials, no client addresses)
- Upload payload redaction (base64 CSV sheets and files never reach logs)
- URL normalization (path only, query strings dropped)

Usage:
    from modelbridge.logging_config import setup_logging, get_logger

    setup_logging()  # Call once at startup
    logger = get_logger(__name__)
    logger.info("message", extra={"key": "value"})
"""

from __future__ import annotations

import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlsplit

import orjson

_URL_PATTERN = re.compile(r"(https?://[^\s\"'<>]+)")
_SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b(api[_-]?key|apikey)[=:]\s*['\"]?[\w\-]+['\"]?", re.I), "[API_KEY]"),
    (re.compile(r"\b(bearer|token)[=:\s]+['\"]?[\w\-\.]+['\"]?", re.I), "[TOKEN]"),
    (re.compile(r"(authorization)[=:\s]+['\"]?[\w\-\.\s]+['\"]?", re.I), "[AUTH]"),
    (re.compile(r"data:[\w/+.-]+;base64,[A-Za-z0-9+/=]+"), "[DATA_URL]"),
    (re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b"), "[IP]"),
    (re.compile(r"\b[\w\.-]+@[\w\.-]+\.\w+\b"), "[EMAIL]"),
]

# Dropped when a key contains one of these words
BLOCKED_FIELDS: frozenset[str] = frozenset(
    {
        "api_key",
        "secret",
        "token",
        "password",
        "authorization",
        "bearer",
        "credential",
        "cookie",
    }
)

# Dropped on exact key match only
BLOCKED_EXACT_FIELDS: frozenset[str] = frozenset({"ip", "ip_address", "user_agent", "email"})

# Bulk upload fields are replaced by a placeholder; url keeps its path only
HIGH_CARDINALITY_FIELDS: dict[str, str] = {
    "url": "endpoint",
    "model_csv": "[CSV]",
    "component_csv": "[CSV]",
    "relationship_csv": "[CSV]",
    "model_file": "[FILE]",
    "body": "[BODY]",
    "payload": "[PAYLOAD]",
    "schema": "[SCHEMA]",
}

_RESERVED_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    }
)


def _normalize_url(url: str) -> str:
    return urlsplit(url).path or "/"


def _sanitize_url_in_text(match: re.Match[str]) -> str:
    path = _normalize_url(match.group(1))
    return path if path != "/" else "[URL]"


def _sanitize_text(text: str) -> str:
    """Strip query strings from URLs and mask credentials and data URLs."""
    if not text:
        return text
    result = _URL_PATTERN.sub(_sanitize_url_in_text, text)
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


def _is_blocked(key: str) -> bool:
    return key in BLOCKED_EXACT_FIELDS or any(blocked in key for blocked in BLOCKED_FIELDS)


def _filter_log_record(record: dict[str, Any], *, _depth: int = 0) -> dict[str, Any]:
    """Filter sensitive and bulk fields, recursing into dicts up to depth 3."""
    if _depth > 3:
        return {"_truncated": "max depth exceeded"}

    filtered: dict[str, Any] = {}
    for key, value in record.items():
        key_lower = key.lower()
        if _is_blocked(key_lower):
            continue

        if key_lower in HIGH_CARDINALITY_FIELDS:
            if key_lower == "url" and isinstance(value, str):
                filtered["endpoint"] = _normalize_url(value)
            else:
                filtered[key] = HIGH_CARDINALITY_FIELDS[key_lower]
            continue

        if isinstance(value, int | float | bool | None):
            filtered[key] = value
        elif isinstance(value, str):
            filtered[key] = _sanitize_text(value)
        elif isinstance(value, list | tuple):
            filtered[key] = list(value) if len(value) <= 10 else f"[list:{len(value)} items]"
        elif isinstance(value, dict):
            filtered[key] = _filter_log_record(value, _depth=_depth + 1)
        else:
            filtered[key] = _sanitize_text(str(value))
    return filtered


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    extra = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}
    return _filter_log_record(extra) if extra else {}


class JsonFormatter(logging.Formatter):
    """JSON log formatter, one object per line.

    Output format:
    {"ts":"2024-01-01T00:00:00.000+00:00","level":"INFO","logger":"module","msg":"...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": _sanitize_text(record.getMessage()),
        }
        if record.levelno >= logging.WARNING:
            log_dict["file"] = record.filename
            log_dict["line"] = record.lineno
        if record.exc_info:
            log_dict["exc"] = _sanitize_text(self.formatException(record.exc_info))
        log_dict.update(_extra_fields(record))
        return orjson.dumps(log_dict, default=str).decode()


class SimpleFormatter(logging.Formatter):
    """Human-readable formatter for development and tests."""

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname:8s} {record.name}: {_sanitize_text(record.getMessage())}"
        filtered = _extra_fields(record)
        if filtered:
            extra_str = " ".join(f"{k}={v}" for k, v in filtered.items())
            base = f"{base} | {extra_str}"
        return base


def setup_logging(
    *,
    level: int | str = logging.INFO,
    json_format: bool = True,
    stream: Any = None,
) -> None:
    """Configure the root logger. Call once at startup.

    Args:
        level: Log level (default INFO).
        json_format: Use JSON formatter (default True for production).
        stream: Output stream (default stderr).
    """
    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else SimpleFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Suppress noisy third-party loggers
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
