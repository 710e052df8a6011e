"""Structured event helpers shared by the pipeline, the repository and the web layer."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULT_EVENT_LOGGER = logging.getLogger("rural_classroom.events")

_MAX_VALUE_LENGTH = 200


def sanitize_event_value(value: Any) -> Any:
    """Return a compact, log-friendly representation for *value*."""

    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return value.name or str(value)
    if isinstance(value, BaseException):
        value = f"{value.__class__.__name__}: {value}"
    text = str(value).strip()
    if not text:
        return None
    if len(text) > _MAX_VALUE_LENGTH:
        return text[:_MAX_VALUE_LENGTH] + "…"
    return text


def normalize_payload(values: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop empty entries from *values* and sanitise the rest."""

    normalized: Dict[str, Any] = {}
    for key, raw_value in (values or {}).items():
        if not key:
            continue
        value = sanitize_event_value(raw_value)
        if value is None or value == "":
            continue
        normalized[str(key)] = value
    return normalized


def emit_structured_event(
    event_type: str,
    message: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    """Log ``[event_type] message (key=value, ...)`` with the payload in ``extra``."""

    details = normalize_payload(payload)
    if duration_ms is not None:
        details["duration_ms"] = round(float(duration_ms), 2)
    details_text = ", ".join(f"{key}={value}" for key, value in details.items())
    headline = f"[{event_type}] {message}".strip() if event_type else str(message).strip()
    log_message = f"{headline} ({details_text})" if details_text else headline
    extra: Dict[str, Any] = {
        "event": str(message),
        "event_type": event_type or "",
        "event_payload": details,
    }
    logger.log(level, log_message, extra=extra)


def emit_file_event(
    operation: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    """Emit a file-system event (staging, copying, deleting, measuring)."""

    emit_structured_event(
        "FILE_OP",
        operation,
        payload=payload,
        duration_ms=duration_ms,
        level=level,
        logger=logger,
    )


def emit_db_event(
    action: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.DEBUG,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    """Emit a metadata-store event."""

    emit_structured_event(
        "DB_QUERY",
        action,
        payload=payload,
        duration_ms=duration_ms,
        level=level,
        logger=logger,
    )


def emit_compression_event(
    stage: str,
    *,
    payload: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    logger: logging.Logger | logging.LoggerAdapter = DEFAULT_EVENT_LOGGER,
) -> None:
    """Emit a compression lifecycle event (started, completed, fallback)."""

    emit_structured_event(
        "COMPRESSION",
        stage,
        payload=payload,
        duration_ms=duration_ms,
        level=level,
        logger=logger,
    )


__all__ = [
    "DEFAULT_EVENT_LOGGER",
    "emit_compression_event",
    "emit_db_event",
    "emit_file_event",
    "emit_structured_event",
    "normalize_payload",
    "sanitize_event_value",
]
