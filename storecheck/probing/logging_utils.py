"""
Structured logging helpers for store probing.
"""

from __future__ import annotations

import json
import logging
from typing import Any


def describe_error(exc: BaseException) -> str:
    """
    Short `Type: message` description, falling back to the cause's message.
    """

    message = str(exc)
    if not message and exc.__cause__ is not None:
        message = str(exc.__cause__)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON.

    Exception values are rendered with `describe_error`; events below the
    logger's level are dropped before serialization.
    """

    if not logger.isEnabledFor(level):
        return
    payload: dict[str, Any] = {"event": event}
    for key, value in fields.items():
        payload[key] = describe_error(value) if isinstance(value, BaseException) else value
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
