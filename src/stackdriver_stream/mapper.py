"""
Record mapper: upstream log record -> Stackdriver structured log entry.

Pure functions only; no I/O and no state.
"""

from __future__ import annotations

import traceback
from collections.abc import Mapping
from typing import Any, Dict, Optional

from .constants import (
    ENTRY_HTTP_REQUEST,
    ENTRY_MESSAGE,
    ENTRY_SERVICE_CONTEXT,
    ENTRY_SEVERITY,
    KEY_ERROR,
    KEY_LEVEL,
    KEY_MESSAGE,
    KEY_NAME,
    KEY_REQUEST,
    RESERVED_KEYS,
)
from .exceptions import RecordMappingError
from .types import ExternalLogEntry, InternalLogRecord, Level, Severity

LEVEL_TO_SEVERITY: Dict[Level, Severity] = {
    Level.FATAL: Severity.CRITICAL,
    Level.ERROR: Severity.ERROR,
    Level.WARN: Severity.WARNING,
    Level.INFO: Severity.INFO,
    Level.DEBUG: Severity.DEBUG,
    Level.TRACE: Severity.DEBUG,
}

_unmapped = set(Level) - set(LEVEL_TO_SEVERITY)
if _unmapped:
    raise RuntimeError(f"No severity mapping for levels: {sorted(_unmapped)}")
del _unmapped


def level_to_severity(level: Any) -> Severity:
    """Map an upstream level (enum, number or name) to a Stackdriver severity.

    Raises:
        RecordMappingError: if the value is not one of the six known levels.
    """
    try:
        return LEVEL_TO_SEVERITY[Level.parse(level)]
    except (ValueError, TypeError) as exc:
        raise RecordMappingError(f"unknown level {level!r}", field=KEY_LEVEL) from exc


def format_stack(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def serialize_error(exc: BaseException) -> Dict[str, str]:
    """Serialized error shape of the upstream record: message, name, stack."""
    return {"message": str(exc), "name": type(exc).__name__, "stack": format_stack(exc)}


def extract_stack(err: Any) -> Optional[str]:
    """Return the stack trace text an error exposes, or None.

    Accepts the serialized error shape (a mapping with ``stack``), an
    exception instance, or any object with a ``stack`` attribute. Empty or
    non-string stacks count as absent.
    """
    if err is None:
        return None
    if isinstance(err, Mapping):
        stack = err.get("stack")
    elif isinstance(err, BaseException):
        stack = format_stack(err)
    else:
        stack = getattr(err, "stack", None)
    if isinstance(stack, str) and stack:
        return stack
    return None


def format_entry(record: InternalLogRecord) -> ExternalLogEntry:
    """Format an upstream log record into a Stackdriver log entry.

    Reserved fields (``msg``, ``level``, ``err``, ``req``, ``v``,
    ``hostname``, ``pid``) are consumed or dropped; every other field is
    copied through unchanged. When the record carries an error with a stack
    trace, the trace replaces the message and the logger name becomes the
    ``serviceContext.service``.

    Raises:
        RecordMappingError: if the record is not a mapping or lacks
            ``level`` / ``msg``.
    """
    if not isinstance(record, Mapping):
        raise RecordMappingError(f"expected a mapping, got {type(record).__name__}")
    if KEY_LEVEL not in record:
        raise RecordMappingError("missing level", field=KEY_LEVEL)
    if KEY_MESSAGE not in record:
        raise RecordMappingError("missing message", field=KEY_MESSAGE)

    entry: ExternalLogEntry = {key: value for key, value in record.items() if key not in RESERVED_KEYS}
    entry[ENTRY_MESSAGE] = record[KEY_MESSAGE]
    entry[ENTRY_SEVERITY] = level_to_severity(record[KEY_LEVEL])

    stack = extract_stack(record.get(KEY_ERROR))
    if stack is not None:
        entry[ENTRY_MESSAGE] = stack
        entry[ENTRY_SERVICE_CONTEXT] = {"service": record.get(KEY_NAME)}

    request = record.get(KEY_REQUEST)
    if request is not None:
        entry[ENTRY_HTTP_REQUEST] = request

    return entry
