"""
Exception hierarchy for the record transformation stage.

Every failure is scoped to the single record that caused it. Serialization
failures are recovered internally and never surface here.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class StackdriverError(Exception):
    """Base class for per-record failures.

    Carries a stable ``code`` and a ``details`` mapping so callers can report
    the failure without parsing the message.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class StackdriverConfigurationError(StackdriverError):
    """A raw text chunk was delivered where a structured record is required.

    The upstream logger must hand over record objects ("raw" stream type),
    not pre-rendered text.
    """

    def __init__(self, *, chunk_type: str) -> None:
        super().__init__(
            "Bad configuration. Use raw stream type on the upstream logger",
            code="BAD_CONFIGURATION",
            details={"chunk_type": chunk_type},
        )


class RecordMappingError(StackdriverError):
    """The record cannot be turned into a log entry."""

    def __init__(self, reason: str, *, field: Optional[str] = None) -> None:
        details: Dict[str, Any] = {"reason": reason}
        if field is not None:
            details["field"] = field
        super().__init__(
            f"Cannot map log record: {reason}",
            code="RECORD_MAPPING_FAILED",
            details=details,
        )
