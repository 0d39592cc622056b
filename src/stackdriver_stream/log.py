"""
Diagnostics logger for the package itself.

Loggers are bound to a standard library logger so that nothing is printed
unless the host application configured logging; the transformed records
never go through here.
"""

from __future__ import annotations

import logging

import structlog

_PROCESSORS = [
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.KeyValueRenderer(key_order=["event", "logger"]),
]


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.wrap_logger(
        logging.getLogger(name or "stackdriver_stream"),
        processors=_PROCESSORS,
        wrapper_class=structlog.stdlib.BoundLogger,
    )
