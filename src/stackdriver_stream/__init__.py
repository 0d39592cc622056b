"""
Stackdriver stream for structured loggers.

Transforms upstream log records (bunyan-style: ``v``, ``level``, ``name``,
``hostname``, ``pid``, ``time``, ``msg``, ``err``, ``req``) into Google
Cloud Logging structured entries, one compact JSON line per record.

Pipeline: record -> ``format_entry`` -> ``serialize`` -> byte sink.
Library: orjson for serialization, structlog for the logger integration.
"""

from .exceptions import RecordMappingError, StackdriverConfigurationError, StackdriverError
from .mapper import format_entry, level_to_severity
from .serializer import fast_and_safe_dumps, serialize
from .stream import (
    AsyncStackdriverTransformer,
    StackdriverTransformer,
    StreamConfig,
    create_stream,
    transform_record,
)
from .types import HttpRequest, Level, Severity

__all__ = [
    "AsyncStackdriverTransformer",
    "HttpRequest",
    "Level",
    "RecordMappingError",
    "Severity",
    "StackdriverConfigurationError",
    "StackdriverError",
    "StackdriverTransformer",
    "StreamConfig",
    "create_stream",
    "fast_and_safe_dumps",
    "format_entry",
    "level_to_severity",
    "serialize",
    "transform_record",
]
