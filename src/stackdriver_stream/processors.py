"""
structlog integration.

``LogRecordBuilder`` shapes a structlog event dict into an upstream log
record; ``StackdriverRenderer`` hands that record to a transformer. With
both installed, a structlog logger writes Stackdriver lines:

    configure_structlog("mylog")
    structlog.get_logger().info("hola que tal")
"""

from __future__ import annotations

import logging
import os
import socket
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

import structlog
from structlog.typing import EventDict, WrappedLogger

from .constants import (
    KEY_ERROR,
    KEY_HOSTNAME,
    KEY_LEVEL,
    KEY_MESSAGE,
    KEY_NAME,
    KEY_PID,
    KEY_REQUEST,
    KEY_TIME,
    KEY_VERSION,
    LOG_VERSION,
)
from .mapper import serialize_error
from .stream import StackdriverTransformer, StreamConfig, create_stream
from .types import Level

_METHOD_LEVELS: Dict[str, Level] = {
    "critical": Level.FATAL,
    "fatal": Level.FATAL,
    "exception": Level.ERROR,
    "error": Level.ERROR,
    "warning": Level.WARN,
    "warn": Level.WARN,
    "info": Level.INFO,
    "msg": Level.INFO,
    "debug": Level.DEBUG,
    "trace": Level.TRACE,
    "notset": Level.TRACE,
}

# Threshold for structlog's filtering bound logger
_STDLIB_LEVELS: Dict[Level, int] = {
    Level.FATAL: logging.CRITICAL,
    Level.ERROR: logging.ERROR,
    Level.WARN: logging.WARNING,
    Level.INFO: logging.INFO,
    Level.DEBUG: logging.DEBUG,
    Level.TRACE: logging.NOTSET,
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _exception_from(exc_info: Any) -> Optional[BaseException]:
    if isinstance(exc_info, BaseException):
        return exc_info
    if isinstance(exc_info, tuple) and len(exc_info) == 3:
        return exc_info[1]
    if exc_info:
        return sys.exc_info()[1]
    return None


class LogRecordBuilder:
    """Processor turning a structlog event dict into an upstream log record.

    Args:
        name: Logger name written to every record.
        hostname: Host name; defaults to ``socket.gethostname()``.
        pid: Process id; defaults to the current process at each call.
    """

    def __init__(self, name: str, hostname: Optional[str] = None, pid: Optional[int] = None):
        self._name = name
        self._hostname = hostname or socket.gethostname()
        self._pid = pid

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        level = _METHOD_LEVELS.get(method_name.lower(), Level.INFO)
        message = event_dict.pop("event", "")
        timestamp = event_dict.pop("timestamp", None) or _now()

        error = _exception_from(event_dict.pop("exc_info", None))
        if error is None and isinstance(event_dict.get(KEY_ERROR), BaseException):
            error = event_dict.pop(KEY_ERROR)
        if error is not None:
            event_dict[KEY_ERROR] = serialize_error(error)

        if KEY_REQUEST not in event_dict and "request" in event_dict:
            event_dict[KEY_REQUEST] = event_dict.pop("request")

        event_dict[KEY_VERSION] = LOG_VERSION
        event_dict[KEY_LEVEL] = int(level)
        event_dict[KEY_NAME] = self._name
        event_dict[KEY_HOSTNAME] = self._hostname
        event_dict[KEY_PID] = self._pid if self._pid is not None else os.getpid()
        event_dict[KEY_TIME] = timestamp
        event_dict[KEY_MESSAGE] = message if isinstance(message, str) else str(message)
        return event_dict


class StackdriverRenderer:
    """Final processor writing the record through a transformer.

    Returns an empty string; pair it with ``structlog.ReturnLoggerFactory``
    so nothing else is printed.
    """

    def __init__(self, stream: StackdriverTransformer):
        self._stream = stream

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> str:
        self._stream.write(event_dict)
        return ""


def configure_structlog(
    name: str,
    *,
    level: Union[Level, int, str, None] = None,
    out: Any = None,
    hostname: Optional[str] = None,
) -> StreamConfig:
    """Configure structlog to emit Stackdriver lines to ``out``.

    Args:
        name: Logger (service) name.
        level: Minimum level; structlog filters below it.
        out: Destination sink, standard output by default.
        hostname: Host name override.
    """
    config = create_stream(level, out)
    threshold = _STDLIB_LEVELS[config.level] if config.level is not None else logging.NOTSET

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            LogRecordBuilder(name, hostname=hostname),
            StackdriverRenderer(config.stream),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.ReturnLoggerFactory(),
        cache_logger_on_first_use=False,
    )
    return config
