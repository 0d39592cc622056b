"""
Stream Configuration.

Environment variables use the ``SD_LOG_`` prefix, e.g. ``SD_LOG_LEVEL=warn``
and ``SD_LOG_OUTPUT=stderr``; a ``.env`` file is read as well.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .stream import StreamConfig, create_stream


class LogLevel(str, Enum):
    FATAL = "FATAL"
    ERROR = "ERROR"
    WARN = "WARN"
    INFO = "INFO"
    DEBUG = "DEBUG"
    TRACE = "TRACE"


OutputName = Literal["stdout", "stderr"]


class StackdriverSettings(BaseSettings):
    """Construction-time options for the Stackdriver stream."""

    model_config = SettingsConfigDict(
        env_prefix="SD_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    level: Optional[LogLevel] = Field(default=None, description="Minimum level, applied by the upstream logger")
    output: OutputName = Field(default="stdout", description="Standard stream receiving the log lines")
    service_name: str = Field(default="app", description="Logger name written to every record")

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper() or None
        return value


def resolve_output(name: OutputName) -> Any:
    """Binary handle of the named standard stream."""
    stream = sys.stderr if name == "stderr" else sys.stdout
    return getattr(stream, "buffer", stream)


def create_stream_from_settings(settings: Optional[StackdriverSettings] = None) -> StreamConfig:
    """Create a stream from settings (read from the environment when omitted)."""
    settings = settings or StackdriverSettings()
    level = settings.level.value if settings.level is not None else None
    return create_stream(level, resolve_output(settings.output))
