"""
Record and entry types shared by the mapper, serializer and stream.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Level(IntEnum):
    """Upstream logger levels (bunyan numbering)."""

    FATAL = 60
    ERROR = 50
    WARN = 40
    INFO = 30
    DEBUG = 20
    TRACE = 10

    @classmethod
    def parse(cls, value: Union["Level", int, str]) -> "Level":
        """Resolve a level from its enum, numeric value or case-insensitive name.

        Raises:
            ValueError: if the value names none of the six levels.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"{value!r} is not a valid {cls.__name__}") from None
        if isinstance(value, bool):
            raise ValueError(f"{value!r} is not a valid {cls.__name__}")
        return cls(value)


class Severity(IntEnum):
    """Severity codes of the Cloud Logging (Stackdriver) LogEntry."""

    DEFAULT = 0
    DEBUG = 100
    INFO = 200
    NOTICE = 300
    WARNING = 400
    ERROR = 500
    CRITICAL = 600
    ALERT = 700
    EMERGENCY = 800


class HttpRequest(BaseModel):
    """HTTP request metadata attached to a log entry.

    Field names are snake_case in Python and camelCase on the wire.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    request_method: str = Field(alias="requestMethod")
    request_url: str = Field(alias="requestUrl")
    status: int
    protocol: str
    request_size: Optional[str] = Field(default=None, alias="requestSize")
    response_size: Optional[str] = Field(default=None, alias="responseSize")
    user_agent: Optional[str] = Field(default=None, alias="userAgent")
    remote_ip: Optional[str] = Field(default=None, alias="remoteIp")
    server_ip: Optional[str] = Field(default=None, alias="serverIp")
    referer: Optional[str] = None
    latency: Optional[str] = None
    cache_lookup: bool = Field(default=False, alias="cacheLookup")
    cache_hit: Optional[bool] = Field(default=None, alias="cacheHit")
    cache_validated_with_origin_server: Optional[bool] = Field(
        default=None, alias="cacheValidatedWithOriginServer"
    )
    cache_fill_bytes: Optional[str] = Field(default=None, alias="cacheFillBytes")

    def to_wire(self) -> Dict[str, Any]:
        """Wire representation: camelCase keys, unset optional fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Input: bunyan-shaped record, open for extra fields
InternalLogRecord = Mapping[str, Any]

# Output: Stackdriver structured entry
ExternalLogEntry = Dict[str, Any]
