"""
Sink adapter: structured records in, Stackdriver JSON lines out.

Records are processed one at a time and in order. A failing record raises
for that delivery only; the transformer holds no cross-record state and
keeps working for the next one.
"""

from __future__ import annotations

import inspect
import io
import sys
from collections.abc import AsyncIterable
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, Literal, Optional, Union

from .exceptions import RecordMappingError, StackdriverConfigurationError, StackdriverError
from .log import get_logger
from .mapper import format_entry
from .serializer import serialize
from .types import Level

logger = get_logger(__name__)

ErrorHandler = Callable[[StackdriverError, Any], Optional[Awaitable[None]]]


def transform_record(chunk: Any) -> bytes:
    """Turn one structured record into one encoded Stackdriver line.

    Raises:
        StackdriverConfigurationError: if ``chunk`` is raw text instead of a
            record (the upstream logger is not in object mode).
        RecordMappingError: if the record cannot be mapped.
    """
    if isinstance(chunk, (str, bytes, bytearray)):
        raise StackdriverConfigurationError(chunk_type=type(chunk).__name__)
    try:
        entry = format_entry(chunk)
    except StackdriverError:
        raise
    except Exception as exc:
        raise RecordMappingError(str(exc) or type(exc).__name__) from exc
    return serialize(entry).encode("utf-8")


def _default_output() -> Any:
    return getattr(sys.stdout, "buffer", sys.stdout)


def _write_line(out: Any, line: bytes) -> None:
    if isinstance(out, io.TextIOBase):
        out.write(line.decode("utf-8"))
    else:
        try:
            out.write(line)
        except TypeError:
            # Text writer outside the io hierarchy
            out.write(line.decode("utf-8"))
    flush = getattr(out, "flush", None)
    if flush is not None:
        flush()


class StackdriverTransformer:
    """Synchronous object-mode stream writing to a byte sink.

    Args:
        out: Destination sink. Binary sinks get bytes; text sinks
            (``io.TextIOBase``, or any writer rejecting bytes with
            ``TypeError``) get str. Defaults to standard output,
            looked up on every write.
    """

    def __init__(self, out: Any = None):
        self._out = out

    @property
    def out(self) -> Any:
        return self._out if self._out is not None else _default_output()

    def transform(self, chunk: Any) -> bytes:
        return transform_record(chunk)

    def write(self, chunk: Any) -> None:
        """Transform one record and write the resulting line downstream."""
        _write_line(self.out, self.transform(chunk))

    def emit(self, record: Any) -> None:
        self.write(record)

    def flush(self) -> None:
        flush = getattr(self.out, "flush", None)
        if flush is not None:
            flush()

    def close(self) -> None:
        # The sink belongs to the caller; only flush it.
        self.flush()


class AsyncStackdriverTransformer:
    """Object-mode stream over an asyncio writer, honouring backpressure.

    Each line is written and then ``drain()`` is awaited (when the writer
    has one) before the next record is accepted, so a slow consumer pauses
    the producer instead of records piling up or being reordered.
    """

    def __init__(self, writer: Any):
        self._writer = writer

    async def send(self, chunk: Any) -> None:
        line = transform_record(chunk)
        self._writer.write(line)
        drain = getattr(self._writer, "drain", None)
        if drain is not None:
            await drain()

    async def pipe(
        self,
        records: Union[Iterable[Any], AsyncIterable],
        on_error: Optional[ErrorHandler] = None,
    ) -> int:
        """Send every record in order and return the number of lines written.

        Records that fail are reported to ``on_error(exc, chunk)`` (logged
        at warning level when no handler is given) and skipped.
        """
        written = 0
        async for chunk in _iterate(records):
            try:
                await self.send(chunk)
            except StackdriverError as exc:
                await self._report(exc, chunk, on_error)
                continue
            written += 1
        return written

    @staticmethod
    async def _report(exc: StackdriverError, chunk: Any, on_error: Optional[ErrorHandler]) -> None:
        if on_error is None:
            logger.warning("log_record_skipped", code=exc.code, details=exc.details, error=exc.message)
            return
        result = on_error(exc, chunk)
        if inspect.isawaitable(result):
            await result


async def _iterate(records: Union[Iterable[Any], AsyncIterable]) -> AsyncIterator[Any]:
    if isinstance(records, AsyncIterable):
        async for record in records:
            yield record
    else:
        for record in records:
            yield record


# =============================================================================
# Stream Construction
# =============================================================================


@dataclass(frozen=True)
class StreamConfig:
    """Stream registration for the upstream logger.

    ``type`` is always ``"raw"``: the logger must pass record objects, not
    rendered text. ``level`` is the minimum level the logger should apply;
    the transformer itself never filters.
    """

    stream: StackdriverTransformer
    level: Optional[Level] = None
    type: Literal["raw"] = "raw"


def create_stream(level: Union[Level, int, str, None] = None, out: Any = None) -> StreamConfig:
    """Create a Stackdriver stream writing to ``out`` (default: stdout)."""
    return StreamConfig(
        stream=StackdriverTransformer(out),
        level=Level.parse(level) if level is not None else None,
    )
