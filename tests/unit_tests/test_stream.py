"""
Sink adapter unit tests

Synchronous transformer, asyncio transformer with backpressure and stream
construction.
"""

from __future__ import annotations

import asyncio
import io
import json
import logging
import sys

import pytest

from stackdriver_stream.exceptions import RecordMappingError, StackdriverConfigurationError
from stackdriver_stream.stream import (
    AsyncStackdriverTransformer,
    StackdriverTransformer,
    StreamConfig,
    create_stream,
    transform_record,
)
from stackdriver_stream.types import Level


def _lines(sink: io.BytesIO):
    return [json.loads(line) for line in sink.getvalue().decode("utf-8").splitlines()]


class ThrowingStack:
    @property
    def stack(self) -> str:
        raise RuntimeError("stack unavailable")


class StrOnlyWriter:
    """Text writer outside the io hierarchy."""

    def __init__(self) -> None:
        self.chunks = []

    def write(self, data) -> None:
        if not isinstance(data, str):
            raise TypeError("write() argument must be str")
        self.chunks.append(data)


class RecordingWriter:
    """asyncio.StreamWriter stand-in that can hold back drain()."""

    def __init__(self) -> None:
        self.lines = []
        self.drains = 0
        self.ready = asyncio.Event()
        self.ready.set()

    def write(self, data: bytes) -> None:
        self.lines.append(json.loads(data))

    async def drain(self) -> None:
        self.drains += 1
        await self.ready.wait()


class TestTransformRecord:
    """Per-record transformation"""

    def test_line_is_terminated_utf8_json(self, base_record) -> None:
        base_record["msg"] = "¿qué tal?"
        line = transform_record(base_record)
        assert line.endswith(b"\n")
        assert json.loads(line)["message"] == "¿qué tal?"

    @pytest.mark.parametrize("chunk", ["hola que tal\n", b'{"msg": "x"}', bytearray(b"x")])
    def test_raw_text_is_a_configuration_error(self, chunk) -> None:
        with pytest.raises(StackdriverConfigurationError) as exc_info:
            transform_record(chunk)
        assert exc_info.value.code == "BAD_CONFIGURATION"
        assert exc_info.value.details == {"chunk_type": type(chunk).__name__}

    def test_unexpected_mapper_failure_is_wrapped(self, base_record) -> None:
        base_record["err"] = ThrowingStack()
        with pytest.raises(RecordMappingError) as exc_info:
            transform_record(base_record)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.details["reason"] == "stack unavailable"


class TestStackdriverTransformer:
    """Synchronous stream"""

    def test_writes_one_line_per_record(self, base_record, sink) -> None:
        stream = StackdriverTransformer(sink)
        stream.write(base_record)
        assert _lines(sink) == [
            {"name": "mylog", "time": "2024-01-01T00:00:00.000Z", "message": "hola que tal", "severity": 200}
        ]

    def test_error_scenario(self, base_record, sink) -> None:
        stack = "Error: esto esta mal!\n    at Object.<anonymous> (/app/simple.js:12:14)"
        base_record.update(level=50, msg="esto esta mal!", err={"message": "esto esta mal!", "stack": stack})
        StackdriverTransformer(sink).write(base_record)
        [entry] = _lines(sink)
        assert entry["message"] == stack
        assert entry["serviceContext"] == {"service": "mylog"}
        assert entry["severity"] == 500

    def test_raw_string_writes_nothing(self, sink) -> None:
        stream = StackdriverTransformer(sink)
        with pytest.raises(StackdriverConfigurationError):
            stream.write("hola que tal")
        assert sink.getvalue() == b""

    def test_failed_record_does_not_stop_the_stream(self, base_record, sink) -> None:
        stream = StackdriverTransformer(sink)
        stream.write(dict(base_record, msg="first"))
        with pytest.raises(RecordMappingError):
            stream.write({"msg": "no level"})
        stream.write(dict(base_record, msg="third"))
        assert [entry["message"] for entry in _lines(sink)] == ["first", "third"]

    def test_order_is_preserved(self, base_record, sink) -> None:
        stream = StackdriverTransformer(sink)
        for i in range(20):
            stream.emit(dict(base_record, msg=f"record {i}", seq=i))
        assert [entry["seq"] for entry in _lines(sink)] == list(range(20))

    def test_text_sink_receives_str(self, base_record) -> None:
        sink = io.StringIO()
        StackdriverTransformer(sink).write(base_record)
        assert sink.getvalue().endswith("\n")
        assert json.loads(sink.getvalue())["message"] == "hola que tal"

    def test_bytes_rejecting_writer_receives_str(self, base_record) -> None:
        sink = StrOnlyWriter()
        StackdriverTransformer(sink).write(base_record)
        [line] = sink.chunks
        assert line.endswith("\n")
        assert json.loads(line)["message"] == "hola que tal"

    def test_write_goes_through_transform(self, base_record, sink) -> None:
        class Tagged(StackdriverTransformer):
            def transform(self, chunk):
                return super().transform(dict(chunk, tagged=True))

        Tagged(sink).write(base_record)
        [entry] = _lines(sink)
        assert entry["tagged"] is True

    def test_defaults_to_stdout(self, base_record, monkeypatch) -> None:
        stdout = io.TextIOWrapper(io.BytesIO(), encoding="utf-8")
        monkeypatch.setattr(sys, "stdout", stdout)
        stream = StackdriverTransformer()
        stream.write(base_record)
        assert json.loads(stdout.buffer.getvalue())["severity"] == 200

    def test_close_leaves_sink_open(self, base_record, sink) -> None:
        stream = StackdriverTransformer(sink)
        stream.write(base_record)
        stream.close()
        assert not sink.closed


class TestAsyncStackdriverTransformer:
    """asyncio stream with drain() backpressure"""

    @pytest.mark.asyncio
    async def test_send_writes_and_drains(self, base_record) -> None:
        writer = RecordingWriter()
        await AsyncStackdriverTransformer(writer).send(base_record)
        assert writer.lines[0]["message"] == "hola que tal"
        assert writer.drains == 1

    @pytest.mark.asyncio
    async def test_pipe_waits_for_drain_before_next_record(self, base_record) -> None:
        writer = RecordingWriter()
        writer.ready.clear()
        records = [dict(base_record, seq=i) for i in range(3)]
        task = asyncio.create_task(AsyncStackdriverTransformer(writer).pipe(records))
        for _ in range(5):
            await asyncio.sleep(0)
        assert len(writer.lines) == 1

        writer.ready.set()
        assert await task == 3
        assert [line["seq"] for line in writer.lines] == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_pipe_skips_failed_records(self, base_record) -> None:
        writer = RecordingWriter()
        failures = []
        records = [dict(base_record, seq=0), "raw text", {"level": 30}, dict(base_record, seq=3)]

        written = await AsyncStackdriverTransformer(writer).pipe(
            records, on_error=lambda exc, chunk: failures.append((exc.code, chunk))
        )

        assert written == 2
        assert [line["seq"] for line in writer.lines] == [0, 3]
        assert failures == [("BAD_CONFIGURATION", "raw text"), ("RECORD_MAPPING_FAILED", {"level": 30})]

    @pytest.mark.asyncio
    async def test_pipe_accepts_async_iterables_and_async_handlers(self, base_record) -> None:
        writer = RecordingWriter()
        failures = []

        async def source():
            yield dict(base_record, seq=0)
            yield b"raw"
            yield dict(base_record, seq=2)

        async def on_error(exc, chunk):
            failures.append(chunk)

        assert await AsyncStackdriverTransformer(writer).pipe(source(), on_error=on_error) == 2
        assert failures == [b"raw"]

    @pytest.mark.asyncio
    async def test_pipe_logs_failures_by_default(self, base_record, caplog) -> None:
        writer = RecordingWriter()
        with caplog.at_level(logging.WARNING):
            written = await AsyncStackdriverTransformer(writer).pipe(["raw text", base_record])
        assert written == 1
        assert "log_record_skipped" in caplog.text
        assert "BAD_CONFIGURATION" in caplog.text

    @pytest.mark.asyncio
    async def test_writer_without_drain(self, base_record) -> None:
        sink = io.BytesIO()
        await AsyncStackdriverTransformer(sink).send(base_record)
        assert _lines(sink)[0]["severity"] == 200


class TestCreateStream:
    """Stream registration"""

    def test_defaults(self) -> None:
        config = create_stream()
        assert isinstance(config, StreamConfig)
        assert config.type == "raw"
        assert config.level is None
        assert isinstance(config.stream, StackdriverTransformer)

    def test_level_and_sink(self, base_record, sink) -> None:
        config = create_stream("warn", sink)
        assert config.level is Level.WARN
        config.stream.write(base_record)
        assert _lines(sink)[0]["message"] == "hola que tal"
