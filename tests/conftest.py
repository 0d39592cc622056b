import io
import typing as t

import pytest
import structlog


@pytest.fixture
def base_record() -> t.Dict[str, t.Any]:
    """A minimal upstream record at INFO level."""
    return {
        "v": 0,
        "level": 30,
        "name": "mylog",
        "hostname": "h",
        "pid": 1,
        "time": "2024-01-01T00:00:00.000Z",
        "msg": "hola que tal",
    }


@pytest.fixture
def sink() -> io.BytesIO:
    return io.BytesIO()


@pytest.fixture
def reset_structlog():
    """Restore structlog's default configuration after the test."""
    yield
    structlog.reset_defaults()
