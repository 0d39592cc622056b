"""
Safe serializer: log entry -> one compact JSON line.

A fast JSON dump that handles cycles and getter exceptions. The plain
orjson encoding is tried first; on error it falls back to encoding a copy
sanitized by an explicit walk that replaces circular references and
throwing reads with markers, stringifies integers orjson cannot hold and
cuts nesting off below orjson's depth limit. If even that fails, a diagnostic line is
produced instead. ``serialize`` never raises.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Callable, Iterator, List, Set, Tuple
from uuid import UUID

import orjson
from pydantic import BaseModel

from .constants import CIRCULAR_MARKER, DEPTH_MARKER, DIAGNOSTIC_MESSAGE, LINE_TERMINATOR, THROWS_MARKER
from .log import get_logger
from .mapper import serialize_error
from .types import HttpRequest

logger = get_logger(__name__)

_OPTIONS = orjson.OPT_UTC_Z | orjson.OPT_NAIVE_UTC | orjson.OPT_NON_STR_KEYS

# Values orjson encodes natively and that cannot contain references
_SCALARS = (str, int, float, bool, type(None), datetime, date, time, UUID, Enum)

# orjson rejects integers outside these bounds and nesting past 254 levels
_INT_MIN = -(2**63)
_INT_MAX = 2**64 - 1
_MAX_DEPTH = 128


def serialize(entry: Any) -> str:
    """Encode an entry as a single JSON line terminated by one newline."""
    return fast_and_safe_dumps(entry) + LINE_TERMINATOR


def fast_and_safe_dumps(value: Any) -> str:
    """Encode a value as compact JSON without ever raising."""
    try:
        return orjson.dumps(value, default=_default, option=_OPTIONS).decode()
    except Exception as exc:
        logger.debug("json_fast_path_failed", error=_describe(exc))

    try:
        return orjson.dumps(_sanitize(value, set()), option=_OPTIONS).decode()
    except Exception as exc:
        logger.debug("json_safe_path_failed", error=_describe(exc))
        return json.dumps({"message": DIAGNOSTIC_MESSAGE.format(message=_describe(exc))})


# =============================================================================
# Fast path
# =============================================================================


def _default(obj: Any) -> Any:
    """orjson ``default`` hook for types it does not encode natively."""
    if isinstance(obj, HttpRequest):
        return obj.to_wire()
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(obj, Mapping):
        return dict(obj)
    if isinstance(obj, BaseException):
        return serialize_error(obj)
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return bytes(obj).decode("utf-8", errors="replace")
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    fields = {name: getattr(obj, name) for name in _attribute_names(obj)}
    return fields if fields else str(obj)


def _attribute_names(obj: Any) -> List[str]:
    """Public instance attributes followed by public properties of the class."""
    names = [name for name in getattr(obj, "__dict__", {}) if not name.startswith("_")]
    for klass in type(obj).__mro__:
        for name, attr in vars(klass).items():
            if isinstance(attr, property) and not name.startswith("_") and name not in names:
                names.append(name)
    return names


# =============================================================================
# Safe path
# =============================================================================


def _sanitize(value: Any, path: Set[int]) -> Any:
    """Copy ``value`` into plain JSON types.

    ``path`` holds the ids of the containers currently being walked; meeting
    one again means a cycle, and its size is the current depth. Each read
    happens inside its own error boundary.
    """
    if isinstance(value, int) and not isinstance(value, bool) and not _INT_MIN <= value <= _INT_MAX:
        return str(value)
    if isinstance(value, _SCALARS):
        return value

    oid = id(value)
    if oid in path:
        return CIRCULAR_MARKER
    if len(path) >= _MAX_DEPTH:
        return DEPTH_MARKER
    path.add(oid)
    try:
        return _sanitize_container(value, path)
    except Exception as exc:
        return _throws(exc)
    finally:
        path.discard(oid)


def _sanitize_container(value: Any, path: Set[int]) -> Any:
    if isinstance(value, Mapping):
        return {_key(key): _sanitize(item, path) for key, item in _mapping_items(value)}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_sanitize(item, path) for item in value]
    if isinstance(value, HttpRequest):
        return _sanitize(value.to_wire(), path)
    if isinstance(value, BaseModel):
        return {key: _sanitize(item, path) for key, item in _model_items(value)}
    if isinstance(value, BaseException):
        return serialize_error(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        names = [f.name for f in dataclasses.fields(value)]
    else:
        names = _attribute_names(value)
    if not names:
        return str(value)
    return {name: _sanitize(_guarded(lambda name=name: getattr(value, name)), path) for name in names}


def _mapping_items(value: Mapping) -> Iterator[Tuple[Any, Any]]:
    for key in list(value.keys()):
        yield key, _guarded(lambda: value[key])


def _model_items(value: BaseModel) -> Iterator[Tuple[str, Any]]:
    for name, info in type(value).model_fields.items():
        field_value = getattr(value, name)
        if field_value is not None:
            yield info.alias or name, field_value
    for name, extra in (value.model_extra or {}).items():
        yield name, extra


def _guarded(read: Callable[[], Any]) -> Any:
    try:
        return read()
    except Exception as exc:
        return _throws(exc)


def _key(key: Any) -> str:
    if isinstance(key, str):
        return key
    try:
        return str(key)
    except Exception as exc:
        return _throws(exc)


def _throws(exc: BaseException) -> str:
    return THROWS_MARKER.format(message=_describe(exc))


def _describe(exc: BaseException) -> str:
    try:
        return str(exc) or type(exc).__name__
    except Exception:
        return type(exc).__name__
