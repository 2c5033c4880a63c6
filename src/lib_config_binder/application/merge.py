"""Application-layer merge policy: parsed mappings into typed records.

Purpose
-------
Write the mapping produced by a structured decoder into a caller-supplied
record, converting every value to the shape of the field it lands in. Later
files call this on the same record, so matched fields overwrite earlier values
while untouched fields keep them.

Contents
    - ``merge_into``: public entry point used by the decoder dispatch.
    - ``convert``: the same conversion for one standalone value (environment
      literals and ``default`` annotations).
    - ``coerce_scalar``: leaf conversion rules.
    - ``_merge_record`` / ``_convert`` / ``_merge_promoted``: recursive stanzas.

Merge rules
-----------
* records merge field by field, sequences are replaced, mappings are updated
  key by key, scalars are replaced;
* ``None`` clears optional fields and leaves other fields untouched;
* keys of anonymous embedded records are also accepted at the parent level;
* keys without a field are collected as dotted paths and, in strict mode,
  reported together through :class:`UnmatchedKeysError`.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from datetime import date, time
from typing import Any

from ..domain.errors import DecodeError, UnmatchedKeysError
from ..domain.schema import (
    MappingShape,
    OptionalShape,
    RecordSchema,
    RecordShape,
    SequenceShape,
    Shape,
    describe,
    new_record,
    schema_for,
    unwrap,
)
from ..observability import log_debug


def merge_into(record: Any, data: Mapping[str, Any], *, strict: bool, source: str | None = None) -> None:
    """Merge *data* into *record* in place.

    Raises
    ------
    DecodeError
        When a value does not fit its field or the document is not a mapping.
    UnmatchedKeysError
        In strict mode, after the whole document was walked, listing every key
        that has no field.

    Examples
    --------
    >>> from dataclasses import dataclass, field
    >>> @dataclass
    ... class Server:
    ...     host: str = ""
    ...     ports: list = field(default_factory=list)
    >>> server = Server(host="localhost")
    >>> merge_into(server, {"ports": [80, 443]}, strict=False)
    >>> server
    Server(host='localhost', ports=[80, 443])
    """

    unmatched: list[str] = []
    _merge_record(record, data, (), unmatched)
    if not unmatched:
        return
    if strict:
        raise UnmatchedKeysError(unmatched, source)
    log_debug("config_keys_unmatched", layer="file", path=source, keys=unmatched)


def convert(value: Any, shape: Shape, key: str, current: Any = None) -> Any:
    """Convert a standalone parsed *value* into *shape*; unknown nested keys are ignored.

    Record and mapping values are overlaid onto *current*, so only the keys
    present in *value* change.

    Examples
    --------
    >>> from lib_config_binder.domain.schema import ScalarShape
    >>> convert({"b": 2}, MappingShape(ScalarShape(str), ScalarShape(int)), "limits", {"a": 1})
    {'a': 1, 'b': 2}
    """

    return _convert(current, value, shape, (key,), [])


def _merge_record(record: Any, data: Any, segments: tuple[str, ...], unmatched: list[str]) -> None:
    if not isinstance(data, Mapping):
        where = _dotted(segments) or "document"
        raise DecodeError(f"Cannot decode {where}: expected a mapping, got {type(data).__name__}")
    schema = schema_for(record)
    for raw_key, value in data.items():
        key = str(raw_key)
        path = (*segments, key)
        descriptor = schema.match(key)
        if descriptor is not None:
            descriptor.set(record, _convert(descriptor.get(record), value, descriptor.shape, path, unmatched))
        elif not _merge_promoted(record, schema, key, value, segments, unmatched):
            unmatched.append(_dotted(path))


def _merge_promoted(
    record: Any,
    schema: RecordSchema,
    key: str,
    value: Any,
    segments: tuple[str, ...],
    unmatched: list[str],
) -> bool:
    """Route *key* into an anonymous embedded record that declares it."""

    for descriptor in schema.fields:
        if not descriptor.embeds:
            continue
        embedded_type = unwrap(descriptor.shape).type  # type: ignore[union-attr]
        if not _accepts(embedded_type, key):
            continue
        embedded = descriptor.get(record)
        if embedded is None:
            embedded = new_record(embedded_type)
            descriptor.set(record, embedded)
        _merge_record(embedded, {key: value}, segments, unmatched)
        return True
    return False


def _accepts(cls: type, key: str) -> bool:
    schema = describe(cls)
    if schema.match(key) is not None:
        return True
    return any(
        _accepts(unwrap(descriptor.shape).type, key)  # type: ignore[union-attr]
        for descriptor in schema.fields
        if descriptor.embeds
    )


def _convert(current: Any, value: Any, shape: Shape, path: tuple[str, ...], unmatched: list[str]) -> Any:
    if isinstance(shape, OptionalShape):
        if value is None:
            return None
        return _convert(current, value, shape.inner, path, unmatched)
    if value is None:
        return current
    if isinstance(shape, RecordShape):
        target = current if isinstance(current, shape.type) else new_record(shape.type)
        _merge_record(target, value, path, unmatched)
        return target
    if isinstance(shape, SequenceShape):
        if not isinstance(value, (list, tuple)):
            raise DecodeError(f"Cannot decode {_dotted(path)}: expected a sequence, got {type(value).__name__}")
        items = [_convert(None, item, shape.item, (*path, str(index)), unmatched) for index, item in enumerate(value)]
        return shape.container(items)
    if isinstance(shape, MappingShape):
        if not isinstance(value, Mapping):
            raise DecodeError(f"Cannot decode {_dotted(path)}: expected a mapping, got {type(value).__name__}")
        result = dict(current) if isinstance(current, Mapping) else {}
        for raw_key, item in value.items():
            item_path = (*path, str(raw_key))
            key = _convert(None, raw_key, shape.key, item_path, unmatched)
            result[key] = _convert(result.get(key), item, shape.value, item_path, unmatched)
        return result
    return coerce_scalar(value, shape.type, _dotted(path))


def coerce_scalar(value: Any, target: Any, key: str) -> Any:
    """Convert a parsed leaf *value* into *target*.

    Examples
    --------
    >>> coerce_scalar(8080, str, "port")
    '8080'
    >>> coerce_scalar(3, float, "ratio")
    3.0
    >>> coerce_scalar("80", int, "port")
    Traceback (most recent call last):
    ...
    lib_config_binder.domain.errors.DecodeError: Cannot decode port: expected int, got str '80'
    """

    if target is Any or target is object or not isinstance(target, type):
        return value
    numeric = isinstance(value, (int, float)) and not isinstance(value, bool)
    if target is bool:
        if isinstance(value, bool):
            return value
    elif target is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif target is float:
        if numeric:
            return float(value)
    elif target is str:
        if isinstance(value, str):
            return value
        if numeric:
            return str(value)
    elif target is bytes:
        if isinstance(value, bytes):
            return value
        if isinstance(value, str):
            return value.encode("utf-8")
    elif issubclass(target, enum.Enum):
        return _coerce_enum(value, target, key)
    elif issubclass(target, (date, time)):
        return _coerce_temporal(value, target, key)
    elif isinstance(value, target):
        return value
    else:
        try:
            return target(value)
        except (TypeError, ValueError) as exc:
            raise DecodeError(f"Cannot decode {key}: {exc}") from exc
    raise DecodeError(f"Cannot decode {key}: expected {target.__name__}, got {type(value).__name__} {value!r}")


def _coerce_enum(value: Any, target: type[enum.Enum], key: str) -> enum.Enum:
    if isinstance(value, target):
        return value
    try:
        return target(value)
    except ValueError:
        pass
    if isinstance(value, str) and value in target.__members__:
        return target[value]
    raise DecodeError(f"Cannot decode {key}: {value!r} is not a valid {target.__name__}")


def _coerce_temporal(value: Any, target: Any, key: str) -> Any:
    if isinstance(value, target):
        return value
    if isinstance(value, str):
        try:
            return target.fromisoformat(value)
        except ValueError as exc:
            raise DecodeError(f"Cannot decode {key}: {exc}") from exc
    raise DecodeError(f"Cannot decode {key}: expected {target.__name__}, got {type(value).__name__} {value!r}")


def _dotted(segments: tuple[str, ...]) -> str:
    """Join *segments* with dots, skipping empties."""

    return ".".join(segment for segment in segments if segment)
