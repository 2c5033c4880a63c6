"""Field descriptors for caller-supplied configuration records.

Purpose
-------
Turn a mutable dataclass into an explicit, cached description of its fields so
the binder and the merge policy never poke at objects blindly. Each field
exposes its name, its *shape* (a small tagged variant computed from type
hints), its binding annotations and get/set accessors.

Contents
--------
* :class:`ScalarShape` / :class:`RecordShape` / :class:`SequenceShape` /
  :class:`MappingShape` / :class:`OptionalShape` – the shape variants.
* :func:`shape_of` / :func:`unwrap` – build and strip shapes.
* :class:`FieldDescriptor` / :class:`RecordSchema` / :func:`describe` – the
  per-class field registry.
* :func:`setting` – ``dataclasses.field`` wrapper carrying binding annotations.
* :func:`zero_value` / :func:`new_record` / :func:`is_blank` – zero-value
  semantics shared by every pass.
* :func:`records_equal` / :func:`values_equal` – structural comparison that
  does not depend on the dataclass ``__eq__``.
* :func:`copy_fields` / :func:`to_mapping` – whole-record helpers used when
  publishing reloads and saving files.

System Role
-----------
Pure domain code: no I/O and no logging. A record is addressable when it is an
instance of a non-frozen dataclass; anything else raises
:class:`~lib_config_binder.domain.errors.InvalidTargetError`.
"""

from __future__ import annotations

import dataclasses
import enum
import types
import typing
from collections.abc import Mapping as MappingABC
from collections.abc import MutableMapping, MutableSequence
from collections.abc import Sequence as SequenceABC
from dataclasses import MISSING, dataclass
from functools import lru_cache
from pathlib import PurePath
from typing import Any, Final, Union

from .errors import InvalidTargetError

ENV_KEY: Final[str] = "env"
DEFAULT_KEY: Final[str] = "default"
REQUIRED_KEY: Final[str] = "required"
ANONYMOUS_KEY: Final[str] = "anonymous"


@dataclass(frozen=True, slots=True)
class ScalarShape:
    """Leaf value converted as a whole (``int``, ``str``, ``Path``, ``Any`` ...)."""

    type: Any


@dataclass(frozen=True, slots=True)
class RecordShape:
    """Nested dataclass bound field by field."""

    type: type


@dataclass(frozen=True, slots=True)
class SequenceShape:
    """Homogeneous ``list``/``tuple`` whose elements share one shape."""

    item: Shape
    container: type = list


@dataclass(frozen=True, slots=True)
class MappingShape:
    """``dict``-like field merged key by key when decoding files."""

    key: Shape
    value: Shape


@dataclass(frozen=True, slots=True)
class OptionalShape:
    """Nilable wrapper; ``None`` is its zero value."""

    inner: Shape


Shape = Union[ScalarShape, RecordShape, SequenceShape, MappingShape, OptionalShape]

_ANY_SCALAR: Final[ScalarShape] = ScalarShape(Any)
_SEQUENCE_ORIGINS: Final[tuple[Any, ...]] = (list, SequenceABC, MutableSequence)
_MAPPING_ORIGINS: Final[tuple[Any, ...]] = (dict, MappingABC, MutableMapping)
_SCALAR_ZEROS: Final[dict[Any, Any]] = {bool: False, int: 0, float: 0.0, str: "", bytes: b""}


def shape_of(annotation: Any) -> Shape:
    """Classify a resolved type hint.

    Examples
    --------
    >>> shape_of(int | None)
    OptionalShape(inner=ScalarShape(type=<class 'int'>))
    >>> shape_of(list[str])
    SequenceShape(item=ScalarShape(type=<class 'str'>), container=<class 'list'>)
    """

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)
    if origin is typing.Annotated:
        return shape_of(args[0])
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in args if arg is not type(None)]
        inner = shape_of(members[0]) if len(members) == 1 else _ANY_SCALAR
        return OptionalShape(inner) if len(members) < len(args) else inner
    if isinstance(annotation, type) and dataclasses.is_dataclass(annotation):
        return RecordShape(annotation)
    if annotation is list or origin in _SEQUENCE_ORIGINS:
        return SequenceShape(shape_of(args[0]) if args else _ANY_SCALAR, list)
    if annotation is tuple:
        return SequenceShape(_ANY_SCALAR, tuple)
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return SequenceShape(shape_of(args[0]), tuple)
        return _ANY_SCALAR
    if annotation is dict or origin in _MAPPING_ORIGINS:
        if len(args) == 2:
            return MappingShape(shape_of(args[0]), shape_of(args[1]))
        return MappingShape(_ANY_SCALAR, _ANY_SCALAR)
    return ScalarShape(annotation)


def unwrap(shape: Shape) -> Shape:
    """Strip every :class:`OptionalShape` layer."""

    while isinstance(shape, OptionalShape):
        shape = shape.inner
    return shape


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """One dataclass field with its binding annotations and accessors."""

    name: str
    shape: Shape
    env: str | None = None
    default: Any = None
    required: bool = False
    anonymous: bool = False
    needs_value: bool = False

    def get(self, record: Any) -> Any:
        return getattr(record, self.name)

    def set(self, record: Any, value: Any) -> None:
        setattr(record, self.name, value)

    @property
    def embeds(self) -> bool:
        """``True`` for anonymous record fields, whose name never joins the binding path."""

        return self.anonymous and isinstance(unwrap(self.shape), RecordShape)

    def extend(self, prefixes: tuple[str, ...]) -> tuple[str, ...]:
        """Return the binding path used for this field's children."""

        if self.embeds:
            return prefixes
        return (*prefixes, self.name)


@dataclass(frozen=True, slots=True)
class RecordSchema:
    """Ordered field descriptors of one dataclass type."""

    type: type
    fields: tuple[FieldDescriptor, ...]

    @property
    def name(self) -> str:
        return self.type.__qualname__

    def match(self, key: str) -> FieldDescriptor | None:
        """Find the field a file key refers to: exact name first, then case-insensitive.

        Dashes in keys are read as underscores so ``api-key`` reaches ``api_key``.
        """

        for descriptor in self.fields:
            if descriptor.name == key:
                return descriptor
        normalised = key.lower().replace("-", "_")
        for descriptor in self.fields:
            if descriptor.name.lower() == normalised:
                return descriptor
        return None


@lru_cache(maxsize=None)
def describe(cls: type) -> RecordSchema:
    """Return the cached :class:`RecordSchema` for dataclass *cls*.

    Raises
    ------
    InvalidTargetError
        When *cls* is not a dataclass, is frozen, or its hints do not resolve.
    """

    if not (isinstance(cls, type) and dataclasses.is_dataclass(cls)):
        raise InvalidTargetError(f"Config {cls!r} should be a dataclass type")
    if cls.__dataclass_params__.frozen:  # type: ignore[attr-defined]
        raise InvalidTargetError(f"Config {cls.__qualname__} should be addressable, but it is frozen")
    try:
        hints = typing.get_type_hints(cls)
    except (NameError, TypeError) as exc:
        raise InvalidTargetError(f"Cannot resolve type hints of {cls.__qualname__}: {exc}") from exc
    descriptors = tuple(_describe_field(field, hints.get(field.name, Any)) for field in dataclasses.fields(cls))
    return RecordSchema(cls, descriptors)


def schema_for(record: Any) -> RecordSchema:
    """Return the schema of a record *instance*, rejecting classes and plain values."""

    if isinstance(record, type) or not dataclasses.is_dataclass(record):
        raise InvalidTargetError(f"Config {record!r} should be a dataclass instance")
    return describe(type(record))


def _describe_field(field: dataclasses.Field[Any], annotation: Any) -> FieldDescriptor:
    metadata = field.metadata
    default = metadata.get(DEFAULT_KEY)
    return FieldDescriptor(
        name=field.name,
        shape=shape_of(annotation),
        env=metadata.get(ENV_KEY) or None,
        default=None if default == "" else default,
        required=_flag(metadata.get(REQUIRED_KEY)),
        anonymous=_flag(metadata.get(ANONYMOUS_KEY)),
        needs_value=field.init and field.default is MISSING and field.default_factory is MISSING,
    )


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def setting(
    default: Any = None,
    *,
    env: str | None = None,
    required: bool = False,
    anonymous: bool = False,
    value: Any = MISSING,
    factory: Any = MISSING,
) -> Any:
    """Declare a dataclass field carrying binding annotations.

    Parameters
    ----------
    default:
        YAML literal applied when the field is still blank after files and
        environment (``"8080"``, ``"[a, b]"``, ``"{host: db}"``).
    env:
        Explicit environment variable name; disables the derived names.
    required:
        Fail the full load when the field stays blank.
    anonymous:
        For record fields: keep the parent's binding path and accept the
        embedded record's keys at the parent level.
    value / factory:
        Python-level initial value. Without either the field is keyword-only
        and :func:`new_record` supplies the zero value.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> @dataclass
    ... class Server:
    ...     port: int = setting("8080", env="PORT")
    >>> new_record(Server).port
    0
    """

    metadata: dict[str, Any] = {}
    if default is not None:
        metadata[DEFAULT_KEY] = default
    if env:
        metadata[ENV_KEY] = env
    if required:
        metadata[REQUIRED_KEY] = True
    if anonymous:
        metadata[ANONYMOUS_KEY] = True
    if value is not MISSING:
        return dataclasses.field(default=value, metadata=metadata)
    if factory is not MISSING:
        return dataclasses.field(default_factory=factory, metadata=metadata)
    return dataclasses.field(kw_only=True, metadata=metadata)


def zero_value(shape: Shape) -> Any:
    """Return the zero value for *shape*.

    Examples
    --------
    >>> zero_value(ScalarShape(int)), zero_value(ScalarShape(str)), zero_value(OptionalShape(ScalarShape(int)))
    (0, '', None)
    """

    if isinstance(shape, OptionalShape):
        return None
    if isinstance(shape, RecordShape):
        return new_record(shape.type)
    if isinstance(shape, SequenceShape):
        return shape.container()
    if isinstance(shape, MappingShape):
        return {}
    return _SCALAR_ZEROS.get(shape.type)


def new_record(cls: type) -> Any:
    """Instantiate *cls* with zero values for every field lacking a Python default."""

    schema = describe(cls)
    kwargs = {descriptor.name: zero_value(descriptor.shape) for descriptor in schema.fields if descriptor.needs_value}
    return cls(**kwargs)


def is_blank(value: Any, shape: Shape) -> bool:
    """Return ``True`` when *value* equals the zero value of *shape*."""

    if isinstance(shape, OptionalShape):
        return value is None
    if isinstance(shape, (SequenceShape, MappingShape)):
        return value is None or len(value) == 0
    zero = zero_value(shape)
    if zero is None:
        return value is None
    return values_equal(value, zero, shape)


def values_equal(left: Any, right: Any, shape: Shape) -> bool:
    """Compare two values of *shape* structurally, field by field for records.

    Records declared with ``eq=False`` still compare by content.
    """

    if left is right:
        return True
    if isinstance(shape, OptionalShape):
        if left is None or right is None:
            return False
        return values_equal(left, right, shape.inner)
    if isinstance(shape, RecordShape):
        return records_equal(left, right)
    if isinstance(shape, SequenceShape):
        if left is None or right is None or len(left) != len(right):
            return False
        return all(values_equal(a, b, shape.item) for a, b in zip(left, right))
    if isinstance(shape, MappingShape):
        if left is None or right is None or left.keys() != right.keys():
            return False
        return all(values_equal(item, right[key], shape.value) for key, item in left.items())
    return bool(left == right)


def records_equal(left: Any, right: Any) -> bool:
    """Return ``True`` when two records of the same type hold equal field values.

    Examples
    --------
    >>> @dataclass(eq=False)
    ... class Peer:
    ...     host: str = ""
    >>> records_equal(Peer("a"), Peer("a")), Peer("a") == Peer("a")
    (True, False)
    """

    if left is right:
        return True
    if left is None or right is None or type(left) is not type(right):
        return False
    return all(
        values_equal(descriptor.get(left), descriptor.get(right), descriptor.shape)
        for descriptor in describe(type(left)).fields
    )


def copy_fields(target: Any, source: Any) -> None:
    """Assign every field of *source* onto *target* (same dataclass type)."""

    for descriptor in schema_for(target).fields:
        descriptor.set(target, descriptor.get(source))


def to_mapping(record: Any, *, drop_none: bool = False) -> dict[str, Any]:
    """Convert a record into plain ``dict``/``list``/scalar data for serialisation.

    ``drop_none`` omits ``None`` values, which TOML cannot represent.
    """

    result: dict[str, Any] = {}
    for descriptor in schema_for(record).fields:
        value = _plain(descriptor.get(record), drop_none)
        if value is None and drop_none:
            continue
        result[descriptor.name] = value
    return result


def _plain(value: Any, drop_none: bool) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_mapping(value, drop_none=drop_none)
    if isinstance(value, MappingABC):
        return {
            _plain(key, drop_none): _plain(item, drop_none)
            for key, item in value.items()
            if not (drop_none and item is None)
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_plain(item, drop_none) for item in value if not (drop_none and item is None)]
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value
