"""Field binder: environment, defaults and required checks over a record.

Purpose
-------
Run the second pass of every load. After all files are merged, each field of
the record is looked up in the environment under names derived from its
binding path, filled from its ``default`` annotation when still blank, checked
against ``required``, and the walk recurses into nested records and sequences
of records.

Contents
--------
* :class:`FieldBinder` – the recursive pass (full or init-only variant).
* :func:`env_names` – candidate variable names for one field.
* :func:`env_names_for` – every field path of a record type with its names.
* :func:`parse_env_value` – converts a raw variable value to a field's shape.

Binding path
------------
Segments accumulate while descending: the env prefix, then each field name
(anonymous record fields add nothing), then the decimal index of sequence
elements. Names are the segments joined with ``_``, verbatim and upper-cased.
"""

from __future__ import annotations

from typing import Any, Callable, Final, Iterator, Sequence

from ..domain.errors import RequiredFieldError
from ..domain.schema import (
    FieldDescriptor,
    RecordSchema,
    RecordShape,
    ScalarShape,
    SequenceShape,
    Shape,
    describe,
    is_blank,
    new_record,
    records_equal,
    schema_for,
    unwrap,
)
from ..observability import log_debug
from .merge import convert
from .ports import EnvironmentReader

FALSE_VALUES: Final[frozenset[str]] = frozenset({"", "0", "f", "false"})

LiteralParser = Callable[[str], Any]


class _EmptyEnvironment:
    def get(self, name: str) -> str | None:
        return None


def env_names(descriptor: FieldDescriptor, prefixes: Sequence[str]) -> list[str]:
    """Return the variable names probed for *descriptor* under *prefixes*.

    Examples
    --------
    >>> from lib_config_binder.domain.schema import ScalarShape
    >>> env_names(FieldDescriptor("port", ScalarShape(int)), ("App", "db"))
    ['App_db_port', 'APP_DB_PORT']
    >>> env_names(FieldDescriptor("port", ScalarShape(int), env="PORT"), ("App",))
    ['PORT']
    """

    if descriptor.env:
        return [descriptor.env]
    joined = "_".join((*prefixes, descriptor.name))
    upper = joined.upper()
    return [joined] if joined == upper else [joined, upper]


def env_names_for(cls: type, prefixes: Sequence[str] = ()) -> Iterator[tuple[str, list[str]]]:
    """Yield ``(dotted_field_path, names)`` for every field reachable from *cls*.

    Sequences of records are described through their first element (index
    ``0``); optional records are described as if present.
    """

    yield from _walk_names(describe(cls), tuple(prefixes), ())


def _walk_names(
    schema: RecordSchema, prefixes: tuple[str, ...], dotted: tuple[str, ...]
) -> Iterator[tuple[str, list[str]]]:
    for descriptor in schema.fields:
        path = (*dotted, descriptor.name)
        yield ".".join(path), env_names(descriptor, prefixes)
        shape = unwrap(descriptor.shape)
        if isinstance(shape, RecordShape):
            yield from _walk_names(describe(shape.type), descriptor.extend(prefixes), path)
        elif isinstance(shape, SequenceShape):
            item = unwrap(shape.item)
            if isinstance(item, RecordShape):
                yield from _walk_names(describe(item.type), (*descriptor.extend(prefixes), "0"), (*path, "0"))


def parse_env_value(raw: str, shape: Shape, name: str, literal_parser: LiteralParser, current: Any = None) -> Any:
    """Convert the raw value of variable *name* into *shape*.

    Booleans treat ``""``, ``"0"``, ``"f"`` and ``"false"`` (any case) as
    false and everything else as true; strings are taken verbatim; all other
    shapes are parsed as a YAML literal and converted; records and mappings are
    overlaid onto *current* so keys missing from the literal keep their values.

    Examples
    --------
    >>> import yaml
    >>> parse_env_value("F", ScalarShape(bool), "DEBUG", yaml.safe_load)
    False
    >>> parse_env_value("yes", ScalarShape(bool), "DEBUG", yaml.safe_load)
    True
    >>> parse_env_value("9090", ScalarShape(int), "PORT", yaml.safe_load)
    9090
    """

    inner = unwrap(shape)
    if isinstance(inner, ScalarShape) and inner.type is bool:
        return raw.lower() not in FALSE_VALUES
    if isinstance(inner, ScalarShape) and inner.type is str:
        return raw
    return convert(literal_parser(raw), shape, name, current)


def parse_default(literal: Any, shape: Shape, name: str, literal_parser: LiteralParser, current: Any = None) -> Any:
    """Convert a ``default`` annotation into *shape*.

    Non-string annotations are taken as already parsed. String fields keep the
    literal text unless YAML reads it as a string too (so ``"'quoted'"`` loses
    its quotes while ``"yes"`` stays ``"yes"``).
    """

    if not isinstance(literal, str):
        return convert(literal, shape, name, current)
    parsed = literal_parser(literal)
    inner = unwrap(shape)
    if isinstance(inner, ScalarShape) and inner.type is str and not isinstance(parsed, str):
        return literal
    return convert(parsed, shape, name, current)


class FieldBinder:
    """Bind environment values and defaults into a record, recursively.

    Why
    ----
    Files provide the bulk of a configuration; deployments override single
    values through the environment and rely on declared defaults for the rest.
    The binder is where those three sources meet, with the environment winning
    over files and defaults filling only what is still blank.

    Parameters
    ----------
    environ:
        Variable lookup; the first non-empty candidate wins.
    literal_parser:
        Parses YAML literals (environment values and defaults).
    enforce_required:
        ``True`` for full loads; ``False`` for the init-only variant, which
        leaves required-but-blank fields at their zero value.
    verbose / debug:
        Emit per-field diagnostics.
    """

    def __init__(
        self,
        environ: EnvironmentReader,
        *,
        literal_parser: LiteralParser,
        enforce_required: bool = True,
        verbose: bool = False,
        debug: bool = False,
    ) -> None:
        self._environ = environ
        self._literal_parser = literal_parser
        self.enforce_required = enforce_required
        self._verbose = verbose
        self._chatty = verbose or debug

    def bind(self, record: Any, prefixes: Sequence[str] = ()) -> None:
        """Bind every field of *record* under the binding path *prefixes*.

        Raises
        ------
        DecodeError
            When an environment value or default does not fit its field.
        RequiredFieldError
            When a required field stays blank (full variant only).
        InvalidTargetError
            When *record* is not a mutable dataclass instance.
        """

        schema = schema_for(record)
        path = tuple(prefixes)
        for descriptor in schema.fields:
            self._bind_field(record, schema, descriptor, path)

    def _bind_field(self, record: Any, schema: RecordSchema, descriptor: FieldDescriptor, prefixes: tuple[str, ...]) -> None:
        names = env_names(descriptor, prefixes)
        if self._verbose:
            log_debug("field_env_candidates", layer="env", path=None, record=schema.name, field=descriptor.name, env=names)
        for name in names:
            raw = self._environ.get(name)
            if not raw:
                continue
            if self._chatty:
                log_debug("field_loaded_from_env", layer="env", path=None, record=schema.name, field=descriptor.name, env=name)
            value = parse_env_value(raw, descriptor.shape, name, self._literal_parser, descriptor.get(record))
            descriptor.set(record, value)
            break

        if is_blank(descriptor.get(record), descriptor.shape):
            if descriptor.default is not None:
                if self._chatty:
                    log_debug("field_default_applied", layer="env", path=None, record=schema.name, field=descriptor.name)
                value = parse_default(
                    descriptor.default, descriptor.shape, descriptor.name, self._literal_parser, descriptor.get(record)
                )
                descriptor.set(record, value)
            elif descriptor.required and self.enforce_required:
                raise RequiredFieldError(descriptor.name, names)

        value = descriptor.get(record)
        if value is None:
            return
        shape = unwrap(descriptor.shape)
        if isinstance(shape, RecordShape):
            self.bind(value, descriptor.extend(prefixes))
        elif isinstance(shape, SequenceShape):
            self._bind_sequence(record, descriptor, shape, value, descriptor.extend(prefixes))

    def _bind_sequence(
        self,
        record: Any,
        descriptor: FieldDescriptor,
        shape: SequenceShape,
        value: Any,
        prefixes: tuple[str, ...],
    ) -> None:
        item = unwrap(shape.item)
        if not isinstance(item, RecordShape):
            return
        if value:
            for index, element in enumerate(value):
                if element is not None:
                    self.bind(element, (*prefixes, str(index)))
            return
        synthesised = self._synthesise(item.type, prefixes)
        if synthesised:
            descriptor.set(record, shape.container(synthesised))

    def _synthesise(self, cls: type, prefixes: tuple[str, ...]) -> list[Any]:
        """Grow a sequence of *cls* purely from ``<prefix>_<index>_*`` variables.

        Each probe is bound without required checks and compared with a
        baseline element (zero values plus defaults, no environment). Growth
        stops at the first probe equal to the baseline; accepted elements are
        bound once more with this binder's own required enforcement.
        """

        baseline = new_record(cls)
        FieldBinder(_EmptyEnvironment(), literal_parser=self._literal_parser, enforce_required=False).bind(
            baseline, (*prefixes, "0")
        )
        prober = FieldBinder(self._environ, literal_parser=self._literal_parser, enforce_required=False)
        elements: list[Any] = []
        while True:
            element_path = (*prefixes, str(len(elements)))
            candidate = new_record(cls)
            prober.bind(candidate, element_path)
            if records_equal(candidate, baseline):
                return elements
            if self.enforce_required:
                self.bind(candidate, element_path)
            elements.append(candidate)
