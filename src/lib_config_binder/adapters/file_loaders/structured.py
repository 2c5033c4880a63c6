"""Structured configuration decoders.

Purpose
-------
Convert raw file bytes into Python mappings (and back) so the dispatch layer
can merge them into records. Adapters are small wrappers around
``tomllib``/``json``/``yaml.safe_load`` so error handling, observability, and
empty-document policies live in one place.

Contents
--------
* :class:`BaseDecoder` – shared helpers for validating mapping outputs.
* :class:`TOMLDecoder` – TOML via :mod:`tomllib` (``tomli`` before 3.11),
  written back with :mod:`tomlkit`.
* :class:`JSONDecoder` – JSON via the standard library.
* :class:`YAMLDecoder` – YAML via PyYAML; also parses the YAML literals used
  for environment values and ``default`` annotations.
* :data:`DECODERS` – the default decoder set keyed by format name.

System Role
-----------
Invoked by :class:`lib_config_binder.application.dispatch.DecoderDispatch` for
each resolved source and by :meth:`lib_config_binder.core.ConfigService.save`.
"""

from __future__ import annotations

import json
from typing import Any, Final, Mapping

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

import tomlkit
import yaml

from ...domain.errors import DecodeError
from ...observability import log_debug, log_error


class BaseDecoder:
    """Common utilities shared by the structured decoders."""

    name: str = ""
    suffixes: tuple[str, ...] = ()

    def _ensure_mapping(self, data: object, *, path: str | None) -> Mapping[str, Any]:
        """Ensure *data* behaves like a mapping, otherwise raise ``DecodeError``.

        Examples
        --------
        >>> JSONDecoder()._ensure_mapping({"key": 1}, path="demo")
        {'key': 1}
        >>> JSONDecoder()._ensure_mapping(42, path="demo")
        Traceback (most recent call last):
        ...
        lib_config_binder.domain.errors.DecodeError: File demo did not produce a mapping (json)
        """

        if not isinstance(data, Mapping):
            raise DecodeError(f"File {path or '<memory>'} did not produce a mapping ({self.name})")
        log_debug("config_file_loaded", layer="file", path=path, format=self.name)
        return data

    def _invalid(self, path: str | None, exc: Exception) -> DecodeError:
        log_error("config_file_invalid", layer="file", path=path, format=self.name, error=str(exc))
        return DecodeError(f"Invalid {self.name.upper()} in {path or '<memory>'}: {exc}")


class TOMLDecoder(BaseDecoder):
    """Decode TOML documents using the standard library parser."""

    name = "toml"
    suffixes = (".toml",)

    def parse(self, payload: bytes, *, path: str | None = None) -> Mapping[str, Any]:
        """Return the mapping encoded in *payload*.

        Examples
        --------
        >>> TOMLDecoder().parse(b'[db]\\nport = 5432')["db"]["port"]
        5432
        """

        try:
            data = tomllib.loads(payload.decode("utf-8"))
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
            raise self._invalid(path, exc) from exc
        return self._ensure_mapping(data, path=path)

    def dump(self, data: Mapping[str, Any]) -> bytes:
        return tomlkit.dumps(data).encode("utf-8")


class JSONDecoder(BaseDecoder):
    """Decode JSON documents; an empty document is an empty mapping."""

    name = "json"
    suffixes = (".json",)

    def parse(self, payload: bytes, *, path: str | None = None) -> Mapping[str, Any]:
        if not payload.strip():
            return self._ensure_mapping({}, path=path)
        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise self._invalid(path, exc) from exc
        return self._ensure_mapping(data, path=path)

    def dump(self, data: Mapping[str, Any]) -> bytes:
        return json.dumps(data, indent=2, ensure_ascii=False, default=str).encode("utf-8")


class YAMLDecoder(BaseDecoder):
    """Decode YAML documents with ``yaml.safe_load``."""

    name = "yaml"
    suffixes = (".yaml", ".yml")

    def parse(self, payload: bytes, *, path: str | None = None) -> Mapping[str, Any]:
        """Return the mapping encoded in *payload*; empty documents become ``{}``.

        Examples
        --------
        >>> YAMLDecoder().parse(b"# nothing here\\n")
        {}
        """

        try:
            data = yaml.safe_load(payload)
        except yaml.YAMLError as exc:
            raise self._invalid(path, exc) from exc
        if data is None:
            data = {}
        return self._ensure_mapping(data, path=path)

    def parse_literal(self, text: str) -> Any:
        """Parse a single YAML literal such as an environment value.

        Examples
        --------
        >>> YAMLDecoder().parse_literal("[1, 2]"), YAMLDecoder().parse_literal("{host: db}")
        ([1, 2], {'host': 'db'})
        """

        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise DecodeError(f"Invalid YAML literal {text!r}: {exc}") from exc

    def dump(self, data: Mapping[str, Any]) -> bytes:
        return yaml.safe_dump(dict(data), sort_keys=False, allow_unicode=True).encode("utf-8")


#: Default decoders keyed by format name. The order of
#: :data:`lib_config_binder.application.dispatch.PROBE_ORDER` decides which is
#: tried first for files without a recognised extension.
DECODERS: Final[dict[str, BaseDecoder]] = {
    "toml": TOMLDecoder(),
    "json": JSONDecoder(),
    "yaml": YAMLDecoder(),
}
