"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts that adapters must satisfy so the facade, the
binder and the watcher can orchestrate behaviour without depending on concrete
implementations.

Contents
--------
* :class:`Decoder` – parses bytes of one structured format into a mapping.
* :class:`EnvironmentReader` – read-only variable lookup.
* :class:`FileSystem` – stat, read and write primitives.

System Role
-----------
These protocols keep the dependency rule intact: adapters implement them and
the composition root (:mod:`lib_config_binder.core`) wires them together.
Tests substitute in-memory implementations through the same seams.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class Decoder(Protocol):
    """Parse and serialise one structured format.

    Attributes
    ----------
    name:
        Format name used for probing and logging (``"toml"``, ``"json"``...).
    suffixes:
        Lower-case file extensions handled by this decoder.
    """

    name: str
    suffixes: tuple[str, ...]

    def parse(self, payload: bytes, *, path: str | None = None) -> Mapping[str, Any]:
        """Return the mapping encoded in *payload* or raise ``DecodeError``."""

    def dump(self, data: Mapping[str, Any]) -> bytes:
        """Serialise *data* in this format."""


@runtime_checkable
class EnvironmentReader(Protocol):
    """Look up process environment variables by name."""

    def get(self, name: str) -> str | None:
        """Return the value of *name* or ``None`` when unset."""


@runtime_checkable
class FileSystem(Protocol):
    """Filesystem primitives consumed by the resolver and the facade."""

    def modified_ns(self, path: str) -> int | None:
        """Return the modification time of *path* when it is a regular file, else ``None``."""

    def read(self, path: str) -> bytes:
        """Return the bytes of *path* or raise ``FileReadError``."""

    def write(self, path: str, payload: bytes) -> None:
        """Write *payload* to *path* with owner-only permissions."""
