"""Local filesystem adapter.

Implements the :class:`lib_config_binder.application.ports.FileSystem` port on
top of :mod:`pathlib` and :func:`os.stat`, translating ``OSError`` into the
domain error taxonomy.
"""

from __future__ import annotations

import os
import stat
from pathlib import Path

from ...domain.errors import FileReadError, FileWriteError
from ...observability import log_debug


class LocalFileSystem:
    """Read, stat and write configuration files on the local disk."""

    def modified_ns(self, path: str) -> int | None:
        """Return ``st_mtime_ns`` when *path* is a regular file, otherwise ``None``.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> LocalFileSystem().modified_ns(tmp.name) is None
        True
        >>> tmp.cleanup()
        """

        try:
            info = os.stat(path)
        except OSError:
            return None
        if not stat.S_ISREG(info.st_mode):
            return None
        return info.st_mtime_ns

    def read(self, path: str) -> bytes:
        """Read *path* as bytes, raising :class:`FileReadError` when that fails."""

        try:
            payload = Path(path).read_bytes()
        except OSError as exc:
            raise FileReadError(path, exc.strerror or str(exc)) from exc
        log_debug("config_file_read", layer="file", path=path, size=len(payload))
        return payload

    def write(self, path: str, payload: bytes) -> None:
        """Write *payload* to *path*; newly created files get mode ``0o600``."""

        try:
            descriptor = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(descriptor, "wb") as handle:
                handle.write(payload)
        except OSError as exc:
            raise FileWriteError(path, exc.strerror or str(exc)) from exc
