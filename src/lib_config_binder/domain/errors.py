"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by adapters, the binder, and consuming
applications. The hierarchy lives in the domain layer so outer layers may
depend on it without the domain depending on them.

Contents
--------
* :class:`ConfigError` – umbrella base class for all configuration issues.
* :class:`FileReadError` – a resolved source file could not be read.
* :class:`FileWriteError` – saving a record failed.
* :class:`DecodeError` – malformed content or a value that does not fit the
  target field.
* :class:`UnmatchedKeysError` – strict decoding met keys without a field.
* :class:`RequiredFieldError` – a required field stayed blank.
* :class:`InvalidTargetError` – the supplied record cannot be bound.

System Role
-----------
Any of these aborts :meth:`lib_config_binder.core.ConfigService.load` and is
returned to the caller unchanged. The reload watcher catches
:class:`ConfigError` and logs it instead.
"""

from __future__ import annotations

from typing import Iterable, Sequence


class ConfigError(Exception):
    """Base type for all exceptions emitted by ``lib_config_binder``."""


class FileReadError(ConfigError):
    """Raised when a resolved source file cannot be read from disk."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to read configuration file {path}: {reason}")
        self.path = path


class FileWriteError(ConfigError):
    """Raised when :meth:`~lib_config_binder.core.ConfigService.save` cannot write its file."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to write configuration file {path}: {reason}")
        self.path = path


class DecodeError(ConfigError):
    """Raised when content cannot be parsed or converted into the target type.

    Typical Sources
    ---------------
    Structured decoders (:mod:`tomllib`, :mod:`json`, :mod:`yaml`), environment
    literals and ``default`` annotations that do not fit their field.
    """


class UnmatchedKeysError(ConfigError):
    """Raised in strict mode when a file carries keys without a matching field.

    The dispatcher treats this as conclusive: the format was right, the content
    was not, so probing other formats stops here.

    Examples
    --------
    >>> str(UnmatchedKeysError(["db.hots", "extra"]))
    "There are keys in the config file that do not match any field in the given record: ['db.hots', 'extra']"
    """

    def __init__(self, keys: Iterable[str], source: str | None = None) -> None:
        self.keys: tuple[str, ...] = tuple(keys)
        self.source = source
        message = f"There are keys in the config file that do not match any field in the given record: {list(self.keys)}"
        if source:
            message = f"{message} (file {source})"
        super().__init__(message)


class RequiredFieldError(ConfigError):
    """Raised when a ``required`` field is still blank after files, env and defaults."""

    def __init__(self, field: str, env_names: Sequence[str] = ()) -> None:
        super().__init__(f"{field} is required, but blank")
        self.field = field
        self.env_names = tuple(env_names)


class InvalidTargetError(ConfigError):
    """Raised when the target is not a mutable dataclass instance."""
