"""Public package surface of ``lib_config_binder``.

Records are plain mutable dataclasses whose fields are declared with
:func:`setting`. :func:`load` fills one from configuration files, environment
variables and defaults; :class:`ConfigService` does the same with explicit
:class:`Options`, an injectable environment and optional background reloads.
"""

from __future__ import annotations

from .core import (
    ConfigService,
    environment,
    init,
    load,
    no_change,
    save,
    setup_config,
)
from .domain.errors import (
    ConfigError,
    DecodeError,
    FileReadError,
    FileWriteError,
    InvalidTargetError,
    RequiredFieldError,
    UnmatchedKeysError,
)
from .domain.options import Options
from .domain.schema import new_record, setting
from .observability import bind_trace_id, get_logger

__all__ = [
    "ConfigError",
    "ConfigService",
    "DecodeError",
    "FileReadError",
    "FileWriteError",
    "InvalidTargetError",
    "Options",
    "RequiredFieldError",
    "UnmatchedKeysError",
    "bind_trace_id",
    "environment",
    "get_logger",
    "init",
    "load",
    "new_record",
    "no_change",
    "save",
    "setting",
    "setup_config",
]
