"""Composition root for ``lib_config_binder``.

Purpose
-------
Provide the entry points that orchestrate source resolution, decoding, field
binding and background reloads for caller-supplied records, and export only
stable, consumer-ready APIs.

Contents
--------
* :class:`ConfigService` – facade owning options, adapters and the watcher.
* :func:`load` / :func:`init` / :func:`save` / :func:`setup_config` /
  :func:`environment` – module-level helpers over a service built from
  :meth:`Options.from_environ`.
* :func:`no_change` – default ``init_values`` hook for :func:`setup_config`.

Pipeline
--------
Resolve the requested files into an ordered source set, decode each file into
the record (later files win), then bind environment values and defaults. Any
error aborts the attempt and propagates unchanged; files decoded before the
failure stay applied.

System Role
-----------
This module connects adapters (filesystem, environment, decoders) with the
application services while emitting structured observability signals. It is
the canonical location for adjusting precedence rules or wiring new adapters.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Mapping, Sequence

from .adapters.env.default import DefaultEnvReader, detect_environment, resolve_env_prefix
from .adapters.file_loaders.structured import DECODERS, YAMLDecoder
from .adapters.filesystem.local import LocalFileSystem
from .adapters.path_resolvers.default import SourceResolver
from .application.binder import FieldBinder
from .application.dispatch import DecoderDispatch
from .application.ports import FileSystem
from .application.watcher import ReloadWatcher
from .domain.errors import (
    ConfigError,
    DecodeError,
    FileReadError,
    FileWriteError,
    InvalidTargetError,
    RequiredFieldError,
    UnmatchedKeysError,
)
from .domain.options import NO_PREFIX, Options
from .domain.schema import schema_for, to_mapping
from .observability import log_debug, log_error, log_info, new_trace_id


def no_change(record: Any) -> None:
    """Default ``init_values`` hook: leave the freshly initialised record alone."""


class ConfigService:
    """Load, initialise, save and watch configuration records.

    Why
    ----
    Callers need a single object that owns the options, the adapters and at
    most one background watcher, so tests can inject environments and
    filesystems without touching process state.

    Parameters
    ----------
    options:
        Behavioural switches; defaults to ``Options()``.
    environ:
        Mapping used for environment lookups (binding, ``CONFIG_BINDER_ENV``,
        ``CONFIG_BINDER_ENV_PREFIX``). ``None`` reads the live process
        environment.
    filesystem:
        File adapter; defaults to :class:`LocalFileSystem`.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> from lib_config_binder.domain.schema import setting
    >>> @dataclass
    ... class Server:
    ...     port: int = setting("8080")
    >>> service = ConfigService(Options(environment="test", env_prefix="APP"), environ={"APP_PORT": "9090"})
    >>> service.load(Server(port=0)).port
    9090
    """

    def __init__(
        self,
        options: Options | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        self.options = options or Options()
        self._environ = environ
        self._env_reader = DefaultEnvReader(environ)
        self._filesystem = filesystem or LocalFileSystem()
        self._dispatch = DecoderDispatch(DECODERS)
        self._literals: YAMLDecoder = DECODERS["yaml"]  # type: ignore[assignment]
        self._mod_times: dict[str, int] = {}
        self._watcher: ReloadWatcher | None = None

    @property
    def environment(self) -> str:
        """Return the active environment name."""

        return self.options.environment or detect_environment(self._environ)

    @property
    def env_prefix(self) -> str:
        """Return the first binding-path segment (``"-"`` means none)."""

        return resolve_env_prefix(self.options.env_prefix, self._environ)

    @property
    def watcher(self) -> ReloadWatcher | None:
        """Return the running reload watcher, if ``auto_reload`` started one."""

        return self._watcher

    def prefixes(self) -> tuple[str, ...]:
        """Return the root binding path: ``()`` when prefixing is disabled."""

        prefix = self.env_prefix
        return () if prefix == NO_PREFIX else (prefix,)

    def load(self, record: Any, *files: str) -> Any:
        """Fill *record* from *files*, the environment and defaults.

        Required fields are enforced. With ``auto_reload`` set a watcher is
        started even when this first attempt fails, so a fixed file is picked
        up by a later cycle.

        Raises
        ------
        ConfigError
            Any subclass; the record may already hold values from files decoded
            before the failure.
        """

        schema_for(record)
        seed = copy.deepcopy(record)
        try:
            new_trace_id()
            self._run(record, files, enforce_required=True, watch_mode=False)
        finally:
            if self.options.auto_reload:
                self._start_watcher(record, seed, files)
        return record

    def init(self, record: Any, *files: str) -> Any:
        """Like :meth:`load` but without required checks and without a watcher."""

        schema_for(record)
        new_trace_id()
        self._run(record, files, enforce_required=False, watch_mode=False)
        return record

    def save(self, record: Any, filename: str) -> None:
        """Write *record* to *filename* in the format named by its extension.

        ``None`` values are omitted for TOML, which has no null.

        Raises
        ------
        DecodeError
            ``"unknown file type"`` for extensions other than ``.yaml``,
            ``.yml``, ``.json`` and ``.toml``.
        FileWriteError
            When the file cannot be written.
        """

        schema_for(record)
        decoder = self._dispatch.decoder_for(filename)
        if decoder is None:
            raise DecodeError("unknown file type")
        payload = decoder.dump(to_mapping(record, drop_none=decoder.name == "toml"))
        self._filesystem.write(filename, payload)
        log_info("config_saved", layer="file", path=filename, format=decoder.name)

    def setup_config(
        self,
        record: Any,
        filename: str,
        init_values: Callable[[Any], None] = no_change,
    ) -> bool:
        """Create *filename* from *record* when it is missing or empty.

        The record is initialised from the file (or its ``.example`` variant),
        handed to *init_values* and saved. Returns ``True`` when the file was
        written and ``False`` when it already had content.
        """

        if self._has_content(filename):
            return False
        self.init(record, filename)
        init_values(record)
        self.save(record, filename)
        return True

    def stop_watching(self, timeout: float | None = None) -> None:
        """Stop the reload watcher, if any."""

        if self._watcher is not None:
            self._watcher.stop(timeout)
            self._watcher = None

    def _has_content(self, filename: str) -> bool:
        if self._filesystem.modified_ns(filename) is None:
            return False
        return bool(self._filesystem.read(filename).strip())

    def _start_watcher(self, record: Any, seed: Any, files: Sequence[str]) -> None:
        self.stop_watching()

        def attempt(scratch: Any) -> bool:
            return self._run(scratch, files, enforce_required=True, watch_mode=True)

        self._watcher = ReloadWatcher(
            attempt,
            record,
            seed,
            interval=self.options.auto_reload_interval,
            callback=self.options.auto_reload_callback,
        )
        self._watcher.start()

    def _run(self, record: Any, files: Sequence[str], *, enforce_required: bool, watch_mode: bool) -> bool:
        """Run one pipeline attempt; return ``False`` when watch mode found nothing new."""

        options = self.options
        resolver = SourceResolver(
            self.environment,
            filesystem=self._filesystem,
            silent=options.silent,
            verbose=options.chatty,
        )
        sources = resolver.resolve(files, watch_mode=watch_mode)
        if watch_mode and not sources.changed_since(self._mod_times):
            return False
        try:
            for path in sources.paths:
                if options.chatty:
                    log_debug("config_source_decoding", layer="file", path=path)
                payload = self._filesystem.read(path)
                self._dispatch.decode(payload, record, strict=options.error_on_unmatched_keys, source=path)
            binder = FieldBinder(
                self._env_reader,
                literal_parser=self._literals.parse_literal,
                enforce_required=enforce_required,
                verbose=options.verbose,
                debug=options.debug,
            )
            binder.bind(record, self.prefixes())
        except ConfigError as exc:
            if options.chatty:
                log_error("configuration_load_failed", layer="final", path=None, error=str(exc))
            raise
        self._mod_times = dict(sources.mod_times)
        log_info(
            "configuration_bound",
            layer="final",
            path=None,
            record=schema_for(record).name,
            files=len(sources.paths),
            environment=resolver.environment,
        )
        return True


def load(record: Any, *files: str, options: Options | None = None) -> Any:
    """Load *record* with a service built from ``CONFIG_BINDER_*`` mode switches."""

    return ConfigService(options or Options.from_environ()).load(record, *files)


def init(record: Any, *files: str, options: Options | None = None) -> Any:
    """Initialise *record* without required checks."""

    return ConfigService(options or Options.from_environ()).init(record, *files)


def save(record: Any, filename: str) -> None:
    """Write *record* to *filename*; see :meth:`ConfigService.save`."""

    ConfigService(Options.from_environ()).save(record, filename)


def setup_config(record: Any, filename: str, init_values: Callable[[Any], None] = no_change) -> bool:
    """Create *filename* from *record* when missing or empty; see :meth:`ConfigService.setup_config`."""

    return ConfigService(Options.from_environ()).setup_config(record, filename, init_values)


def environment() -> str:
    """Return the environment a default service would use."""

    return ConfigService(Options.from_environ()).environment


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
    "environment",
    "init",
    "load",
    "no_change",
    "save",
    "setup_config",
]
