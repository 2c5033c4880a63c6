"""Filesystem source resolution for layered configuration files.

Purpose
-------
Decide which files a load actually reads and in which order, given the paths a
caller asked for and the active environment name. The adapter is the only
component that knows about environment-suffixed variants and ``.example``
fallbacks.

Contents
--------
* :class:`SourceResolver` – resolves candidates into a
  :class:`~lib_config_binder.domain.sources.SourceSet`.
* :func:`with_token` – inserts ``.<token>`` before a file's extension.

Precedence
----------
Candidates are processed in the order given and appended in that order, so
**later-listed files win**. Within one candidate the base file comes first and
its ``.<environment>`` variant second, so the variant overrides its base. The
``.example`` variant is read only when neither exists.

System Role
-----------
Feeds :class:`lib_config_binder.core.ConfigService` with the decode order and
the modification times the reload watcher compares between cycles.
"""

from __future__ import annotations

import os
from typing import Final, Sequence

from ...application.ports import FileSystem
from ...domain.sources import SourceSet
from ...observability import log_debug, log_info, log_warning
from ..filesystem.local import LocalFileSystem

#: Token of the fallback variant read when a requested file is missing.
EXAMPLE_TOKEN: Final[str] = "example"


def with_token(path: str, token: str) -> str:
    """Return *path* with ``.<token>`` inserted before its extension.

    Examples
    --------
    >>> with_token("config/app.yml", "production")
    'config/app.production.yml'
    >>> with_token("config/app", "example")
    'config/app.example'
    """

    root, extension = os.path.splitext(path)
    if not extension:
        return f"{path}.{token}"
    return f"{root}.{token}{extension}"


class SourceResolver:
    """Resolve requested configuration paths into an ordered :class:`SourceSet`.

    Why
    ----
    Centralise path discovery so the facade stays independent of naming
    conventions and the watcher gets comparable modification times.
    """

    def __init__(
        self,
        environment: str,
        *,
        filesystem: FileSystem | None = None,
        silent: bool = False,
        verbose: bool = False,
    ) -> None:
        """Store the context required to resolve file variants.

        Parameters
        ----------
        environment:
            Active environment name used for the ``.<environment>`` variant.
        filesystem:
            Stat provider; defaults to :class:`LocalFileSystem`.
        silent:
            Suppress the missing-file and example-fallback warnings.
        verbose:
            Log the active environment at the start of each resolution.
        """

        self.environment = environment
        self.filesystem = filesystem or LocalFileSystem()
        self.silent = silent
        self.verbose = verbose

    def resolve(self, files: Sequence[str], *, watch_mode: bool = False) -> SourceSet:
        """Return the files to decode, lowest precedence first.

        Parameters
        ----------
        files:
            Requested paths; later entries take precedence over earlier ones.
        watch_mode:
            Set by the reload watcher; suppresses every diagnostic.

        Examples
        --------
        >>> from pathlib import Path
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> base = Path(tmp.name) / "app.yml"
        >>> _ = base.write_text("name: base", encoding="utf-8")
        >>> _ = Path(tmp.name, "app.production.yml").write_text("name: prod", encoding="utf-8")
        >>> resolved = SourceResolver("production").resolve([str(base)])
        >>> [Path(p).name for p in resolved.paths]
        ['app.yml', 'app.production.yml']
        >>> tmp.cleanup()
        """

        if self.verbose and not watch_mode:
            log_info("active_environment", layer="file", path=None, environment=self.environment)
        paths: list[str] = []
        mod_times: dict[str, int] = {}
        quiet = self.silent or watch_mode
        for requested in files:
            found = False
            for candidate in (requested, with_token(requested, self.environment)):
                modified = self.filesystem.modified_ns(candidate)
                if modified is None:
                    continue
                found = True
                paths.append(candidate)
                mod_times[candidate] = modified
            if found:
                continue
            example = with_token(requested, EXAMPLE_TOKEN)
            modified = self.filesystem.modified_ns(example)
            if modified is not None:
                if not quiet:
                    log_warning("config_example_used", layer="file", path=requested, example=example)
                paths.append(example)
                mod_times[example] = modified
            elif not quiet:
                log_warning("config_file_missing", layer="file", path=requested)
        if paths:
            log_debug("path_candidates", layer="file", path=None, count=len(paths))
        return SourceSet(tuple(paths), mod_times)
