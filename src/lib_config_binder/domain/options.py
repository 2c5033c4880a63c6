"""Options accepted by :class:`lib_config_binder.core.ConfigService`.

The service never consults process-wide flags on its own; callers that want the
``CONFIG_BINDER_*_MODE`` switches opt in through :meth:`Options.from_environ`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Callable, Final, Mapping

DEBUG_MODE_VAR: Final[str] = "CONFIG_BINDER_DEBUG_MODE"
VERBOSE_MODE_VAR: Final[str] = "CONFIG_BINDER_VERBOSE_MODE"
SILENT_MODE_VAR: Final[str] = "CONFIG_BINDER_SILENT_MODE"

#: Interval used when auto-reload is enabled without a positive period.
DEFAULT_RELOAD_INTERVAL: Final[float] = 1.0

#: Sentinel ``env_prefix`` value that disables prefixing entirely.
NO_PREFIX: Final[str] = "-"


@dataclass(slots=True)
class Options:
    """Behavioural switches for one :class:`ConfigService`.

    Attributes
    ----------
    environment:
        Active environment name; empty means "detect".
    env_prefix:
        First binding-path segment; empty means "detect", ``"-"`` disables it.
    debug / verbose:
        Turn on the chatty diagnostic events.
    silent:
        Suppress the missing-file and example-fallback warnings.
    auto_reload / auto_reload_interval / auto_reload_callback:
        Background reload switch, period in seconds and commit hook.
    error_on_unmatched_keys:
        Strict decoding: unknown keys in a file raise
        :class:`~lib_config_binder.domain.errors.UnmatchedKeysError`.

    Examples
    --------
    >>> Options(auto_reload=True).auto_reload_interval
    1.0
    >>> Options().auto_reload_interval
    0.0
    """

    environment: str = ""
    env_prefix: str = ""
    debug: bool = False
    verbose: bool = False
    silent: bool = False
    auto_reload: bool = False
    auto_reload_interval: float = 0.0
    auto_reload_callback: Callable[[Any], None] | None = None
    error_on_unmatched_keys: bool = False

    def __post_init__(self) -> None:
        if self.auto_reload and self.auto_reload_interval <= 0:
            self.auto_reload_interval = DEFAULT_RELOAD_INTERVAL

    @property
    def chatty(self) -> bool:
        """Return ``True`` when either debug or verbose diagnostics are on."""

        return self.debug or self.verbose

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> Options:
        """Build options honouring the ``CONFIG_BINDER_*_MODE`` switches.

        Explicit ``overrides`` are applied first; a non-empty mode variable can
        only turn a flag on, never off.

        Examples
        --------
        >>> opts = Options.from_environ({"CONFIG_BINDER_SILENT_MODE": "1"}, environment="staging")
        >>> opts.silent, opts.debug, opts.environment
        (True, False, 'staging')
        """

        source = os.environ if environ is None else environ
        options = cls(**overrides)
        flags: dict[str, bool] = {}
        if source.get(DEBUG_MODE_VAR):
            flags["debug"] = True
        if source.get(VERBOSE_MODE_VAR):
            flags["verbose"] = True
        if source.get(SILENT_MODE_VAR):
            flags["silent"] = True
        return replace(options, **flags) if flags else options
