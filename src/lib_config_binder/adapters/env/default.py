"""Environment variable adapter.

Purpose
-------
Give the binder read-only access to the process environment and derive the
names the library reads about itself: the active environment name and the
binding-path prefix.

Key behaviours
--------------
* :class:`DefaultEnvReader` wraps :data:`os.environ` (or an injected mapping
  for tests) behind the :class:`~lib_config_binder.application.ports.EnvironmentReader`
  port.
* :func:`default_env_prefix` turns a slug into an upper snake-case prefix.
* :func:`detect_environment` honours ``CONFIG_BINDER_ENV``, then recognises
  test runners, then falls back to ``development``.
* :func:`resolve_env_prefix` honours ``CONFIG_BINDER_ENV_PREFIX`` before the
  library default.
"""

from __future__ import annotations

import os
import re
import sys
from typing import Final, Mapping, Sequence

ENVIRONMENT_VAR: Final[str] = "CONFIG_BINDER_ENV"
ENV_PREFIX_VAR: Final[str] = "CONFIG_BINDER_ENV_PREFIX"
DEFAULT_ENVIRONMENT: Final[str] = "development"
TEST_ENVIRONMENT: Final[str] = "test"

_TEST_RUNNER = re.compile(r"_test|(\.test$)|pytest")


def default_env_prefix(slug: str) -> str:
    """Return the canonical environment prefix for *slug*.

    Examples
    --------
    >>> default_env_prefix('config-binder')
    'CONFIG_BINDER'
    """

    return slug.replace("-", "_").upper()


DEFAULT_ENV_PREFIX: Final[str] = default_env_prefix("config-binder")


class DefaultEnvReader:
    """Read variables from the process environment (or an injected mapping)."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        """Initialise the reader with a specific ``environ`` mapping for testability.

        Parameters
        ----------
        environ:
            Mapping to read from. Defaults to the live :data:`os.environ`, so
            values set after construction are still seen.
        """

        self._environ = os.environ if environ is None else environ

    def get(self, name: str) -> str | None:
        """Return the value stored under *name*, or ``None``.

        Examples
        --------
        >>> DefaultEnvReader({"APP_PORT": "80"}).get("APP_PORT")
        '80'
        >>> DefaultEnvReader({}).get("APP_PORT") is None
        True
        """

        return self._environ.get(name)


def detect_environment(environ: Mapping[str, str] | None = None, argv: Sequence[str] | None = None) -> str:
    """Return the active environment name when none was configured.

    Examples
    --------
    >>> detect_environment({"CONFIG_BINDER_ENV": "staging"}, ["app"])
    'staging'
    >>> detect_environment({}, ["/usr/bin/pytest"])
    'test'
    >>> detect_environment({}, ["serve.py"])
    'development'
    """

    source = os.environ if environ is None else environ
    arguments = sys.argv if argv is None else argv
    configured = source.get(ENVIRONMENT_VAR)
    if configured:
        return configured
    if source.get("PYTEST_CURRENT_TEST"):
        return TEST_ENVIRONMENT
    if arguments and _TEST_RUNNER.search(arguments[0]):
        return TEST_ENVIRONMENT
    return DEFAULT_ENVIRONMENT


def resolve_env_prefix(configured: str, environ: Mapping[str, str] | None = None) -> str:
    """Return *configured* or the ``CONFIG_BINDER_ENV_PREFIX`` override or the default.

    Examples
    --------
    >>> resolve_env_prefix("APP", {})
    'APP'
    >>> resolve_env_prefix("", {"CONFIG_BINDER_ENV_PREFIX": "SVC"})
    'SVC'
    >>> resolve_env_prefix("", {})
    'CONFIG_BINDER'
    """

    if configured:
        return configured
    source = os.environ if environ is None else environ
    return source.get(ENV_PREFIX_VAR) or DEFAULT_ENV_PREFIX
