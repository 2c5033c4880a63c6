"""CLI adapter for ``lib_config_binder`` built on ``lib_cli_exit_tools``.

Purpose
-------
Let operators inspect how a record type would be bound without writing Python:
which environment is active, which files a load would read and in which order,
which variable names a field answers to, and what the bound record looks like.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command wiring traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` / :func:`cli_environment` / :func:`cli_env_prefix` –
  diagnostics about the installation and the detected defaults.
* :func:`cli_sources` – resolved files with their modification times.
* :func:`cli_env_names` – candidate variable names for every field of a type.
* :func:`cli_show` – binds a record type and prints it as JSON.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
The CLI lives in the outermost layer. It goes through
:class:`lib_config_binder.core.ConfigService` and the binder's public helpers
only; ``lib_cli_exit_tools`` centralises the exit code strategy.
"""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from importlib import import_module, metadata
from typing import Any, Final, Iterator, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .adapters.path_resolvers.default import SourceResolver
from .application.binder import env_names_for
from .core import ConfigService
from .domain.options import Options
from .domain.schema import describe, new_record, to_mapping

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000
_DISTRIBUTION: Final[str] = "lib_config_binder"


def _resolve_version() -> str:
    """Return the installed package version, or ``"0.0.0"`` for source checkouts."""

    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _import_target(reference: str) -> type:
    """Import ``module:Class`` (or ``module.Class``) and return the record type."""

    module_name, sep, attribute = reference.partition(":")
    if not sep:
        module_name, _, attribute = reference.rpartition(".")
    if not module_name or not attribute:
        raise click.BadParameter("Expected TARGET as module:Class", param_hint="TARGET")
    try:
        module = import_module(module_name)
    except ImportError as exc:
        raise click.BadParameter(f"Cannot import {module_name}: {exc}", param_hint="TARGET") from exc
    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise click.BadParameter(f"{module_name} has no attribute {attribute}", param_hint="TARGET") from exc
    describe(target)
    return target


def _service(environment: Optional[str], prefix: Optional[str], **flags: Any) -> ConfigService:
    return ConfigService(Options.from_environ(environment=environment or "", env_prefix=prefix or "", **flags))


@click.group(
    help="Bind configuration files and environment variables into dataclass records",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name=_DISTRIBUTION,
    message="lib_config_binder version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command configuring traceback handling for all subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        click.echo(f"{_DISTRIBUTION} (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', _DISTRIBUTION)}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("environment", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_environment() -> None:
    """Print the environment name a default load would use."""

    click.echo(ConfigService(Options.from_environ()).environment)


@cli.command("env-prefix", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_env_prefix() -> None:
    """Print the binding-path prefix a default load would use (``-`` means none).

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> result = CliRunner().invoke(cli, ["env-prefix"], env={"CONFIG_BINDER_ENV_PREFIX": "APP"})
    >>> result.output.strip()
    'APP'
    """

    click.echo(ConfigService(Options.from_environ()).env_prefix)


@cli.command("sources", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("files", nargs=-1, required=True)
@click.option("--environment", default=None, help="Environment name used for file variants")
@click.option("--indent", type=int, default=2, show_default=True, help="JSON indent size")
def cli_sources(files: Sequence[str], environment: Optional[str], indent: int) -> None:
    """List the files a load would read, lowest precedence first, as JSON."""

    service = _service(environment, None)
    resolved = SourceResolver(service.environment, silent=service.options.silent).resolve(files)
    payload = [{"path": path, "mtime_ns": resolved.mod_times[path]} for path in resolved.paths]
    click.echo(json.dumps(payload, indent=indent))


@cli.command("env-names", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("target")
@click.option("--prefix", default=None, help="Binding-path prefix (\"-\" disables it)")
def cli_env_names(target: str, prefix: Optional[str]) -> None:
    """Print every field of TARGET (``module:Class``) with its variable names."""

    record_type = _import_target(target)
    prefixes = _service(None, prefix).prefixes()
    for dotted, names in env_names_for(record_type, prefixes):
        click.echo(f"{dotted}: {', '.join(names)}")


@cli.command("show", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("target")
@click.argument("files", nargs=-1)
@click.option("--environment", default=None, help="Environment name used for file variants")
@click.option("--prefix", default=None, help="Binding-path prefix (\"-\" disables it)")
@click.option("--strict/--no-strict", default=False, help="Fail on file keys without a matching field")
@click.option("--init", "init_only", is_flag=True, default=False, help="Skip required-field checks")
@click.option("--indent", type=int, default=2, show_default=True, help="JSON indent size")
def cli_show(
    target: str,
    files: Sequence[str],
    environment: Optional[str],
    prefix: Optional[str],
    strict: bool,
    init_only: bool,
    indent: int,
) -> None:
    """Bind TARGET from FILES and the environment, then print it as JSON."""

    record = new_record(_import_target(target))
    service = _service(environment, prefix, error_on_unmatched_keys=strict)
    if init_only:
        service.init(record, *files)
    else:
        service.load(record, *files)
    click.echo(json.dumps(to_mapping(record), indent=indent, default=str))


@contextmanager
def _preserved_traceback_settings(restore: bool) -> Iterator[None]:
    """Put ``lib_cli_exit_tools.config`` traceback flags back after a run when *restore* is set."""

    config = lib_cli_exit_tools.config
    saved = (getattr(config, "traceback", False), getattr(config, "traceback_force_color", False))
    try:
        yield
    finally:
        if restore:
            config.traceback, config.traceback_force_color = saved


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Run the CLI and return its exit code; errors are printed by ``lib_cli_exit_tools``."""

    with _preserved_traceback_settings(restore_traceback):
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=None if argv is None else list(argv),
                prog_name=_DISTRIBUTION,
            )
        except BaseException as exc:  # noqa: BLE001 - every failure becomes an exit code
            verbose = bool(lib_cli_exit_tools.config.traceback)
            lib_cli_exit_tools.print_exception_message(
                trace_back=verbose,
                length_limit=_TRACEBACK_VERBOSE_LIMIT if verbose else _TRACEBACK_SUMMARY_LIMIT,
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    sys.exit(main(sys.argv[1:]))
