"""Source resolver tests: environment variants, example fallback and precedence."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from lib_config_binder.adapters.path_resolvers.default import SourceResolver, with_token


def _write(path: Path, body: str = "name: x\n") -> str:
    path.write_text(body, encoding="utf-8")
    return str(path)


def _messages(caplog: pytest.LogCaptureFixture) -> list[str]:
    return [record.getMessage() for record in caplog.records]


def test_with_token_inserts_before_extension() -> None:
    assert with_token("config/app.yml", "production") == "config/app.production.yml"
    assert with_token("config/app", "example") == "config/app.example"
    assert with_token("app.tar.json", "test") == "app.tar.test.json"


def test_base_then_environment_variant(tmp_path: Path) -> None:
    base = _write(tmp_path / "app.yml")
    variant = _write(tmp_path / "app.production.yml")
    resolved = SourceResolver("production").resolve([base])
    assert resolved.paths == (base, variant)
    assert set(resolved.mod_times) == {base, variant}


def test_environment_variant_alone(tmp_path: Path) -> None:
    variant = _write(tmp_path / "app.staging.json", "{}")
    resolved = SourceResolver("staging").resolve([str(tmp_path / "app.json")])
    assert resolved.paths == (variant,)


def test_later_listed_files_come_last(tmp_path: Path) -> None:
    first = _write(tmp_path / "base.yaml")
    second = _write(tmp_path / "base.json", "{}")
    resolved = SourceResolver("test").resolve([first, second])
    assert resolved.paths == (first, second)


def test_example_fallback_warns(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="lib_config_binder")
    example = _write(tmp_path / "app.example.yml")
    resolved = SourceResolver("test").resolve([str(tmp_path / "app.yml")])
    assert resolved.paths == (example,)
    assert "config_example_used" in _messages(caplog)


def test_example_ignored_when_real_file_exists(tmp_path: Path) -> None:
    base = _write(tmp_path / "app.yml")
    _write(tmp_path / "app.example.yml")
    assert SourceResolver("test").resolve([base]).paths == (base,)


def test_missing_file_warns_and_contributes_nothing(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="lib_config_binder")
    resolved = SourceResolver("test").resolve([str(tmp_path / "missing.yml")])
    assert resolved.paths == ()
    assert "config_file_missing" in _messages(caplog)


@pytest.mark.parametrize("silent, watch_mode", [(True, False), (False, True)])
def test_diagnostics_suppressed(
    tmp_path: Path, caplog: pytest.LogCaptureFixture, silent: bool, watch_mode: bool
) -> None:
    caplog.set_level(logging.DEBUG, logger="lib_config_binder")
    _write(tmp_path / "app.example.yml")
    SourceResolver("test", silent=silent).resolve(
        [str(tmp_path / "app.yml"), str(tmp_path / "other.yml")], watch_mode=watch_mode
    )
    messages = _messages(caplog)
    assert "config_example_used" not in messages
    assert "config_file_missing" not in messages


def test_verbose_logs_active_environment(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="lib_config_binder")
    SourceResolver("qa", verbose=True).resolve([])
    assert caplog.records[-1].getMessage() == "active_environment"
    assert getattr(caplog.records[-1], "context")["environment"] == "qa"


def test_directories_are_not_sources(tmp_path: Path) -> None:
    (tmp_path / "app.yml").mkdir()
    assert SourceResolver("test", silent=True).resolve([str(tmp_path / "app.yml")]).paths == ()
