"""Unit tests for structured logging utilities in ``observability``.

Validates the null handler, trace binding, and event construction behaviour
downstream consumers rely on when correlating load attempts.
"""

from __future__ import annotations

import logging

import pytest

from lib_config_binder import bind_trace_id, get_logger
from lib_config_binder.observability import TRACE_ID, context_for, log_info, log_warning, new_trace_id


def test_null_handler_present() -> None:
    """Package logger should always include a NullHandler to avoid surprises."""

    logger = get_logger()
    assert any(isinstance(handler, logging.NullHandler) for handler in logger.handlers)


def test_trace_id_in_log(caplog: pytest.LogCaptureFixture) -> None:
    """Structured logs should include the bound trace identifier and contextual fields."""

    caplog.set_level(logging.INFO, logger="lib_config_binder")
    bind_trace_id("trace-123")
    log_info("configuration_bound", layer="final", path=None)
    assert caplog.records
    record = caplog.records[-1]
    assert getattr(record, "context") == {"trace_id": "trace-123", "layer": "final", "path": None}


def test_new_trace_id_binds_fresh_identifiers() -> None:
    first = new_trace_id()
    second = new_trace_id()
    assert first != second
    assert TRACE_ID.get() == second
    bind_trace_id(None)


def test_warning_level_is_kept(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="lib_config_binder")
    log_warning("config_file_missing", layer="file", path="app.yml")
    assert caplog.records[-1].levelno == logging.WARNING
    assert caplog.records[-1].getMessage() == "config_file_missing"


def test_bind_trace_id_clears_context() -> None:
    """Clearing the trace ID should reset the context variable to None."""

    bind_trace_id("trace-temp")
    bind_trace_id(None)
    assert TRACE_ID.get() is None


def test_context_for_stamps_trace_before_fields() -> None:
    """Each record payload should carry the trace identifier followed by caller fields."""

    bind_trace_id("trace-ctx")
    assert context_for({"layer": "reload", "path": None}) == {
        "trace_id": "trace-ctx",
        "layer": "reload",
        "path": None,
    }
    bind_trace_id(None)


def test_disabled_levels_emit_nothing(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="lib_config_binder")
    log_info("configuration_bound", layer="final", path=None)
    assert not [record for record in caplog.records if record.name == "lib_config_binder"]
