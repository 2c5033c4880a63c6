"""Structured diagnostics for load, bind and reload attempts.

Every event goes through the ``lib_config_binder`` logger with the event name
as the message and a ``context`` mapping in ``extra``: the trace identifier of
the current attempt plus the fields supplied by the caller (``layer``,
``path``, field names, candidate variables...). The logger only carries a
``NullHandler``; applications decide where events end up.

Contents
    - ``TRACE_ID`` / ``bind_trace_id`` / ``new_trace_id``: per-attempt
      correlation, stored in a context variable so the reload thread keeps its
      own identifier.
    - ``get_logger``: the package logger.
    - ``context_for``: the trace-stamped payload attached to each record.
    - ``log_debug`` / ``log_info`` / ``log_warning`` / ``log_error``: level
      bound emitters.
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar
from typing import Any, Callable, Final, Mapping

TRACE_ID: ContextVar[str | None] = ContextVar("lib_config_binder_trace_id", default=None)

_LOGGER: Final[logging.Logger] = logging.getLogger("lib_config_binder")
_LOGGER.addHandler(logging.NullHandler())

Emitter = Callable[..., None]


def get_logger() -> logging.Logger:
    """Return the package logger so host applications can attach handlers."""

    return _LOGGER


def bind_trace_id(trace_id: str | None) -> None:
    """Bind *trace_id* to the current context, or clear it with ``None``.

    Examples
    --------
    >>> bind_trace_id("reload-1")
    >>> TRACE_ID.get()
    'reload-1'
    >>> bind_trace_id(None)
    """

    TRACE_ID.set(trace_id)


def new_trace_id() -> str:
    """Mint, bind and return the identifier for one load attempt."""

    trace_id = uuid.uuid4().hex
    bind_trace_id(trace_id)
    return trace_id


def context_for(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Return *fields* prefixed with the active trace identifier.

    Examples
    --------
    >>> bind_trace_id("t-1")
    >>> context_for({"layer": "env", "path": None})
    {'trace_id': 't-1', 'layer': 'env', 'path': None}
    >>> bind_trace_id(None)
    """

    return {"trace_id": TRACE_ID.get(), **fields}


def _emitter(level: int) -> Emitter:
    def emit(event: str, **fields: Any) -> None:
        if _LOGGER.isEnabledFor(level):
            _LOGGER.log(level, event, extra={"context": context_for(fields)})

    emit.__name__ = f"log_{logging.getLevelName(level).lower()}"
    emit.__doc__ = f"Emit *event* at {logging.getLevelName(level)} with trace-stamped *fields*."
    return emit


log_debug: Final[Emitter] = _emitter(logging.DEBUG)
log_info: Final[Emitter] = _emitter(logging.INFO)
log_warning: Final[Emitter] = _emitter(logging.WARNING)
log_error: Final[Emitter] = _emitter(logging.ERROR)
