"""Background reload of a loaded record.

The watcher owns one daemon thread. Every ``interval`` seconds it reruns the
watch-mode pipeline on a fresh copy of the seed record (the record as the
caller handed it in, before any file was applied) and publishes the result
into the live target only when the sources changed and the attempt succeeded.

Readers that need a consistent view take :attr:`ReloadWatcher.lock` or read
:attr:`ReloadWatcher.snapshot`, which is replaced as a whole on each commit.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Callable

from ..domain.errors import ConfigError
from ..domain.schema import copy_fields
from ..observability import log_debug, log_error, log_info, new_trace_id

#: ``attempt(scratch)`` returns ``True`` when it bound *scratch* from changed
#: sources and ``False`` when nothing changed since the last commit.
ReloadAttempt = Callable[[Any], bool]


class ReloadWatcher:
    """Periodically rebuild a record and publish it atomically.

    Parameters
    ----------
    attempt:
        Watch-mode pipeline run against a scratch copy of *seed*.
    target:
        The caller's live record; committed values are copied into it.
    seed:
        Record state before the first load; every cycle starts from a copy.
    interval:
        Seconds between the end of one cycle and the start of the next.
    callback:
        Invoked once with *target* after each commit.
    """

    def __init__(
        self,
        attempt: ReloadAttempt,
        target: Any,
        seed: Any,
        *,
        interval: float,
        callback: Callable[[Any], None] | None = None,
    ) -> None:
        self._attempt = attempt
        self._target = target
        self._seed = copy.deepcopy(seed)
        self._interval = interval
        self._callback = callback
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.lock = threading.RLock()
        self.snapshot: Any = copy.deepcopy(target)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Launch the reload thread; a second call while running is a no-op."""

        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="lib_config_binder-reload", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Signal the loop to end and wait for the thread."""

        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def run_once(self) -> bool:
        """Run one reload cycle; return ``True`` when a new record was published."""

        new_trace_id()
        scratch = copy.deepcopy(self._seed)
        try:
            changed = self._attempt(scratch)
        except ConfigError as exc:
            log_error("config_reload_failed", layer="reload", path=None, error=str(exc))
            return False
        if not changed:
            log_debug("config_reload_unchanged", layer="reload", path=None)
            return False
        self._publish(scratch)
        return True

    def _publish(self, fresh: Any) -> None:
        with self.lock:
            copy_fields(self._target, copy.deepcopy(fresh))
            self.snapshot = fresh
        log_info("config_reload_committed", layer="reload", path=None)
        if self._callback is not None:
            self._callback(self._target)

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self.run_once()
            except Exception as exc:  # callback or unexpected failure must not kill the thread
                log_error("config_reload_failed", layer="reload", path=None, error=repr(exc))
