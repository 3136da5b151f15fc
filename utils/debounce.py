"""Debounced callbacks backed by ``threading.Timer``."""

from __future__ import annotations

import logging
from threading import Lock, Timer
from typing import Callable, Protocol

from streamlit.runtime.scriptrunner import add_script_run_ctx, get_script_run_ctx

logger = logging.getLogger(__name__)


class TimerLike(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerLike]


def _default_timer_factory(delay: float, callback: Callable[[], None]) -> TimerLike:
    """Create a daemon timer that inherits the caller's Streamlit script context.

    Without the context, ``st.session_state`` inside the callback resolves
    to a detached state and writes are lost.
    """

    timer = Timer(delay, callback)
    timer.daemon = True
    ctx = get_script_run_ctx(suppress_warning=True)
    if ctx is not None:
        add_script_run_ctx(timer, ctx)
    return timer


class Debouncer:
    """Coalesce rapid calls into a single delayed invocation.

    Each :meth:`schedule` replaces the pending callback and restarts the
    delay. :meth:`cancel` drops the pending callback without running it,
    :meth:`flush` runs it right away.
    """

    def __init__(self, delay: float, *, timer_factory: TimerFactory | None = None) -> None:
        if delay < 0:
            msg = "delay must be >= 0"
            raise ValueError(msg)
        self.delay = delay
        self._timer_factory = timer_factory or _default_timer_factory
        self._lock = Lock()
        self._timer: TimerLike | None = None
        self._pending: Callable[[], None] | None = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def schedule(self, callback: Callable[[], None]) -> None:
        """Replace any pending callback with ``callback`` and restart the delay."""

        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            self._pending = callback
            self._timer = self._timer_factory(self.delay, lambda: self._fire(generation))
            self._timer.start()

    def cancel(self) -> bool:
        """Drop the pending callback. Returns ``True`` when one was pending."""

        with self._lock:
            had_pending = self._pending is not None
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None
            self._generation += 1
            return had_pending

    def flush(self) -> bool:
        """Run the pending callback immediately. Returns ``True`` when one ran."""

        with self._lock:
            callback = self._take_pending()
        if callback is None:
            return False
        callback()
        return True

    def _take_pending(self) -> Callable[[], None] | None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        callback = self._pending
        self._pending = None
        self._generation += 1
        return callback

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            callback = self._take_pending()
        if callback is not None:
            callback()
