"""Debounced delivery of search-query edits.

A burst of edits produces exactly one settle callback, carrying the last
value, once no further edit arrives for ``delay`` seconds. Each new edit
cancels the outstanding timer.

Example:
    debouncer = SearchDebouncer(run_search, delay=0.5)
    for text in ("b", "br", "bra", "brak", "brake"):
        debouncer.submit(text)
    # ~0.5s later: run_search("brake") is called once
"""

import threading
from typing import Any, Callable, Generic, Optional, TypeVar

from partshop.config import SEARCH_DEBOUNCE_SECONDS
from partshop.logging_config import get_logger

__all__ = ["SearchDebouncer"]

logger = get_logger("debounce")

T = TypeVar("T")

TimerFactory = Callable[[float, Callable[[], None]], Any]


class SearchDebouncer(Generic[T]):
    """Delays ``on_settle`` until input has been quiet for ``delay`` seconds.

    ``timer_factory`` must return an object with ``start()`` and
    ``cancel()``; it defaults to ``threading.Timer``.
    """

    def __init__(
        self,
        on_settle: Callable[[T], None],
        delay: float = SEARCH_DEBOUNCE_SECONDS,
        timer_factory: Optional[TimerFactory] = None,
    ):
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.on_settle = on_settle
        self.delay = delay
        self._timer_factory: TimerFactory = timer_factory or threading.Timer
        self._lock = threading.Lock()
        self._timer: Optional[Any] = None
        self._pending_value: Optional[T] = None
        # Bumped on every submit/cancel; a timer only delivers if its
        # generation is still current when it fires.
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def submit(self, value: T) -> None:
        """Record an edit, replacing any pending one."""
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            generation = self._generation
            self._pending_value = value
            timer = self._timer_factory(self.delay, lambda: self._fire(generation))
            if isinstance(timer, threading.Timer):
                timer.daemon = True
            self._timer = timer
        timer.start()

    def cancel(self) -> None:
        """Drop the pending edit without delivering it."""
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            self._pending_value = None

    def flush(self) -> bool:
        """Deliver the pending edit now. Returns False if nothing was pending."""
        with self._lock:
            if self._timer is None:
                return False
            self._cancel_locked()
            self._generation += 1
            value = self._pending_value
            self._pending_value = None
        self._deliver(value)
        return True

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
            value = self._pending_value
            self._pending_value = None
        self._deliver(value)

    def _deliver(self, value: Any) -> None:
        try:
            self.on_settle(value)
        except Exception:
            logger.exception("Settle callback failed")
            raise
