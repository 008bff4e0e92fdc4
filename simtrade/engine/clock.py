"""Wall-clock source for engine timestamps."""

import threading
from collections.abc import Callable
from datetime import datetime, timedelta

_TICK = timedelta(microseconds=1)


class MonotonicClock:
    """Wall clock that never returns the same or an earlier time twice.

    Order, trade and alert timestamps are derived from this clock so that
    creation times are strictly increasing within a session even when the
    underlying clock has coarse resolution or steps backwards.
    """

    def __init__(self, source: Callable[[], datetime] = datetime.now) -> None:
        """Initialize the clock.

        Args:
            source: Underlying wall-clock function (default datetime.now).
        """
        self._source = source
        self._last: datetime | None = None
        self._lock = threading.Lock()

    def now(self) -> datetime:
        """Return the current time, bumped past the previous reading if needed."""
        with self._lock:
            current = self._source()
            if self._last is not None and current <= self._last:
                current = self._last + _TICK
            self._last = current
            return current

    def __call__(self) -> datetime:
        return self.now()
