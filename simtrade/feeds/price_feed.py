"""Price Feed Adapter.

This module merges updates from any number of price sources into the single
authoritative price table the engine evaluates orders and alerts against.
"""

import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timedelta
from decimal import Decimal

from simtrade.feeds.base import PriceSource, SourceWorker
from simtrade.models import ZERO, PriceTable, to_decimal

logger = logging.getLogger(__name__)

PriceListener = Callable[[PriceTable], None]


class PriceFeed:
    """In-memory price table keyed by symbol.

    Updates arrive as batches. Each published batch produces one notification
    to subscribers; wrapping several publishes in :meth:`batch` coalesces them
    into a single notification. A paused feed drops incoming batches but
    keeps its sources running, so resuming picks up whatever they report
    next. Source failures never clear the table.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        """Initialize an empty feed.

        Args:
            clock: Time source for update timestamps.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._prices: dict[str, Decimal] = {}
        self._updated_at: dict[str, datetime] = {}
        self._last_update_at: datetime | None = None
        self._paused = False
        self._batch_depth = 0
        self._dirty = False
        self._listeners: list[PriceListener] = []
        self._workers: list[SourceWorker] = []

    # -- sources -----------------------------------------------------------

    def add_source(self, source: PriceSource) -> None:
        """Register a price source to be driven by :meth:`start`."""
        worker = SourceWorker(source, self.publish)
        self._workers.append(worker)

    @property
    def sources(self) -> list[PriceSource]:
        return [w.source for w in self._workers]

    def start(self) -> None:
        """Start polling all registered sources."""
        for worker in self._workers:
            worker.start()

    def stop(self) -> None:
        """Stop polling. The table keeps its last known values."""
        for worker in self._workers:
            worker.stop()

    def poll_sources(self) -> int:
        """Poll every source once, coalesced into one notification.

        Returns:
            Number of sources that delivered a batch.
        """
        with self.batch():
            return sum(1 for worker in self._workers if worker.poll_once())

    # -- subscriptions -----------------------------------------------------

    def subscribe(self, listener: PriceListener) -> Callable[[], None]:
        """Register a listener called with a snapshot after each update.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- updates -----------------------------------------------------------

    @property
    def paused(self) -> bool:
        return self._paused

    def set_paused(self, paused: bool) -> None:
        """Suppress or resume table updates without stopping the sources."""
        with self._lock:
            if self._paused != paused:
                logger.info("Price feed %s", "paused" if paused else "resumed")
            self._paused = paused

    def publish(
        self, updates: Mapping[str, object], source: str = "external"
    ) -> bool:
        """Merge a batch of updates into the table.

        Invalid prices (non-numeric, non-finite or non-positive) are dropped.

        Args:
            updates: Dictionary of symbol to price.
            source: Name of the producing source, for logging.

        Returns:
            True if the table changed.
        """
        with self._lock:
            if self._paused:
                logger.debug("Feed paused, dropped %d updates from %s", len(updates), source)
                return False
            changed, notify = self._apply(updates, source)
        if notify:
            self._notify()
        return changed

    def override(self, symbol: str, price: object) -> bool:
        """Force a price for a symbol, even while paused.

        Returns:
            True if the price was valid and applied.
        """
        with self._lock:
            applied, notify = self._apply({symbol: price}, "override")
        if notify:
            self._notify()
        if applied:
            logger.info("Price override %s = %s", symbol, price)
        return applied

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Coalesce all updates inside the block into one notification."""
        with self._lock:
            self._batch_depth += 1
        try:
            yield
        finally:
            with self._lock:
                self._batch_depth -= 1
                flush = self._batch_depth == 0 and self._dirty
                if flush:
                    self._dirty = False
            if flush:
                self._notify()

    def transform(self, fn: Callable[[str, Decimal], Decimal], source: str) -> bool:
        """Apply a function to every current price as one update.

        Used by administrative shocks (volatility bursts, market crashes).
        Applied even while paused.
        """
        with self._lock:
            updates = {symbol: fn(symbol, price) for symbol, price in self._prices.items()}
            changed, notify = self._apply(updates, source)
        if notify:
            self._notify()
        return changed

    def _apply(
        self, updates: Mapping[str, object], source: str
    ) -> tuple[bool, bool]:
        """Merge updates under the lock.

        Returns:
            Tuple of (table changed, caller must notify after releasing the lock).
        """
        now = self._clock()
        changed = False
        for symbol, raw in updates.items():
            price = to_decimal(raw)
            if not symbol or price is None or price <= ZERO:
                logger.warning("Dropped invalid price from %s: %s=%r", source, symbol, raw)
                continue
            self._prices[symbol] = price
            self._updated_at[symbol] = now
            changed = True

        if not changed:
            return False, False

        self._last_update_at = now
        if self._batch_depth > 0:
            self._dirty = True
            return True, False
        return True, True

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Price listener %r failed", listener)

    # -- queries -----------------------------------------------------------

    def snapshot(self) -> PriceTable:
        """Get an immutable copy of the current table."""
        with self._lock:
            return PriceTable(
                prices=dict(self._prices),
                updated_at=dict(self._updated_at),
                as_of=self._last_update_at,
            )

    def get_price(self, symbol: str) -> Decimal | None:
        with self._lock:
            return self._prices.get(symbol)

    def last_updated(self, symbol: str) -> datetime | None:
        """Time of the last accepted update for a symbol."""
        with self._lock:
            return self._updated_at.get(symbol)

    @property
    def last_update_at(self) -> datetime | None:
        """Time of the last accepted update of any symbol."""
        return self._last_update_at

    def age(self, symbol: str, now: datetime | None = None) -> timedelta | None:
        """How old the price for a symbol is, for staleness checks.

        Returns:
            Age of the price, or None if the symbol has never been quoted.
        """
        updated = self.last_updated(symbol)
        if updated is None:
            return None
        return (now or self._clock()) - updated
