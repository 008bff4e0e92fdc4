"""Trading Engine: the simulation service object.

This module wires the account ledger, order book, trade recorder, alert
monitor, price feed and persistence adapter into one explicit service that
the presentation layer (or the CLI) holds a handle to.

Example usage:
    from simtrade.engine import TradingEngine
    from simtrade.storage import InMemoryKeyValueStore

    engine = TradingEngine.create(InMemoryKeyValueStore())
    result = engine.place_market_order("BTC", "buy", 1, 50000)
    engine.place_limit_order("BTC", "sell", 1, 55000)
    engine.override_price("BTC", 56000)   # limit sell fills at 55000
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal

import numpy as np

from simtrade.engine.alerts import PriceAlertMonitor
from simtrade.engine.clock import MonotonicClock
from simtrade.engine.ledger import AccountLedger
from simtrade.engine.orders import OrderBook
from simtrade.engine.trades import TradeRecorder
from simtrade.feeds.price_feed import PriceFeed
from simtrade.feeds.synthetic import market_crash, volatility_shock
from simtrade.models import (
    AlertCondition,
    CommandResult,
    EngineState,
    OrderSide,
    PortfolioSummary,
    PriceTable,
    SimulationState,
    to_decimal,
)
from simtrade.storage.kv import KeyValueStore
from simtrade.storage.persistence import DEFAULT_BALANCE, StatePersistence

logger = logging.getLogger(__name__)

StateListener = Callable[[EngineState], None]


def _parse_side(side: OrderSide | str) -> OrderSide | None:
    try:
        return OrderSide(side.lower() if isinstance(side, str) else side)
    except ValueError:
        return None


def _parse_condition(condition: AlertCondition | str) -> AlertCondition | None:
    try:
        return AlertCondition(
            condition.lower() if isinstance(condition, str) else condition
        )
    except ValueError:
        return None


class TradingEngine:
    """Single-user paper-trading simulation.

    All commands and tick evaluations run under one re-entrant lock, so each
    state transition completes before the next starts no matter which thread
    (user command, feed worker, evaluation timer) triggered it. Commands
    never raise for engine-level failures: they return a
    :class:`CommandResult` with ``ok=False`` and a display message, and
    leave all state unchanged.
    """

    def __init__(
        self,
        persistence: StatePersistence,
        feed: PriceFeed | None = None,
        clock: Callable[[], datetime] | None = None,
        evaluation_interval_seconds: float = 0.5,
        rng: np.random.Generator | None = None,
    ) -> None:
        """Initialize the engine and restore saved state.

        Args:
            persistence: Persistence adapter for the durable state.
            feed: Price feed to subscribe to (a fresh empty one if None).
            clock: Wall-clock source (monotonic wrapper over datetime.now if None).
            evaluation_interval_seconds: Period of the pending-order timer.
            rng: Random generator for administrative market shocks.
        """
        self.persistence = persistence
        self.clock = clock or MonotonicClock()
        self.feed = feed or PriceFeed(clock=self.clock)
        self.evaluation_interval_seconds = evaluation_interval_seconds
        self._rng = rng or np.random.default_rng()

        self._lock = threading.RLock()
        self._listeners: list[StateListener] = []
        self._timer_stop = threading.Event()
        self._timer: threading.Thread | None = None

        self._restore(persistence.load())
        self._unsubscribe_feed = self.feed.subscribe(self._on_price_update)

    @classmethod
    def create(
        cls,
        store: KeyValueStore,
        default_balance: Decimal = DEFAULT_BALANCE,
        state_key: str = "simtrade_state",
        **kwargs: object,
    ) -> "TradingEngine":
        """Create an engine persisting to a key-value store.

        Args:
            store: Storage backend.
            default_balance: Cash balance of a fresh account.
            state_key: Key the state is saved under.
            **kwargs: Passed to the constructor.

        Returns:
            Engine with its saved state restored.
        """
        persistence = StatePersistence(
            store, key=state_key, default_balance=default_balance
        )
        return cls(persistence, **kwargs)  # type: ignore[arg-type]

    def _restore(self, state: SimulationState) -> None:
        self.ledger = AccountLedger(state.cash_balance, state.holdings)
        self.recorder = TradeRecorder(state.trades)
        self.order_book = OrderBook(
            self.ledger, self.recorder, clock=self.clock, orders=state.orders
        )
        self.alerts = PriceAlertMonitor(clock=self.clock, alerts=state.alerts)
        logger.info(
            "Engine state loaded: cash=%s, holdings=%d, pending orders=%d, alerts=%d",
            state.cash_balance,
            len(self.ledger.get_holdings()),
            len(self.order_book.pending_orders()),
            len(self.alerts.active_alerts()),
        )

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """Start the price sources and the pending-order evaluation timer."""
        self.feed.start()
        if self._timer is not None and self._timer.is_alive():
            return
        self._timer_stop.clear()
        self._timer = threading.Thread(
            target=self._run_timer, name="order-evaluator", daemon=True
        )
        self._timer.start()

    def stop(self) -> None:
        """Stop the timer and the price sources, then save state."""
        self._timer_stop.set()
        if self._timer is not None:
            self._timer.join(timeout=5.0)
            self._timer = None
        self.feed.stop()
        with self._lock:
            self._persist()

    def close(self) -> None:
        """Stop and detach from the feed."""
        self.stop()
        self._unsubscribe_feed()

    def _run_timer(self) -> None:
        while not self._timer_stop.wait(self.evaluation_interval_seconds):
            try:
                self.evaluate_now()
            except Exception:
                logger.exception("Pending-order evaluation failed")

    # -- state -------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener called with the new state after every change.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _simulation_state(self) -> SimulationState:
        return SimulationState(
            cash_balance=self.ledger.cash_balance,
            holdings=self.ledger.get_holdings(),
            orders=self.order_book.get_orders(),
            trades=self.recorder.get_trades(),
            alerts=self.alerts.get_alerts(),
        )

    def get_state(self) -> EngineState:
        """Get a consistent read-only view of the whole engine."""
        with self._lock:
            durable = self._simulation_state()
            return EngineState(
                **dict(durable),
                prices=self.feed.snapshot(),
                price_feed_paused=self.feed.paused,
            )

    @property
    def cash_balance(self) -> Decimal:
        return self.ledger.cash_balance

    @property
    def prices(self) -> PriceTable:
        return self.feed.snapshot()

    def portfolio_summary(self) -> PortfolioSummary:
        """Mark the account to the latest prices."""
        with self._lock:
            return self.ledger.valuate(self.feed.snapshot().prices)

    def _commit(self) -> None:
        """Persist and notify after a state change. Caller holds the lock."""
        self._persist()
        self._publish_state()

    def _publish_state(self) -> None:
        if not self._listeners:
            return
        state = self.get_state()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener %r failed", listener)

    def _persist(self) -> None:
        self.persistence.save(self._simulation_state())

    # -- order commands ----------------------------------------------------

    def place_market_order(
        self,
        symbol: str,
        side: OrderSide | str,
        quantity: Decimal | float | int | str,
        price: Decimal | float | int | str,
    ) -> CommandResult:
        """Buy or sell immediately at the given current price."""
        parsed = _parse_side(side)
        if parsed is None:
            return CommandResult.failure("Invalid side")
        with self._lock:
            result = self.order_book.place_market(symbol, parsed, quantity, price)
            if result.ok:
                self._commit()
            return result

    def place_limit_order(
        self,
        symbol: str,
        side: OrderSide | str,
        quantity: Decimal | float | int | str,
        limit_price: Decimal | float | int | str,
    ) -> CommandResult:
        """Queue an order that fills at limit_price once the market reaches it."""
        parsed = _parse_side(side)
        if parsed is None:
            return CommandResult.failure("Invalid side")
        with self._lock:
            result = self.order_book.place_limit(symbol, parsed, quantity, limit_price)
            if result.ok:
                self._commit()
            return result

    def place_stop_order(
        self,
        symbol: str,
        side: OrderSide | str,
        quantity: Decimal | float | int | str,
        stop_price: Decimal | float | int | str,
        limit_price: Decimal | float | int | str | None = None,
    ) -> CommandResult:
        """Queue an order that triggers when the market crosses stop_price."""
        parsed = _parse_side(side)
        if parsed is None:
            return CommandResult.failure("Invalid side")
        with self._lock:
            result = self.order_book.place_stop(
                symbol, parsed, quantity, stop_price, limit_price
            )
            if result.ok:
                self._commit()
            return result

    def cancel_order(self, order_id: str) -> CommandResult:
        """Cancel a pending order; a no-op success for terminal orders."""
        with self._lock:
            before = self.order_book.get_order(order_id)
            result = self.order_book.cancel(order_id)
            if result.ok and before is not None and before.is_pending:
                self._commit()
            return result

    # -- alert commands ----------------------------------------------------

    def create_alert(
        self,
        symbol: str,
        target_price: Decimal | float | int | str,
        condition: AlertCondition | str,
    ) -> CommandResult:
        """Watch a symbol for a price at or beyond a target."""
        target = to_decimal(target_price)
        parsed = _parse_condition(condition)
        if not symbol or not symbol.strip() or target is None or target <= 0:
            return CommandResult.failure("Invalid alert parameters")
        if parsed is None:
            return CommandResult.failure("Invalid alert condition")
        with self._lock:
            alert = self.alerts.create(symbol, target, parsed)
            self._commit()
            return CommandResult(ok=True, alert=alert)

    def delete_alert(self, alert_id: str) -> CommandResult:
        """Remove an alert. Deleting an unknown alert is a no-op."""
        with self._lock:
            if self.alerts.delete(alert_id):
                self._commit()
            return CommandResult(ok=True)

    # -- administrative commands -------------------------------------------

    def reset_all(self) -> CommandResult:
        """Return to a fresh account and clear every order, trade and alert."""
        with self._lock:
            fresh = self.persistence.reset()
            self.ledger.reset(fresh.cash_balance)
            self.order_book.clear()
            self.recorder.clear()
            self.alerts.clear()
            logger.info("Simulation reset to %s", fresh.cash_balance)
            self._commit()
            return CommandResult(ok=True)

    def modify_balance(self, delta: Decimal | float | int | str) -> CommandResult:
        """Add (or with a negative delta remove) cash; floors at zero."""
        amount = to_decimal(delta)
        if amount is None:
            return CommandResult.failure("Invalid amount")
        with self._lock:
            balance = self.ledger.modify_balance(amount)
            logger.info("Balance adjusted by %s to %s", amount, balance)
            self._commit()
            return CommandResult(ok=True)

    def override_price(
        self, symbol: str, price: Decimal | float | int | str
    ) -> CommandResult:
        """Force a price for a symbol and evaluate against it."""
        value = to_decimal(price)
        if not symbol or value is None or value <= 0:
            return CommandResult.failure("Invalid price")
        with self._lock:
            self.feed.override(symbol, value)
            return CommandResult(ok=True)

    def set_price_feed_paused(self, paused: bool) -> CommandResult:
        """Suspend or resume price updates without dropping the sources."""
        with self._lock:
            self.feed.set_paused(paused)
            self._publish_state()
            return CommandResult(ok=True)

    def apply_volatility(self, multiplier: float) -> CommandResult:
        """Move every known price randomly by up to multiplier x 5%."""
        if not np.isfinite(multiplier) or multiplier <= 0:
            return CommandResult.failure("Invalid volatility multiplier")
        with self._lock:
            self.feed.transform(
                volatility_shock(multiplier, self._rng), source="volatility"
            )
            return CommandResult(ok=True)

    def apply_market_crash(self) -> CommandResult:
        """Drop every known price by 10-30%."""
        with self._lock:
            self.feed.transform(market_crash(self._rng), source="crash")
            return CommandResult(ok=True)

    # -- tick evaluation ---------------------------------------------------

    def evaluate_now(self) -> int:
        """Evaluate pending orders and alerts against the current table.

        Returns:
            Number of orders filled plus alerts triggered.
        """
        return self._evaluate(self.feed.snapshot())

    def _on_price_update(self, table: PriceTable) -> None:
        with self._lock:
            if not self._evaluate(table):
                self._publish_state()

    def _evaluate(self, table: PriceTable) -> int:
        """Run one tick. Orders and alerts see the same snapshot."""
        with self._lock:
            trades = self.order_book.evaluate_pending(table.prices)
            triggered = self.alerts.evaluate(table.prices)
            changes = len(trades) + len(triggered)
            if changes:
                self._commit()
            return changes
