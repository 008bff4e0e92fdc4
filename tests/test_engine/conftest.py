"""Pytest fixtures for engine tests."""

from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from simtrade.engine.alerts import PriceAlertMonitor
from simtrade.engine.clock import MonotonicClock
from simtrade.engine.engine import TradingEngine
from simtrade.engine.ledger import AccountLedger
from simtrade.engine.orders import OrderBook
from simtrade.engine.trades import TradeRecorder
from simtrade.storage.kv import InMemoryKeyValueStore


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Deterministic clock advancing one second per reading."""
    start = datetime(2024, 1, 1, 12, 0, 0)
    ticks = iter(range(1_000_000))

    def now() -> datetime:
        return start + timedelta(seconds=next(ticks))

    return now


@pytest.fixture
def ledger() -> AccountLedger:
    """Ledger with 100000 cash and no holdings."""
    return AccountLedger(Decimal("100000"))


@pytest.fixture
def recorder() -> TradeRecorder:
    return TradeRecorder()


@pytest.fixture
def book(
    ledger: AccountLedger,
    recorder: TradeRecorder,
    clock: Callable[[], datetime],
) -> OrderBook:
    """Order book settling against the ledger fixture."""
    return OrderBook(ledger, recorder, clock=clock)


@pytest.fixture
def monitor(clock: Callable[[], datetime]) -> PriceAlertMonitor:
    return PriceAlertMonitor(clock=clock)


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def engine(store: InMemoryKeyValueStore) -> TradingEngine:
    """Engine with a fresh 100000 account persisting to memory."""
    return TradingEngine.create(store, clock=MonotonicClock())
