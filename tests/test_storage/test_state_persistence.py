"""Tests for the state persistence adapter."""

import json
from datetime import datetime
from decimal import Decimal

import pytest

from simtrade.models import (
    AlertCondition,
    Holding,
    Order,
    OrderSide,
    OrderType,
    PriceAlert,
    SimulationState,
)
from simtrade.storage.kv import InMemoryKeyValueStore, StorageError
from simtrade.storage.persistence import DEFAULT_STATE_KEY, StatePersistence


class BrokenStore:
    """Store whose every operation fails."""

    def get(self, key: str) -> str | None:
        raise StorageError("disk on fire")

    def set(self, key: str, value: str) -> None:
        raise StorageError("disk on fire")


class OSErrorStore:
    """Store failing with an operating-system error."""

    def get(self, key: str) -> str | None:
        raise OSError("quota exceeded")

    def set(self, key: str, value: str) -> None:
        raise OSError("quota exceeded")


@pytest.fixture
def sample_state() -> SimulationState:
    """State with one holding, one pending order and one alert."""
    return SimulationState(
        cash_balance=Decimal("12345.67"),
        holdings={
            "BTC": Holding(symbol="BTC", quantity=Decimal("0.5"), average_cost=Decimal("60000")),
        },
        orders=[
            Order(
                symbol="BTC",
                side=OrderSide.SELL,
                order_type=OrderType.LIMIT,
                quantity=Decimal("0.5"),
                limit_price=Decimal("70000"),
                created_at=datetime(2024, 1, 1),
            )
        ],
        alerts=[
            PriceAlert(
                symbol="ETH",
                target_price=Decimal("3000"),
                condition=AlertCondition.BELOW,
            )
        ],
    )


class TestStatePersistence:
    """Tests for StatePersistence."""

    def test_fresh_store_gives_defaults(self) -> None:
        persistence = StatePersistence(InMemoryKeyValueStore(), default_balance=Decimal("500"))
        state = persistence.load()
        assert state.cash_balance == Decimal("500")
        assert state.orders == []

    def test_save_and_load(self, sample_state: SimulationState) -> None:
        """Test that a saved state is restored field for field."""
        persistence = StatePersistence(InMemoryKeyValueStore())

        assert persistence.save(sample_state)
        restored = persistence.load()

        assert restored == sample_state

    def test_corrupt_json_gives_defaults(self) -> None:
        store = InMemoryKeyValueStore({DEFAULT_STATE_KEY: "{not json"})
        assert StatePersistence(store).load().cash_balance == Decimal("100000")

    def test_non_object_gives_defaults(self) -> None:
        store = InMemoryKeyValueStore({DEFAULT_STATE_KEY: "[1, 2, 3]"})
        assert StatePersistence(store).load().cash_balance == Decimal("100000")

    def test_corrupt_field_falls_back_individually(
        self, sample_state: SimulationState
    ) -> None:
        """Test that one bad field does not discard the others."""
        data = json.loads(sample_state.model_dump_json())
        data["orders"] = [{"symbol": "BTC", "side": "sideways"}]
        data["trades"] = "garbage"
        store = InMemoryKeyValueStore({DEFAULT_STATE_KEY: json.dumps(data)})

        restored = StatePersistence(store).load()

        assert restored.cash_balance == Decimal("12345.67")
        assert restored.holdings == sample_state.holdings
        assert restored.alerts == sample_state.alerts
        assert restored.orders == []
        assert restored.trades == []

    def test_missing_fields_use_defaults(self) -> None:
        store = InMemoryKeyValueStore({DEFAULT_STATE_KEY: json.dumps({"cash_balance": "42"})})
        restored = StatePersistence(store).load()
        assert restored.cash_balance == Decimal("42")
        assert restored.holdings == {}

    @pytest.mark.parametrize("cash", ["-10", "NaN", "lots"])
    def test_invalid_cash_uses_default(self, cash: str) -> None:
        store = InMemoryKeyValueStore({DEFAULT_STATE_KEY: json.dumps({"cash_balance": cash})})
        assert StatePersistence(store).load().cash_balance == Decimal("100000")

    def test_unreadable_store_gives_defaults(self) -> None:
        assert StatePersistence(BrokenStore()).load().cash_balance == Decimal("100000")

    def test_failed_save_returns_false(self, sample_state: SimulationState) -> None:
        """Test that a write failure is reported, not raised."""
        assert not StatePersistence(BrokenStore()).save(sample_state)

    def test_unexpected_store_errors_contained(
        self, sample_state: SimulationState
    ) -> None:
        """Test that non-storage exceptions from a store are contained too."""
        persistence = StatePersistence(OSErrorStore())
        assert not persistence.save(sample_state)
        assert persistence.load().cash_balance == Decimal("100000")

    def test_reset_overwrites_saved_state(self, sample_state: SimulationState) -> None:
        store = InMemoryKeyValueStore()
        persistence = StatePersistence(store, key="custom")
        persistence.save(sample_state)

        fresh = persistence.reset()

        assert fresh.cash_balance == Decimal("100000")
        assert persistence.load() == fresh
        assert store.keys() == ["custom"]
