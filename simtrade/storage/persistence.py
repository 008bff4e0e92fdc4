"""Persistence Adapter for the SimTrade engine.

This module snapshots the durable simulation state (cash, holdings, orders,
trades and alerts) to a key-value store and restores it at startup. Live
prices are a separate, transient domain and are never written.
"""

import json
import logging
from decimal import Decimal
from typing import Any

from pydantic import TypeAdapter, ValidationError

from simtrade.models import Holding, Order, PriceAlert, SimulationState, Trade
from simtrade.storage.kv import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

DEFAULT_STATE_KEY = "simtrade_state"
DEFAULT_BALANCE = Decimal("100000")

_FIELD_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    "cash_balance": TypeAdapter(Decimal),
    "holdings": TypeAdapter(dict[str, Holding]),
    "orders": TypeAdapter(list[Order]),
    "trades": TypeAdapter(list[Trade]),
    "alerts": TypeAdapter(list[PriceAlert]),
}


class StatePersistence:
    """Best-effort durable snapshot of the simulation state.

    Restoring never fails: missing or corrupt fields fall back to their
    defaults individually. Writing never raises: a failed write is logged
    and the in-memory state stays authoritative for the session.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str = DEFAULT_STATE_KEY,
        default_balance: Decimal = DEFAULT_BALANCE,
    ) -> None:
        """Initialize the adapter.

        Args:
            store: Key-value storage backend.
            key: Key the snapshot is stored under.
            default_balance: Cash balance of a fresh account.
        """
        self.store = store
        self.key = key
        self.default_balance = default_balance

    def defaults(self) -> SimulationState:
        """Fresh state: default balance and empty collections."""
        return SimulationState(cash_balance=self.default_balance)

    def load(self) -> SimulationState:
        """Restore the last saved state.

        Returns:
            Restored state, with defaults substituted where needed.
        """
        try:
            raw = self.store.get(self.key)
        except Exception as e:
            logger.warning(
                "Could not read saved state, using defaults: %s",
                e,
                exc_info=not isinstance(e, StorageError),
                extra={"extra_fields": {"event": "load_failed", "key": self.key}},
            )
            return self.defaults()

        if raw is None:
            logger.info("No saved state under %r, starting fresh", self.key)
            return self.defaults()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Saved state is not valid JSON, using defaults: %s", e)
            return self.defaults()

        if not isinstance(data, dict):
            logger.warning("Saved state is not an object, using defaults")
            return self.defaults()

        fields = self._restore_fields(data)
        try:
            return SimulationState(**fields)
        except ValidationError as e:
            logger.warning("Saved state failed validation, using defaults: %s", e)
            return self.defaults()

    def _restore_fields(self, data: dict[str, Any]) -> dict[str, Any]:
        defaults = self.defaults()
        fields: dict[str, Any] = {}
        for name, adapter in _FIELD_ADAPTERS.items():
            if name not in data:
                fields[name] = getattr(defaults, name)
                continue
            try:
                value = adapter.validate_python(data[name])
            except ValidationError as e:
                logger.warning(
                    "Saved field %r is corrupt, using default: %s",
                    name,
                    e.errors()[0]["msg"] if e.errors() else e,
                )
                value = getattr(defaults, name)
            fields[name] = value

        if not fields["cash_balance"].is_finite() or fields["cash_balance"] < 0:
            logger.warning("Saved cash balance is invalid, using default")
            fields["cash_balance"] = defaults.cash_balance
        return fields

    def save(self, state: SimulationState) -> bool:
        """Write a snapshot of the state.

        Returns:
            True if the write succeeded.
        """
        durable = SimulationState(
            cash_balance=state.cash_balance,
            holdings=state.holdings,
            orders=state.orders,
            trades=state.trades,
            alerts=state.alerts,
        )
        try:
            self.store.set(self.key, durable.model_dump_json())
        except Exception as e:
            logger.warning(
                "Failed to persist state, continuing in memory: %s",
                e,
                exc_info=not isinstance(e, StorageError),
                extra={"extra_fields": {"event": "persist_failed", "key": self.key}},
            )
            return False
        return True

    def reset(self) -> SimulationState:
        """Overwrite the saved state with defaults.

        Returns:
            The default state that was written.
        """
        fresh = self.defaults()
        self.save(fresh)
        return fresh
