"""Price Alert Monitor for the SimTrade engine.

Alerts are one-shot: an alert that fires is deactivated and kept for history,
and never re-arms. A new alert must be created to watch the level again.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from decimal import Decimal

from simtrade.models import AlertCondition, PriceAlert

logger = logging.getLogger(__name__)


class PriceAlertMonitor:
    """Watch-list of target-price conditions evaluated on every tick."""

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        alerts: Iterable[PriceAlert] | None = None,
    ) -> None:
        """Initialize the monitor.

        Args:
            clock: Time source for creation and trigger timestamps.
            alerts: Optional restored alerts.
        """
        self._clock = clock
        self._alerts: list[PriceAlert] = list(alerts or [])

    def create(
        self, symbol: str, target_price: Decimal, condition: AlertCondition
    ) -> PriceAlert:
        """Register a new active alert.

        Args:
            symbol: Instrument symbol.
            target_price: Positive target price.
            condition: Fire above or below the target.

        Returns:
            The created alert.
        """
        alert = PriceAlert(
            symbol=symbol,
            target_price=target_price,
            condition=condition,
            created_at=self._clock(),
        )
        self._alerts.append(alert)
        logger.info(
            "Created alert %s: %s %s %s",
            alert.alert_id,
            symbol,
            condition.value,
            target_price,
        )
        return alert

    def delete(self, alert_id: str) -> bool:
        """Remove an alert.

        Returns:
            True if an alert was removed.
        """
        before = len(self._alerts)
        self._alerts = [a for a in self._alerts if a.alert_id != alert_id]
        return len(self._alerts) < before

    def evaluate(self, prices: Mapping[str, Decimal]) -> list[PriceAlert]:
        """Check every active alert against a price table.

        Alerts on symbols missing from the table are skipped.

        Args:
            prices: Dictionary of symbol to price for this tick.

        Returns:
            Alerts triggered by this tick.
        """
        triggered: list[PriceAlert] = []
        for index, alert in enumerate(self._alerts):
            if not alert.is_active:
                continue
            price = prices.get(alert.symbol)
            if price is None or not alert.is_met_by(price):
                continue

            fired = alert.model_copy(
                update={"is_active": False, "triggered_at": self._clock()}
            )
            self._alerts[index] = fired
            triggered.append(fired)
            logger.info(
                "Alert triggered: %s %s %s (price %s)",
                fired.symbol,
                fired.condition.value,
                fired.target_price,
                price,
                extra={
                    "extra_fields": {
                        "event": "alert_triggered",
                        "alert_id": fired.alert_id,
                        "symbol": fired.symbol,
                    }
                },
            )
        return triggered

    def get_alerts(self) -> list[PriceAlert]:
        """Get all alerts, oldest first."""
        return list(self._alerts)

    def active_alerts(self) -> list[PriceAlert]:
        return [a for a in self._alerts if a.is_active]

    def clear(self) -> None:
        self._alerts = []
