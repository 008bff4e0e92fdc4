"""Trade Recorder: append-only execution history."""

from collections.abc import Iterable
from decimal import Decimal

from simtrade.models import ZERO, OrderSide, Trade


class TradeRecorder:
    """Time-ordered log of immutable trades, one per fill."""

    def __init__(self, trades: Iterable[Trade] | None = None) -> None:
        self._trades: list[Trade] = list(trades or [])

    def record(self, trade: Trade) -> Trade:
        """Append a trade to the log."""
        self._trades.append(trade)
        return trade

    def get_trades(self, symbol: str | None = None) -> list[Trade]:
        """Get trades oldest first, optionally for one symbol."""
        if symbol is None:
            return list(self._trades)
        return [t for t in self._trades if t.symbol == symbol]

    def recent(self, limit: int = 20) -> list[Trade]:
        """Get the most recent trades, newest first."""
        if limit <= 0:
            return []
        return list(reversed(self._trades[-limit:]))

    def realized_pnl(self) -> Decimal:
        """Total realized P&L over all sells."""
        return sum(
            (t.realized_pnl for t in self._trades if t.side == OrderSide.SELL),
            start=ZERO,
        )

    def clear(self) -> None:
        self._trades = []

    def __len__(self) -> int:
        return len(self._trades)
