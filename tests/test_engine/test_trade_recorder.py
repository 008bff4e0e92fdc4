"""Tests for the trade recorder and the monotonic clock."""

from datetime import datetime
from decimal import Decimal

from simtrade.engine.clock import MonotonicClock
from simtrade.engine.trades import TradeRecorder
from simtrade.models import OrderSide, Trade


def _trade(symbol: str, side: OrderSide, pnl: str = "0") -> Trade:
    return Trade(
        order_id=f"order-{symbol}",
        symbol=symbol,
        side=side,
        quantity=Decimal("1"),
        price=Decimal("10"),
        total_value=Decimal("10"),
        realized_pnl=Decimal(pnl),
    )


class TestTradeRecorder:
    """Tests for TradeRecorder."""

    def test_recent_newest_first(self) -> None:
        """Test that recent() returns the latest trades in reverse order."""
        recorder = TradeRecorder()
        for symbol in ("BTC", "ETH", "SOL"):
            recorder.record(_trade(symbol, OrderSide.BUY))

        assert [t.symbol for t in recorder.recent(2)] == ["SOL", "ETH"]
        assert recorder.recent(0) == []
        assert [t.symbol for t in recorder.get_trades()] == ["BTC", "ETH", "SOL"]

    def test_filter_by_symbol(self) -> None:
        recorder = TradeRecorder(
            [_trade("BTC", OrderSide.BUY), _trade("ETH", OrderSide.BUY)]
        )
        assert [t.symbol for t in recorder.get_trades("ETH")] == ["ETH"]

    def test_realized_pnl_sums_sells(self) -> None:
        """Test that realized P&L totals sell trades only."""
        recorder = TradeRecorder(
            [
                _trade("BTC", OrderSide.SELL, "150"),
                _trade("ETH", OrderSide.SELL, "-50"),
                _trade("SOL", OrderSide.BUY),
            ]
        )
        assert recorder.realized_pnl() == Decimal("100")

    def test_clear(self) -> None:
        recorder = TradeRecorder([_trade("BTC", OrderSide.BUY)])
        recorder.clear()
        assert len(recorder) == 0


class TestMonotonicClock:
    """Tests for MonotonicClock."""

    def test_frozen_source_still_increases(self) -> None:
        """Test that identical readings are bumped forward."""
        frozen = datetime(2024, 1, 1)
        clock = MonotonicClock(lambda: frozen)

        readings = [clock() for _ in range(5)]

        assert readings[0] == frozen
        assert all(a < b for a, b in zip(readings, readings[1:]))

    def test_backwards_source(self) -> None:
        """Test that a clock stepping back never goes backwards."""
        times = iter([datetime(2024, 1, 2), datetime(2024, 1, 1)])
        clock = MonotonicClock(lambda: next(times))

        first = clock.now()
        assert clock.now() > first
