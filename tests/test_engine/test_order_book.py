"""Tests for the order book and pending-order evaluation."""

from decimal import Decimal

import pytest

from simtrade.engine.ledger import AccountLedger
from simtrade.engine.orders import OrderBook
from simtrade.engine.trades import TradeRecorder
from simtrade.models import OrderSide, OrderStatus, OrderType


class TestMarketOrders:
    """Tests for immediate market orders."""

    def test_market_buy_fills(
        self, book: OrderBook, ledger: AccountLedger, recorder: TradeRecorder
    ) -> None:
        """Test that a market buy settles at the given price."""
        result = book.place_market("BTC", OrderSide.BUY, "1", "50000")

        assert result.ok
        assert result.order.status == OrderStatus.FILLED
        assert result.order.order_type == OrderType.MARKET
        assert result.order.fill_price == Decimal("50000")
        assert result.order.limit_price is None
        assert result.trade.total_value == Decimal("50000")
        assert ledger.cash_balance == Decimal("50000")
        assert len(recorder) == 1

    def test_market_sell_records_realized_pnl(
        self, book: OrderBook, ledger: AccountLedger
    ) -> None:
        """Test that a market sell carries realized P&L against average cost."""
        book.place_market("ETH", OrderSide.BUY, 2, 3000)
        result = book.place_market("ETH", OrderSide.SELL, 1, 3500)

        assert result.ok
        assert result.trade.realized_pnl == Decimal("500")
        assert ledger.get_holding("ETH").quantity == Decimal("1")

    @pytest.mark.parametrize(
        ("symbol", "quantity", "price", "error"),
        [
            ("", "1", "100", "Invalid symbol"),
            ("   ", "1", "100", "Invalid symbol"),
            ("BTC", "0", "100", "Invalid quantity"),
            ("BTC", "-1", "100", "Invalid quantity"),
            ("BTC", "abc", "100", "Invalid quantity"),
            ("BTC", "1", "0", "Invalid price"),
            ("BTC", "1", "nan", "Invalid price"),
        ],
    )
    def test_invalid_input_rejected(
        self,
        book: OrderBook,
        ledger: AccountLedger,
        symbol: str,
        quantity: str,
        price: str,
        error: str,
    ) -> None:
        """Test validation failures leave the account untouched."""
        result = book.place_market(symbol, OrderSide.BUY, quantity, price)

        assert not result.ok
        assert result.error == error
        assert ledger.cash_balance == Decimal("100000")
        assert book.get_orders() == []

    def test_insufficient_balance(self, book: OrderBook) -> None:
        """Test that an unaffordable buy is rejected with a clear message."""
        result = book.place_market("BTC", OrderSide.BUY, "3", "50000")

        assert not result.ok
        assert result.error.startswith("Insufficient balance")
        assert book.get_orders() == []

    def test_insufficient_portfolio(self, book: OrderBook) -> None:
        """Test that selling an unheld symbol is rejected."""
        result = book.place_market("BTC", OrderSide.SELL, "1", "50000")

        assert not result.ok
        assert result.error.startswith("Insufficient portfolio")


class TestLimitOrders:
    """Tests for limit order placement and triggering."""

    def test_limit_order_is_pending(self, book: OrderBook, ledger: AccountLedger) -> None:
        """Test that placing a limit order reserves nothing."""
        result = book.place_limit("BTC", OrderSide.BUY, "1", "45000")

        assert result.ok
        assert result.order.status == OrderStatus.PENDING
        assert result.order.limit_price == Decimal("45000")
        assert ledger.cash_balance == Decimal("100000")

    def test_limit_buy_fills_at_limit_price(
        self, book: OrderBook, ledger: AccountLedger
    ) -> None:
        """Test a buy limit fills at the limit when the price drops through it."""
        order = book.place_limit("BTC", OrderSide.BUY, "1", "45000").order

        assert book.evaluate_pending({"BTC": Decimal("46000")}) == []
        trades = book.evaluate_pending({"BTC": Decimal("44000")})

        assert len(trades) == 1
        assert trades[0].price == Decimal("45000")
        filled = book.get_order(order.order_id)
        assert filled.status == OrderStatus.FILLED
        assert filled.fill_price == Decimal("45000")
        assert ledger.cash_balance == Decimal("55000")

    def test_limit_sell_fills_at_limit_price(
        self, book: OrderBook, ledger: AccountLedger
    ) -> None:
        """Test the worked example: sell limit 55000 fills on a 56000 tick."""
        book.place_market("BTC", OrderSide.BUY, "1", "50000")
        book.place_limit("BTC", OrderSide.SELL, "1", "55000")

        trades = book.evaluate_pending({"BTC": Decimal("56000")})

        assert [t.price for t in trades] == [Decimal("55000")]
        assert ledger.cash_balance == Decimal("105000")
        assert not ledger.get_holding("BTC").is_open

    def test_limit_triggers_at_exact_price(self, book: OrderBook) -> None:
        """Test that a tick equal to the limit triggers."""
        book.place_limit("ETH", OrderSide.BUY, "1", "3000")
        assert len(book.evaluate_pending({"ETH": Decimal("3000")})) == 1

    def test_missing_symbol_stays_pending(self, book: OrderBook) -> None:
        """Test that a tick without the order's symbol leaves it pending."""
        book.place_limit("ETH", OrderSide.BUY, "1", "3000")

        assert book.evaluate_pending({"BTC": Decimal("1")}) == []
        assert len(book.pending_orders()) == 1

    def test_invalid_limit_price(self, book: OrderBook) -> None:
        result = book.place_limit("ETH", OrderSide.BUY, "1", "-3")
        assert result.error == "Invalid limit price"

    def test_limit_funding_checked_at_submission(self, book: OrderBook) -> None:
        """Test that an unaffordable limit buy is rejected up front."""
        result = book.place_limit("BTC", OrderSide.BUY, "2", "60000")
        assert not result.ok
        assert result.error.startswith("Insufficient balance")

    def test_fill_deferred_when_ledger_cannot_settle(
        self, clock, recorder: TradeRecorder
    ) -> None:
        """Test that a triggered order the ledger cannot settle stays pending."""
        ledger = AccountLedger(Decimal("1000"))
        book = OrderBook(ledger, recorder, clock=clock)
        first = book.place_limit("SOL", OrderSide.BUY, "1", "600").order
        second = book.place_limit("SOL", OrderSide.BUY, "1", "600").order

        trades = book.evaluate_pending({"SOL": Decimal("500")})

        assert [t.order_id for t in trades] == [first.order_id]
        assert book.get_order(second.order_id).status == OrderStatus.PENDING
        assert ledger.cash_balance == Decimal("400")

        ledger.credit(Decimal("200"))
        trades = book.evaluate_pending({"SOL": Decimal("500")})
        assert [t.order_id for t in trades] == [second.order_id]
        assert ledger.cash_balance == Decimal("0")


class TestStopOrders:
    """Tests for stop order placement and triggering."""

    def test_stop_sell_fills_at_tick_price(
        self, book: OrderBook, ledger: AccountLedger
    ) -> None:
        """Test a sell stop triggers on a drop and fills at the tick price."""
        book.place_market("BTC", OrderSide.BUY, "1", "50000")
        book.place_stop("BTC", OrderSide.SELL, "1", "48000")

        assert book.evaluate_pending({"BTC": Decimal("49000")}) == []
        trades = book.evaluate_pending({"BTC": Decimal("47500")})

        assert [t.price for t in trades] == [Decimal("47500")]
        assert ledger.cash_balance == Decimal("97500")

    def test_stop_with_limit_fills_at_limit(self, book: OrderBook) -> None:
        """Test a stop with a limit price executes at the limit."""
        book.place_market("BTC", OrderSide.BUY, "1", "50000")
        book.place_stop("BTC", OrderSide.SELL, "1", "48000", "47900")

        trades = book.evaluate_pending({"BTC": Decimal("47000")})
        assert [t.price for t in trades] == [Decimal("47900")]

    def test_stop_buy_triggers_on_rise(self, book: OrderBook) -> None:
        """Test a buy stop triggers when the price rises to the stop."""
        book.place_stop("ETH", OrderSide.BUY, "1", "3500")

        assert book.evaluate_pending({"ETH": Decimal("3400")}) == []
        trades = book.evaluate_pending({"ETH": Decimal("3500")})
        assert [t.price for t in trades] == [Decimal("3500")]

    def test_stop_funding_uses_stop_price(self, book: OrderBook) -> None:
        """Test that a stop buy without limit is funded at the stop price."""
        result = book.place_stop("BTC", OrderSide.BUY, "2", "50001")
        assert result.error.startswith("Insufficient balance")

    def test_invalid_stop_price(self, book: OrderBook) -> None:
        result = book.place_stop("BTC", OrderSide.SELL, "1", "0")
        assert result.error == "Invalid stop price"

    def test_invalid_stop_limit_price(self, book: OrderBook) -> None:
        result = book.place_stop("BTC", OrderSide.BUY, "1", "100", "zero")
        assert result.error == "Invalid limit price"


class TestCancel:
    """Tests for order cancellation."""

    def test_cancel_pending(self, book: OrderBook) -> None:
        """Test that a cancelled order never fills."""
        order = book.place_limit("BTC", OrderSide.BUY, "1", "45000").order

        result = book.cancel(order.order_id)

        assert result.ok
        assert result.order.status == OrderStatus.CANCELLED
        assert book.evaluate_pending({"BTC": Decimal("1")}) == []

    def test_cancel_filled_is_noop(self, book: OrderBook) -> None:
        """Test that cancelling a filled order succeeds without changing it."""
        order = book.place_market("BTC", OrderSide.BUY, "1", "50000").order

        result = book.cancel(order.order_id)

        assert result.ok
        assert result.order.status == OrderStatus.FILLED

    def test_cancel_unknown(self, book: OrderBook) -> None:
        result = book.cancel("missing")
        assert not result.ok
        assert result.error == "Order not found"


class TestEvaluationOrder:
    """Tests for evaluation order and timestamps."""

    def test_oldest_order_fills_first(self, book: OrderBook) -> None:
        """Test pending orders are settled in submission order."""
        first = book.place_limit("ETH", OrderSide.BUY, "1", "3000").order
        second = book.place_limit("ETH", OrderSide.BUY, "2", "3100").order

        trades = book.evaluate_pending({"ETH": Decimal("2900")})

        assert [t.order_id for t in trades] == [first.order_id, second.order_id]

    def test_timestamps_increase(self, book: OrderBook) -> None:
        """Test that creation and fill times follow the clock."""
        order = book.place_limit("ETH", OrderSide.BUY, "1", "3000").order
        book.evaluate_pending({"ETH": Decimal("2900")})

        filled = book.get_order(order.order_id)
        assert filled.filled_at > filled.created_at
