"""Order Book / Lifecycle Manager for the SimTrade engine.

This module accepts market, limit and stop orders, validates them against
the account ledger, tracks pending orders, and fills them when a price tick
satisfies their trigger condition.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from decimal import Decimal

from simtrade.engine.ledger import AccountLedger, LedgerError
from simtrade.engine.trades import TradeRecorder
from simtrade.models import (
    ZERO,
    CommandResult,
    Order,
    OrderSide,
    OrderStatus,
    OrderType,
    Trade,
    to_decimal,
)

logger = logging.getLogger(__name__)


class OrderBook:
    """Simulated order book with whole-quantity fills.

    Pending orders are kept in submission order and evaluated oldest first,
    so when several orders qualify on the same tick the earliest one is
    settled first.

    Affordability of limit and stop orders is checked at submission only.
    Funds are not reserved: two pending orders may together exceed the cash
    balance, in which case whichever qualifies first fills and the other
    stays pending until the ledger can settle it.
    """

    def __init__(
        self,
        ledger: AccountLedger,
        recorder: TradeRecorder,
        clock: Callable[[], datetime] = datetime.now,
        orders: Iterable[Order] | None = None,
    ) -> None:
        """Initialize the order book.

        Args:
            ledger: Account ledger settled by fills.
            recorder: Trade recorder receiving one trade per fill.
            clock: Time source for order and trade timestamps.
            orders: Optional restored orders (oldest first).
        """
        self.ledger = ledger
        self.recorder = recorder
        self._clock = clock
        self._orders: list[Order] = list(orders or [])

    def get_orders(self, status: OrderStatus | None = None) -> list[Order]:
        """Get orders oldest first, optionally filtered by status."""
        if status is None:
            return list(self._orders)
        return [o for o in self._orders if o.status == status]

    def get_order(self, order_id: str) -> Order | None:
        for order in self._orders:
            if order.order_id == order_id:
                return order
        return None

    def pending_orders(self) -> list[Order]:
        return self.get_orders(OrderStatus.PENDING)

    def clear(self) -> None:
        self._orders = []

    def place_market(
        self,
        symbol: str,
        side: OrderSide,
        quantity: Decimal | float | int | str,
        current_price: Decimal | float | int | str,
    ) -> CommandResult:
        """Place and immediately settle a market order.

        Args:
            symbol: Instrument symbol.
            side: Buy or sell.
            quantity: Units to trade.
            current_price: Price the order executes at.

        Returns:
            CommandResult carrying the filled order and its trade.
        """
        qty = to_decimal(quantity)
        price = to_decimal(current_price)

        error = self._validate_common(symbol, qty)
        if error is None and (price is None or price <= ZERO):
            error = "Invalid price"
        if error is None:
            error = self._check_funding(symbol, side, qty, price)
        if error is not None:
            return self._reject(symbol, side, OrderType.MARKET, error)

        now = self._clock()
        order = Order(
            symbol=symbol,
            side=side,
            order_type=OrderType.MARKET,
            quantity=qty,
            created_at=now,
        )
        try:
            filled, trade = self._fill(order, price)
        except LedgerError as e:
            return self._reject(symbol, side, OrderType.MARKET, str(e))

        self._orders.append(filled)
        return CommandResult(ok=True, order=filled, trade=trade)

    def place_limit(
        self,
        symbol: str,
        side: OrderSide,
        quantity: Decimal | float | int | str,
        limit_price: Decimal | float | int | str,
    ) -> CommandResult:
        """Place a pending limit order.

        Funding is pre-checked at submission using the limit price; nothing is
        settled until a tick reaches the limit.

        Args:
            symbol: Instrument symbol.
            side: Buy or sell.
            quantity: Units to trade.
            limit_price: Worst acceptable execution price.

        Returns:
            CommandResult carrying the pending order.
        """
        qty = to_decimal(quantity)
        limit = to_decimal(limit_price)

        error = self._validate_common(symbol, qty)
        if error is None and (limit is None or limit <= ZERO):
            error = "Invalid limit price"
        if error is None:
            error = self._check_funding(symbol, side, qty, limit)
        if error is not None:
            return self._reject(symbol, side, OrderType.LIMIT, error)

        order = Order(
            symbol=symbol,
            side=side,
            order_type=OrderType.LIMIT,
            quantity=qty,
            limit_price=limit,
            created_at=self._clock(),
        )
        self._orders.append(order)
        logger.info(
            "Placed limit %s %s %s @ %s", side.value, qty, symbol, limit
        )
        return CommandResult(ok=True, order=order)

    def place_stop(
        self,
        symbol: str,
        side: OrderSide,
        quantity: Decimal | float | int | str,
        stop_price: Decimal | float | int | str,
        limit_price: Decimal | float | int | str | None = None,
    ) -> CommandResult:
        """Place a pending stop order.

        Funding is pre-checked using the limit price when given, otherwise the
        stop price as the best available estimate of the execution price.

        Args:
            symbol: Instrument symbol.
            side: Buy or sell.
            quantity: Units to trade.
            stop_price: Trigger price.
            limit_price: Optional execution price once triggered.

        Returns:
            CommandResult carrying the pending order.
        """
        qty = to_decimal(quantity)
        stop = to_decimal(stop_price)
        limit = to_decimal(limit_price) if limit_price is not None else None

        error = self._validate_common(symbol, qty)
        if error is None and (stop is None or stop <= ZERO):
            error = "Invalid stop price"
        if error is None and limit_price is not None and (limit is None or limit <= ZERO):
            error = "Invalid limit price"
        if error is None:
            estimate = limit if limit is not None else stop
            error = self._check_funding(symbol, side, qty, estimate)
        if error is not None:
            return self._reject(symbol, side, OrderType.STOP, error)

        order = Order(
            symbol=symbol,
            side=side,
            order_type=OrderType.STOP,
            quantity=qty,
            stop_price=stop,
            limit_price=limit,
            created_at=self._clock(),
        )
        self._orders.append(order)
        logger.info(
            "Placed stop %s %s %s stop=%s limit=%s",
            side.value,
            qty,
            symbol,
            stop,
            limit,
        )
        return CommandResult(ok=True, order=order)

    def cancel(self, order_id: str) -> CommandResult:
        """Cancel a pending order.

        Cancelling an order that is already filled or cancelled is a no-op
        and still succeeds.

        Args:
            order_id: Order to cancel.

        Returns:
            CommandResult carrying the order in its current state.
        """
        for index, order in enumerate(self._orders):
            if order.order_id != order_id:
                continue
            if not order.is_pending:
                return CommandResult(ok=True, order=order)
            cancelled = order.model_copy(update={"status": OrderStatus.CANCELLED})
            self._orders[index] = cancelled
            logger.info("Cancelled order %s", order_id)
            return CommandResult(ok=True, order=cancelled)

        return CommandResult.failure("Order not found")

    def evaluate_pending(self, prices: Mapping[str, Decimal]) -> list[Trade]:
        """Fill every pending order whose trigger the tick satisfies.

        Limit orders fill at their limit price. Stop orders fill at their
        limit price if set, otherwise at the triggering tick price. Orders
        whose symbol has no price this tick stay pending.

        Args:
            prices: Dictionary of symbol to price for this tick.

        Returns:
            Trades produced by this tick, in fill order.
        """
        trades: list[Trade] = []
        for index, order in enumerate(self._orders):
            if not order.is_pending:
                continue
            tick_price = prices.get(order.symbol)
            if tick_price is None or tick_price <= ZERO:
                continue

            execution_price = self._execution_price(order, tick_price)
            if execution_price is None:
                continue

            try:
                filled, trade = self._fill(order, execution_price)
            except LedgerError as e:
                logger.warning(
                    "Order %s triggered but could not settle, left pending: %s",
                    order.order_id,
                    e,
                    extra={
                        "extra_fields": {
                            "event": "fill_deferred",
                            "order_id": order.order_id,
                            "symbol": order.symbol,
                        }
                    },
                )
                continue

            self._orders[index] = filled
            trades.append(trade)
        return trades

    @staticmethod
    def _execution_price(order: Order, tick_price: Decimal) -> Decimal | None:
        """Determine the fill price for a pending order, or None if not triggered."""
        if order.order_type == OrderType.LIMIT and order.limit_price is not None:
            if order.side == OrderSide.BUY and tick_price <= order.limit_price:
                return order.limit_price
            if order.side == OrderSide.SELL and tick_price >= order.limit_price:
                return order.limit_price
            return None

        if order.order_type == OrderType.STOP and order.stop_price is not None:
            if order.side == OrderSide.BUY:
                triggered = tick_price >= order.stop_price
            else:
                triggered = tick_price <= order.stop_price
            if not triggered:
                return None
            return order.limit_price if order.limit_price is not None else tick_price

        return None

    def _fill(self, order: Order, price: Decimal) -> tuple[Order, Trade]:
        """Settle an order against the ledger and record its trade.

        Raises:
            LedgerError: If the ledger rejects the settlement (nothing changes).
        """
        realized_pnl = ZERO
        if order.side == OrderSide.BUY:
            self.ledger.apply_buy(order.symbol, order.quantity, price)
        else:
            _, realized_pnl = self.ledger.apply_sell(
                order.symbol, order.quantity, price
            )

        now = self._clock()
        filled = order.model_copy(
            update={
                "status": OrderStatus.FILLED,
                "filled_at": now,
                "fill_price": price,
            }
        )
        trade = self.recorder.record(
            Trade(
                order_id=order.order_id,
                symbol=order.symbol,
                side=order.side,
                quantity=order.quantity,
                price=price,
                total_value=price * order.quantity,
                realized_pnl=realized_pnl,
                created_at=now,
            )
        )
        logger.info(
            "Filled %s %s %s %s @ %s",
            order.order_type.value,
            order.side.value,
            order.quantity,
            order.symbol,
            price,
            extra={
                "extra_fields": {
                    "event": "order_filled",
                    "order_id": order.order_id,
                    "symbol": order.symbol,
                    "price": str(price),
                }
            },
        )
        return filled, trade

    @staticmethod
    def _validate_common(symbol: str, quantity: Decimal | None) -> str | None:
        if not symbol or not symbol.strip():
            return "Invalid symbol"
        if quantity is None or quantity <= ZERO:
            return "Invalid quantity"
        return None

    def _check_funding(
        self,
        symbol: str,
        side: OrderSide,
        quantity: Decimal,
        price: Decimal,
    ) -> str | None:
        """Check the ledger can cover an order at an assumed price.

        Returns:
            Error message if the order cannot be covered, None otherwise.
        """
        if side == OrderSide.BUY:
            if not self.ledger.can_afford(quantity, price):
                return (
                    f"Insufficient balance: need {quantity * price:.2f}, "
                    f"have {self.ledger.cash_balance:.2f}"
                )
        else:
            if not self.ledger.can_sell(symbol, quantity):
                held = self.ledger.get_holding(symbol).quantity
                return f"Insufficient portfolio: need {quantity} {symbol}, have {held}"
        return None

    @staticmethod
    def _reject(
        symbol: str, side: OrderSide, order_type: OrderType, error: str
    ) -> CommandResult:
        logger.info(
            "Rejected %s %s %s: %s",
            order_type.value,
            side.value,
            symbol,
            error,
            extra={
                "extra_fields": {
                    "event": "order_rejected",
                    "symbol": symbol,
                    "reason": error,
                }
            },
        )
        return CommandResult.failure(error)
