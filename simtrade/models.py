"""Pydantic models for the SimTrade engine.

This module defines the data model shared by the ledger, order book, trade
recorder, alert monitor, price feed and persistence layers.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

ZERO = Decimal("0")


class OrderSide(str, Enum):
    """Side of an order or trade."""

    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    """Order type."""

    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"


class OrderStatus(str, Enum):
    """Lifecycle status of an order.

    Transitions are one-directional: PENDING -> FILLED or PENDING -> CANCELLED.
    """

    PENDING = "pending"
    FILLED = "filled"
    CANCELLED = "cancelled"


class AlertCondition(str, Enum):
    """Direction in which a price alert fires."""

    ABOVE = "above"
    BELOW = "below"


class AssetClass(str, Enum):
    """Asset classes tracked by the simulator."""

    CRYPTO = "crypto"
    STOCKS = "stocks"
    FOREX = "forex"


def to_decimal(value: object) -> Decimal | None:
    """Convert a user-supplied number to a finite Decimal.

    Args:
        value: Decimal, int, float or numeric string.

    Returns:
        The Decimal value, or None if the value is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
    if not result.is_finite():
        return None
    return result


class Holding(BaseModel):
    """Quantity and average cost basis held in one symbol."""

    symbol: str = Field(description="Instrument symbol (e.g., 'BTC')")
    quantity: Decimal = Field(ge=ZERO, description="Units held")
    average_cost: Decimal = Field(
        ge=ZERO, description="Quantity-weighted average purchase price"
    )

    @classmethod
    def empty(cls, symbol: str) -> "Holding":
        """Create the zero holding that stands for 'no position'."""
        return cls(symbol=symbol, quantity=ZERO, average_cost=ZERO)

    @property
    def is_open(self) -> bool:
        """Check whether this holding represents an open position."""
        return self.quantity > ZERO


class Order(BaseModel):
    """Order submitted to the simulated order book."""

    order_id: str = Field(default_factory=lambda: str(uuid4()))
    symbol: str = Field(min_length=1, description="Instrument symbol")
    side: OrderSide = Field(description="Buy or sell")
    order_type: OrderType = Field(description="Market, limit or stop")
    quantity: Decimal = Field(gt=ZERO, description="Units to trade")
    limit_price: Decimal | None = Field(
        default=None,
        description="Limit price (limit orders) or execution cap (stop orders)",
    )
    stop_price: Decimal | None = Field(
        default=None, description="Trigger price for stop orders"
    )
    status: OrderStatus = Field(default=OrderStatus.PENDING)
    created_at: datetime = Field(default_factory=datetime.now)
    filled_at: datetime | None = Field(default=None)
    fill_price: Decimal | None = Field(default=None, description="Executed price")

    def model_post_init(self, __context: object) -> None:
        """Validate prices required by the order type."""
        if self.order_type == OrderType.LIMIT and self.limit_price is None:
            raise ValueError("Limit price required for LIMIT orders")
        if self.order_type == OrderType.STOP and self.stop_price is None:
            raise ValueError("Stop price required for STOP orders")

    @property
    def is_pending(self) -> bool:
        """Check whether the order is still awaiting a fill."""
        return self.status == OrderStatus.PENDING


class Trade(BaseModel):
    """Immutable execution record, one per fill."""

    model_config = ConfigDict(frozen=True)

    trade_id: str = Field(default_factory=lambda: str(uuid4()))
    order_id: str = Field(description="Order that produced the fill")
    symbol: str = Field(description="Instrument symbol")
    side: OrderSide = Field(description="Buy or sell")
    quantity: Decimal = Field(gt=ZERO, description="Executed quantity")
    price: Decimal = Field(gt=ZERO, description="Execution price")
    total_value: Decimal = Field(description="price x quantity")
    realized_pnl: Decimal = Field(
        default=ZERO, description="Realized P&L (for sells)"
    )
    created_at: datetime = Field(default_factory=datetime.now)


class PriceAlert(BaseModel):
    """One-shot target-price watch on a symbol."""

    alert_id: str = Field(default_factory=lambda: str(uuid4()))
    symbol: str = Field(min_length=1, description="Instrument symbol")
    target_price: Decimal = Field(gt=ZERO, description="Price that fires the alert")
    condition: AlertCondition = Field(description="Fire above or below target")
    is_active: bool = Field(default=True)
    triggered_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)

    def is_met_by(self, price: Decimal) -> bool:
        """Check whether a price satisfies the alert condition."""
        if self.condition == AlertCondition.ABOVE:
            return price >= self.target_price
        return price <= self.target_price


class PriceTable(BaseModel):
    """Point-in-time copy of the live price table. Never persisted."""

    model_config = ConfigDict(frozen=True)

    prices: dict[str, Decimal] = Field(default_factory=dict)
    updated_at: dict[str, datetime] = Field(
        default_factory=dict, description="Last update time per symbol"
    )
    as_of: datetime | None = Field(
        default=None, description="Time of the most recent update of any symbol"
    )

    def get(self, symbol: str) -> Decimal | None:
        """Get the price for a symbol, if one has been received."""
        return self.prices.get(symbol)


class CommandResult(BaseModel):
    """Structured outcome of an engine command."""

    ok: bool = Field(description="Whether the command succeeded")
    error: str | None = Field(default=None, description="Message for display")
    order: Order | None = Field(default=None)
    trade: Trade | None = Field(default=None)
    alert: PriceAlert | None = Field(default=None)

    @classmethod
    def failure(cls, error: str) -> "CommandResult":
        """Build a failed result carrying a display message."""
        return cls(ok=False, error=error)


class SimulationState(BaseModel):
    """Durable simulation state: everything except live prices."""

    cash_balance: Decimal = Field(ge=ZERO, description="Cash in simulation currency")
    holdings: dict[str, Holding] = Field(default_factory=dict)
    orders: list[Order] = Field(default_factory=list)
    trades: list[Trade] = Field(default_factory=list)
    alerts: list[PriceAlert] = Field(default_factory=list)


class EngineState(SimulationState):
    """Read-only view handed to the presentation layer."""

    prices: PriceTable = Field(default_factory=PriceTable)
    price_feed_paused: bool = Field(default=False)


class PositionValuation(BaseModel):
    """Mark-to-market view of a single holding."""

    symbol: str
    quantity: Decimal
    average_cost: Decimal
    current_price: Decimal | None = Field(
        default=None, description="Latest price, None when no quote received"
    )
    invested: Decimal = Field(description="quantity x average cost")
    market_value: Decimal = Field(description="quantity x current price")
    unrealized_pnl: Decimal
    unrealized_pnl_pct: float


class PortfolioSummary(BaseModel):
    """Valuation of the whole account against a price table."""

    cash_balance: Decimal
    positions: list[PositionValuation] = Field(default_factory=list)
    positions_value: Decimal
    total_equity: Decimal
    unrealized_pnl: Decimal
