"""Account Ledger for the SimTrade engine.

This module owns the cash balance and the per-symbol holdings, and provides
the only operations through which either may change.
"""

import logging
from collections.abc import Mapping
from decimal import Decimal

from simtrade.models import (
    ZERO,
    Holding,
    PortfolioSummary,
    PositionValuation,
)

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base exception for rejected ledger operations."""

    pass


class InsufficientFundsError(LedgerError):
    """Raised when there are insufficient funds for a debit or buy."""

    pass


class InsufficientHoldingsError(LedgerError):
    """Raised when there is not enough quantity held for a sell."""

    pass


class AccountLedger:
    """Cash balance and holdings of the simulated account.

    Every operation validates before it mutates, so a rejected call leaves
    the ledger untouched and readers never observe a half-applied fill.
    Callers are expected to serialize access (the engine holds a lock).
    """

    def __init__(
        self,
        initial_cash: Decimal,
        holdings: Mapping[str, Holding] | None = None,
    ) -> None:
        """Initialize the ledger.

        Args:
            initial_cash: Starting cash balance (must be >= 0).
            holdings: Optional restored holdings keyed by symbol.

        Raises:
            ValueError: If initial_cash is negative.
        """
        if initial_cash < ZERO:
            raise ValueError(f"Initial cash must be non-negative, got {initial_cash}")
        self._cash = initial_cash
        self._holdings: dict[str, Holding] = {}
        if holdings:
            self._holdings = {
                symbol: holding
                for symbol, holding in holdings.items()
                if holding.is_open
            }

    @property
    def cash_balance(self) -> Decimal:
        """Current cash balance."""
        return self._cash

    def get_holding(self, symbol: str) -> Holding:
        """Get the holding for a symbol.

        Args:
            symbol: Instrument symbol.

        Returns:
            The holding, or a zero holding if no position is open.
        """
        return self._holdings.get(symbol) or Holding.empty(symbol)

    def get_holdings(self) -> dict[str, Holding]:
        """Get all open holdings.

        Returns:
            Dictionary of symbol to holding.
        """
        return self._holdings.copy()

    def debit(self, amount: Decimal) -> Decimal:
        """Remove cash from the account.

        Args:
            amount: Non-negative amount to remove.

        Returns:
            New cash balance.

        Raises:
            ValueError: If amount is negative.
            InsufficientFundsError: If the debit would make the balance negative.
        """
        if amount < ZERO:
            raise ValueError(f"Debit amount must be non-negative, got {amount}")
        if amount > self._cash:
            raise InsufficientFundsError(
                f"Insufficient balance: need {amount:.2f}, have {self._cash:.2f}"
            )
        self._cash -= amount
        return self._cash

    def credit(self, amount: Decimal) -> Decimal:
        """Add cash to the account.

        Args:
            amount: Non-negative amount to add.

        Returns:
            New cash balance.
        """
        if amount < ZERO:
            raise ValueError(f"Credit amount must be non-negative, got {amount}")
        self._cash += amount
        return self._cash

    def can_afford(self, quantity: Decimal, price: Decimal) -> bool:
        """Check whether a buy of quantity at price is covered by cash."""
        return quantity * price <= self._cash

    def can_sell(self, symbol: str, quantity: Decimal) -> bool:
        """Check whether enough quantity is held to sell."""
        return self.get_holding(symbol).quantity >= quantity

    def apply_buy(self, symbol: str, quantity: Decimal, price: Decimal) -> Holding:
        """Settle a buy: debit cash and fold the lot into the average cost.

        Args:
            symbol: Instrument symbol.
            quantity: Units bought.
            price: Execution price.

        Returns:
            Updated holding.

        Raises:
            InsufficientFundsError: If cash does not cover quantity x price.
        """
        _require_positive(quantity, price)
        cost = quantity * price
        current = self.get_holding(symbol)

        new_quantity = current.quantity + quantity
        new_average = (
            (current.average_cost * current.quantity) + (price * quantity)
        ) / new_quantity

        self.debit(cost)
        updated = Holding(symbol=symbol, quantity=new_quantity, average_cost=new_average)
        self._holdings[symbol] = updated

        logger.debug(
            "Applied buy %s x %s @ %s, cash=%s", symbol, quantity, price, self._cash
        )
        return updated

    def apply_sell(
        self, symbol: str, quantity: Decimal, price: Decimal
    ) -> tuple[Holding, Decimal]:
        """Settle a sell: credit proceeds and reduce the position.

        The average cost of the remaining quantity is unchanged; a position
        sold down to zero is dropped, which resets its average cost.

        Args:
            symbol: Instrument symbol.
            quantity: Units sold.
            price: Execution price.

        Returns:
            Tuple of (remaining holding, realized P&L).

        Raises:
            InsufficientHoldingsError: If less than quantity is held.
        """
        _require_positive(quantity, price)
        current = self.get_holding(symbol)
        if current.quantity < quantity:
            raise InsufficientHoldingsError(
                f"Insufficient portfolio: need {quantity} {symbol}, "
                f"have {current.quantity}"
            )

        realized_pnl = (price - current.average_cost) * quantity
        self.credit(price * quantity)

        remaining = current.quantity - quantity
        if remaining == ZERO:
            self._holdings.pop(symbol, None)
            updated = Holding.empty(symbol)
        else:
            updated = Holding(
                symbol=symbol,
                quantity=remaining,
                average_cost=current.average_cost,
            )
            self._holdings[symbol] = updated

        logger.debug(
            "Applied sell %s x %s @ %s, cash=%s", symbol, quantity, price, self._cash
        )
        return updated, realized_pnl

    def modify_balance(self, delta: Decimal) -> Decimal:
        """Administrative balance adjustment, floored at zero.

        Args:
            delta: Signed amount to add.

        Returns:
            New cash balance.
        """
        self._cash = max(ZERO, self._cash + delta)
        return self._cash

    def reset(self, cash: Decimal) -> None:
        """Reset to a fresh account with no holdings."""
        self._cash = cash
        self._holdings = {}

    def valuate(self, prices: Mapping[str, Decimal]) -> PortfolioSummary:
        """Mark all holdings to market.

        Positions without a quote are valued at their average cost.

        Args:
            prices: Dictionary of symbol to latest price.

        Returns:
            Portfolio summary.
        """
        positions: list[PositionValuation] = []
        for symbol, holding in sorted(self._holdings.items()):
            current_price = prices.get(symbol)
            mark = current_price if current_price is not None else holding.average_cost
            invested = holding.quantity * holding.average_cost
            market_value = holding.quantity * mark
            pnl = market_value - invested
            pnl_pct = float(pnl / invested * 100) if invested > ZERO else 0.0
            positions.append(
                PositionValuation(
                    symbol=symbol,
                    quantity=holding.quantity,
                    average_cost=holding.average_cost,
                    current_price=current_price,
                    invested=invested,
                    market_value=market_value,
                    unrealized_pnl=pnl,
                    unrealized_pnl_pct=pnl_pct,
                )
            )

        positions_value = sum((p.market_value for p in positions), start=ZERO)
        unrealized = sum((p.unrealized_pnl for p in positions), start=ZERO)
        return PortfolioSummary(
            cash_balance=self._cash,
            positions=positions,
            positions_value=positions_value,
            total_equity=self._cash + positions_value,
            unrealized_pnl=unrealized,
        )


def _require_positive(quantity: Decimal, price: Decimal) -> None:
    if quantity <= ZERO or price <= ZERO:
        raise ValueError(
            f"Quantity and price must be positive, got {quantity} @ {price}"
        )
