"""Order/position simulation engine.

Key components:
- TradingEngine: service object exposing commands and read-only state
- AccountLedger: cash balance and holdings with average-cost accounting
- OrderBook: market/limit/stop order lifecycle and tick evaluation
- TradeRecorder: append-only execution history
- PriceAlertMonitor: one-shot target-price alerts

Example usage:
    from simtrade.engine import TradingEngine
    from simtrade.storage import InMemoryKeyValueStore

    engine = TradingEngine.create(InMemoryKeyValueStore())
    result = engine.place_market_order("BTC", "buy", 1, 50000)
    if not result.ok:
        print(result.error)
"""

from simtrade.engine.alerts import PriceAlertMonitor
from simtrade.engine.engine import TradingEngine
from simtrade.engine.ledger import (
    AccountLedger,
    InsufficientFundsError,
    InsufficientHoldingsError,
    LedgerError,
)
from simtrade.engine.orders import OrderBook
from simtrade.engine.trades import TradeRecorder
from simtrade.models import (
    AlertCondition,
    AssetClass,
    CommandResult,
    EngineState,
    Holding,
    Order,
    OrderSide,
    OrderStatus,
    OrderType,
    PortfolioSummary,
    PriceAlert,
    PriceTable,
    SimulationState,
    Trade,
)

__all__ = [
    "AccountLedger",
    "AlertCondition",
    "AssetClass",
    "CommandResult",
    "EngineState",
    "Holding",
    "InsufficientFundsError",
    "InsufficientHoldingsError",
    "LedgerError",
    "Order",
    "OrderBook",
    "OrderSide",
    "OrderStatus",
    "OrderType",
    "PortfolioSummary",
    "PriceAlert",
    "PriceAlertMonitor",
    "PriceTable",
    "SimulationState",
    "Trade",
    "TradeRecorder",
    "TradingEngine",
]
