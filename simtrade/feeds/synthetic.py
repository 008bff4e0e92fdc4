"""Synthetic price generation.

Provides a random-walk price source for instruments without a live feed
(stocks and forex in the simulator, or anything when running offline), and
the administrative market shocks used to stress the simulation.
"""

import logging
from collections.abc import Callable, Mapping
from decimal import ROUND_HALF_UP, Decimal

import numpy as np

from simtrade.feeds.base import PriceSource
from simtrade.models import AssetClass

logger = logging.getLogger(__name__)

# Per-step volatility by asset class
ASSET_CLASS_VOLATILITY: dict[AssetClass, float] = {
    AssetClass.CRYPTO: 0.002,
    AssetClass.STOCKS: 0.001,
    AssetClass.FOREX: 0.0003,
}

DEFAULT_CRYPTO_SYMBOLS = ["BTC", "ETH", "SOL", "BNB", "XRP", "DOGE", "ADA"]

# Starting prices for offline simulation
DEFAULT_SEED_PRICES: dict[str, tuple[AssetClass, Decimal]] = {
    "BTC": (AssetClass.CRYPTO, Decimal("65000")),
    "ETH": (AssetClass.CRYPTO, Decimal("3200")),
    "SOL": (AssetClass.CRYPTO, Decimal("150")),
    "BNB": (AssetClass.CRYPTO, Decimal("580")),
    "XRP": (AssetClass.CRYPTO, Decimal("0.52")),
    "DOGE": (AssetClass.CRYPTO, Decimal("0.15")),
    "ADA": (AssetClass.CRYPTO, Decimal("0.45")),
    "AAPL": (AssetClass.STOCKS, Decimal("190")),
    "MSFT": (AssetClass.STOCKS, Decimal("420")),
    "TSLA": (AssetClass.STOCKS, Decimal("180")),
    "EURUSD": (AssetClass.FOREX, Decimal("1.08")),
    "GBPUSD": (AssetClass.FOREX, Decimal("1.27")),
    "USDJPY": (AssetClass.FOREX, Decimal("155")),
}

MIN_PRICE = Decimal("0.0001")
PRICE_QUANTUM = Decimal("0.00000001")

# Base move (in percent) scaled by the volatility multiplier
VOLATILITY_BASE_PCT = 5.0
CRASH_MIN_DROP_PCT = 10.0
CRASH_MAX_DROP_PCT = 30.0


def _round_price(value: float) -> Decimal:
    price = Decimal(str(value)).quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
    return max(price, MIN_PRICE)


class SyntheticPriceSource(PriceSource):
    """Periodic random-walk generator.

    Each poll moves every symbol by a uniform random fraction of its asset
    class volatility, in either direction, floored at a minimal price.
    """

    name = "synthetic"

    def __init__(
        self,
        seed_prices: Mapping[str, tuple[AssetClass, Decimal]] | None = None,
        interval_seconds: float = 2.0,
        seed: int | None = None,
        volatility: Mapping[AssetClass, float] | None = None,
    ) -> None:
        """Initialize the generator.

        Args:
            seed_prices: Symbol -> (asset class, starting price).
            interval_seconds: Seconds between generated ticks.
            seed: Random seed for reproducible walks.
            volatility: Per-step volatility by asset class.
        """
        super().__init__(interval_seconds)
        seeds = dict(seed_prices or DEFAULT_SEED_PRICES)
        self._asset_classes = {symbol: cls for symbol, (cls, _) in seeds.items()}
        self._prices = {symbol: float(price) for symbol, (_, price) in seeds.items()}
        self._volatility = dict(volatility or ASSET_CLASS_VOLATILITY)
        self._rng = np.random.default_rng(seed)

    @property
    def symbols(self) -> list[str]:
        return list(self._prices)

    def current_prices(self) -> dict[str, Decimal]:
        """Prices as of the last step, without advancing the walk."""
        return {symbol: _round_price(p) for symbol, p in self._prices.items()}

    def fetch_prices(self) -> dict[str, Decimal]:
        """Advance the walk one step for every symbol.

        Returns:
            Dictionary of symbol to new price.
        """
        symbols = list(self._prices)
        shocks = self._rng.uniform(-1.0, 1.0, size=len(symbols))
        for symbol, shock in zip(symbols, shocks):
            vol = self._volatility.get(self._asset_classes[symbol], 0.0005)
            price = self._prices[symbol]
            self._prices[symbol] = max(price * (1 + vol * shock), float(MIN_PRICE))
        return self.current_prices()


def volatility_shock(
    multiplier: float, rng: np.random.Generator | None = None
) -> Callable[[str, Decimal], Decimal]:
    """Build a price transform moving each symbol up to +/- multiplier x 5%.

    Args:
        multiplier: Scale of the move.
        rng: Random generator (a fresh one if None).

    Returns:
        Function mapping (symbol, price) to the shocked price.
    """
    generator = rng or np.random.default_rng()

    def shock(symbol: str, price: Decimal) -> Decimal:
        change_pct = (generator.random() - 0.5) * 2 * multiplier * VOLATILITY_BASE_PCT
        return _round_price(float(price) * (1 + change_pct / 100))

    return shock


def market_crash(
    rng: np.random.Generator | None = None,
) -> Callable[[str, Decimal], Decimal]:
    """Build a price transform dropping each symbol by 10-30%.

    Args:
        rng: Random generator (a fresh one if None).

    Returns:
        Function mapping (symbol, price) to the crashed price.
    """
    generator = rng or np.random.default_rng()

    def crash(symbol: str, price: Decimal) -> Decimal:
        drop_pct = generator.uniform(CRASH_MIN_DROP_PCT, CRASH_MAX_DROP_PCT)
        return _round_price(float(price) * (1 - drop_pct / 100))

    return crash
