"""Price feed adapter and price sources."""

from simtrade.feeds.base import (
    FeedError,
    FeedUnavailableError,
    PriceSource,
    RateLimitError,
)
from simtrade.feeds.price_feed import PriceFeed
from simtrade.feeds.synthetic import SyntheticPriceSource
from simtrade.feeds.yahoo import YahooQuoteSource

__all__ = [
    "FeedError",
    "FeedUnavailableError",
    "PriceFeed",
    "PriceSource",
    "RateLimitError",
    "SyntheticPriceSource",
    "YahooQuoteSource",
]
