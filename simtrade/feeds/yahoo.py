"""Yahoo Finance quote source for live prices."""

import logging
import time
from decimal import Decimal

import pandas as pd
import yfinance as yf
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from simtrade.feeds.base import (
    FeedError,
    FeedUnavailableError,
    PriceSource,
    RateLimitError,
)
from simtrade.models import AssetClass

logger = logging.getLogger(__name__)


class YahooQuoteError(FeedError):
    """Custom exception for Yahoo Finance quote errors."""

    pass


def yahoo_ticker(symbol: str, asset_class: AssetClass) -> str:
    """Map an engine symbol to its Yahoo Finance ticker.

    Examples:
        BTC (crypto) -> BTC-USD, EURUSD (forex) -> EURUSD=X, AAPL -> AAPL
    """
    if asset_class == AssetClass.CRYPTO:
        return f"{symbol}-USD"
    if asset_class == AssetClass.FOREX:
        return f"{symbol}=X"
    return symbol


class YahooQuoteSource(PriceSource):
    """Polls the latest intraday close for each symbol from Yahoo Finance.

    Rate limiting: Yahoo Finance has undocumented rate limits. Requests are
    spaced by a configurable delay and rate-limit failures are retried with
    exponential backoff. Symbols with no data are skipped for that poll.
    """

    name = "yahoo"

    def __init__(
        self,
        symbols: dict[str, AssetClass],
        interval_seconds: float = 15.0,
        delay_between_requests: float = 0.2,
    ) -> None:
        """Initialize the quote source.

        Args:
            symbols: Engine symbol -> asset class.
            interval_seconds: Seconds between polls.
            delay_between_requests: Delay in seconds between ticker requests.
        """
        super().__init__(interval_seconds)
        self._tickers = {
            symbol: yahoo_ticker(symbol, asset_class)
            for symbol, asset_class in symbols.items()
        }
        self._delay = delay_between_requests
        self._last_request_time: float = 0.0

    @property
    def symbols(self) -> list[str]:
        return list(self._tickers)

    def _rate_limit(self) -> None:
        """Enforce spacing between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._delay:
            time.sleep(self._delay - elapsed)
        self._last_request_time = time.time()

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
    )
    def _fetch_last_close(self, ticker: str) -> Decimal | None:
        """Fetch the most recent close for a ticker with retry logic.

        Returns:
            Latest close, or None if Yahoo returned no usable data.

        Raises:
            RateLimitError: If rate limit is exceeded (retried).
            YahooQuoteError: If the request fails.
        """
        self._rate_limit()

        try:
            data = yf.Ticker(ticker).history(period="1d", interval="1m")
        except Exception as e:
            error_msg = str(e).lower()
            if "429" in error_msg or "rate limit" in error_msg:
                raise RateLimitError(
                    f"Rate limit exceeded for {ticker}", source="Yahoo Finance"
                ) from e
            raise YahooQuoteError(
                f"Failed to fetch quote for {ticker}: {e!s}", source="Yahoo Finance"
            ) from e

        if data is None or data.empty or "Close" not in data.columns:
            return None
        closes = data["Close"].dropna()
        if closes.empty:
            return None
        last = closes.iloc[-1]
        if pd.isna(last) or last <= 0:
            return None
        return Decimal(str(float(last)))

    def fetch_prices(self) -> dict[str, Decimal]:
        """Fetch the latest price for every configured symbol.

        Returns:
            Dictionary of symbol to price for symbols that returned data.

        Raises:
            FeedUnavailableError: If no symbol returned a price.
        """
        prices: dict[str, Decimal] = {}
        for symbol, ticker in self._tickers.items():
            try:
                price = self._fetch_last_close(ticker)
            except RetryError as e:
                logger.warning("Max retries exceeded for %s: %s", ticker, e)
                continue
            except YahooQuoteError as e:
                logger.warning("%s", e)
                continue
            if price is None:
                logger.debug("No quote available for %s", ticker)
                continue
            prices[symbol] = price

        if not prices:
            raise FeedUnavailableError(
                "No quotes available for any symbol", source="Yahoo Finance"
            )
        return prices
