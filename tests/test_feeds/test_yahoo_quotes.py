"""Tests for the Yahoo Finance quote source (network calls mocked)."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest

from simtrade.feeds.base import FeedUnavailableError
from simtrade.feeds.yahoo import YahooQuoteSource, yahoo_ticker
from simtrade.models import AssetClass


def _history(closes: list[float]) -> pd.DataFrame:
    return pd.DataFrame({"Close": closes})


@pytest.fixture
def source() -> YahooQuoteSource:
    return YahooQuoteSource(
        {"BTC": AssetClass.CRYPTO, "AAPL": AssetClass.STOCKS},
        delay_between_requests=0.0,
    )


class TestYahooTicker:
    """Tests for symbol to ticker mapping."""

    @pytest.mark.parametrize(
        ("symbol", "asset_class", "ticker"),
        [
            ("BTC", AssetClass.CRYPTO, "BTC-USD"),
            ("EURUSD", AssetClass.FOREX, "EURUSD=X"),
            ("AAPL", AssetClass.STOCKS, "AAPL"),
        ],
    )
    def test_mapping(self, symbol: str, asset_class: AssetClass, ticker: str) -> None:
        assert yahoo_ticker(symbol, asset_class) == ticker


class TestYahooQuoteSource:
    """Tests for YahooQuoteSource.fetch_prices."""

    def test_latest_close_per_symbol(self, source: YahooQuoteSource) -> None:
        """Test that the last non-missing close is reported per symbol."""
        histories = {
            "BTC-USD": _history([64000.0, 64100.5, float("nan")]),
            "AAPL": _history([190.25]),
        }

        def ticker(name: str) -> MagicMock:
            mock = MagicMock()
            mock.history.return_value = histories[name]
            return mock

        with patch("simtrade.feeds.yahoo.yf.Ticker", side_effect=ticker):
            prices = source.fetch_prices()

        assert prices == {"BTC": Decimal("64100.5"), "AAPL": Decimal("190.25")}
        assert source.symbols == ["BTC", "AAPL"]

    def test_failed_symbol_skipped(self, source: YahooQuoteSource) -> None:
        """Test that one failing ticker does not drop the others."""

        def ticker(name: str) -> MagicMock:
            mock = MagicMock()
            if name == "AAPL":
                mock.history.side_effect = RuntimeError("boom")
            else:
                mock.history.return_value = _history([64000.0])
            return mock

        with patch("simtrade.feeds.yahoo.yf.Ticker", side_effect=ticker):
            prices = source.fetch_prices()

        assert prices == {"BTC": Decimal("64000.0")}

    def test_no_data_raises(self, source: YahooQuoteSource) -> None:
        """Test that an empty poll is reported as unavailable."""
        mock = MagicMock()
        mock.history.return_value = pd.DataFrame()

        with patch("simtrade.feeds.yahoo.yf.Ticker", return_value=mock):
            with pytest.raises(FeedUnavailableError):
                source.fetch_prices()
            assert not source.validate_connection()
