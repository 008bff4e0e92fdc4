"""Base price source abstract class and feed errors."""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from decimal import Decimal

logger = logging.getLogger(__name__)


class FeedError(Exception):
    """Base exception for price source errors."""

    def __init__(self, message: str, source: str | None = None) -> None:
        """Initialize feed error.

        Args:
            message: Error description
            source: Price source name (e.g., 'Yahoo Finance', 'synthetic')
        """
        self.source = source
        super().__init__(f"[{source}] {message}" if source else message)


class RateLimitError(FeedError):
    """Exception raised when a source rate limit is exceeded."""

    pass


class FeedUnavailableError(FeedError):
    """Exception raised when a source cannot deliver prices."""

    pass


class PriceSource(ABC):
    """Abstract base class for price sources.

    A source produces one batch of symbol -> price updates per poll. The
    price feed drives each source from its own worker thread at the
    source's interval.
    """

    name: str = "source"

    def __init__(self, interval_seconds: float) -> None:
        """Initialize the source.

        Args:
            interval_seconds: Seconds between polls.

        Raises:
            ValueError: If the interval is not positive.
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.interval_seconds = interval_seconds

    @property
    @abstractmethod
    def symbols(self) -> list[str]:
        """Engine symbols this source reports."""

    @abstractmethod
    def fetch_prices(self) -> dict[str, Decimal]:
        """Produce the next batch of prices.

        Returns:
            Dictionary of symbol to price.

        Raises:
            FeedError: If the source cannot produce prices.
        """

    def validate_connection(self) -> bool:
        """Validate that the source can produce prices.

        Returns:
            True if a poll succeeds, False otherwise.
        """
        try:
            return bool(self.fetch_prices())
        except FeedError:
            return False


class SourceWorker:
    """Daemon thread polling one price source until stopped."""

    def __init__(
        self,
        source: PriceSource,
        deliver: Callable[[dict[str, Decimal], str], object],
    ) -> None:
        """Initialize the worker.

        Args:
            source: Source to poll.
            deliver: Callback receiving (prices, source name) per poll.
        """
        self.source = source
        self._deliver = deliver
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            name=f"price-source-{self.source.name}",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def poll_once(self) -> bool:
        """Poll the source once and deliver the batch.

        A failing source leaves the price table at its last known values.

        Returns:
            True if a batch was delivered.
        """
        try:
            prices = self.source.fetch_prices()
        except FeedError as e:
            logger.warning("Price source %s failed: %s", self.source.name, e)
            return False
        if not prices:
            return False
        self._deliver(prices, self.source.name)
        return True

    def _poll_safely(self) -> None:
        try:
            self.poll_once()
        except Exception:
            logger.exception("Price source %s poll failed", self.source.name)

    def _run(self) -> None:
        logger.info(
            "Started price source %s (every %.2fs)",
            self.source.name,
            self.source.interval_seconds,
        )
        self._poll_safely()
        while not self._stop.wait(self.source.interval_seconds):
            self._poll_safely()
        logger.info("Stopped price source %s", self.source.name)
