"""Tests for logging configuration."""

import json
import logging
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from simtrade.config.logging import JSONFormatter, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep logging configuration from leaking between tests."""
    for name in ("SIMTRADE_LOG_LEVEL", "LOG_LEVEL", "LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_level_argument(self) -> None:
        setup_logging(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_level_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SIMTRADE_LOG_LEVEL", "warning")
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_invalid_level(self) -> None:
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logging(level="LOUD")

    def test_noisy_loggers_capped(self) -> None:
        setup_logging(level="DEBUG")
        assert logging.getLogger("yfinance").level == logging.WARNING

    def test_json_file_handler(self, tmp_path: Path) -> None:
        """Test that the log file receives JSON records with extra fields."""
        log_file = tmp_path / "logs" / "simtrade.log"
        setup_logging(level="INFO", log_file=log_file)

        logging.getLogger("simtrade.test").info(
            "Filled order", extra={"extra_fields": {"order_id": "abc"}}
        )
        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["message"] == "Filled order"
        assert record["order_id"] == "abc"
        assert record["level"] == "INFO"


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_exception_included(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        payload = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in payload["exception"]
