"""Pytest fixtures for CLI tests."""

import tempfile
import uuid
from collections.abc import Iterator
from pathlib import Path

import pytest

from simtrade.engine.engine import TradingEngine
from simtrade.storage.kv import DuckDBKeyValueStore


@pytest.fixture
def db_path() -> Path:
    """Create a temporary database path (path only, not the file)."""
    temp_dir = Path(tempfile.gettempdir())
    return temp_dir / f"test_cli_{uuid.uuid4().hex}.duckdb"


@pytest.fixture(autouse=True)
def simulator_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Use default simulator settings regardless of the caller's environment."""
    monkeypatch.delenv("SIMTRADE_INITIAL_BALANCE", raising=False)
    monkeypatch.delenv("SIMTRADE_STATE_KEY", raising=False)
    monkeypatch.delenv("SIMTRADE_CURRENCY", raising=False)
    monkeypatch.delenv("SIMTRADE_ASSET_CLASSES", raising=False)
    monkeypatch.setenv("SIMTRADE_PRICE_SOURCE", "synthetic")
    yield


@pytest.fixture
def load_engine(db_path: Path):
    """Open the state a CLI invocation left behind."""

    def load() -> TradingEngine:
        return TradingEngine.create(DuckDBKeyValueStore(db_path))

    return load
