"""Runtime settings for the SimTrade engine.

Settings are a validated pydantic model. :func:`load_settings` builds them
from ``SIMTRADE_*`` environment variables, after loading a ``.env`` file
if one is present.
"""

import os
from decimal import Decimal
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from simtrade.feeds.synthetic import DEFAULT_CRYPTO_SYMBOLS, DEFAULT_SEED_PRICES
from simtrade.models import AssetClass

ENV_PREFIX = "SIMTRADE_"


class SimulatorSettings(BaseModel):
    """Configuration for a simulation engine instance."""

    initial_balance: Decimal = Field(
        default=Decimal("100000"),
        gt=Decimal("0"),
        description="Cash balance of a fresh or reset account",
    )
    currency: str = Field(default="USDT", description="Simulation currency")
    db_path: Path = Field(
        default=Path("data/simtrade.duckdb"),
        description="DuckDB file holding the persisted state",
    )
    state_key: str = Field(
        default="simtrade_state", min_length=1, description="Storage key"
    )
    evaluation_interval_seconds: float = Field(
        default=0.5,
        gt=0.0,
        le=60.0,
        description="Period of the pending-order evaluation timer",
    )
    synthetic_interval_seconds: float = Field(
        default=2.0,
        gt=0.0,
        le=3600.0,
        description="Period of the synthetic price generator",
    )
    live_interval_seconds: float = Field(
        default=15.0,
        ge=1.0,
        le=3600.0,
        description="Period of the live quote poller",
    )
    price_source: Literal["synthetic", "yahoo", "none"] = Field(
        default="synthetic", description="Where prices come from"
    )
    symbols: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CRYPTO_SYMBOLS),
        description="Symbols tracked by the live source",
    )
    random_seed: int | None = Field(
        default=None, description="Seed for the synthetic generator"
    )
    asset_classes: dict[str, AssetClass] = Field(
        default_factory=dict,
        description="Asset class per live symbol; unlisted symbols use the "
        "built-in table, then stocks",
    )

    def asset_class(self, symbol: str) -> AssetClass:
        """Resolve the asset class the live source should quote a symbol as."""
        if symbol in self.asset_classes:
            return self.asset_classes[symbol]
        if symbol in DEFAULT_SEED_PRICES:
            return DEFAULT_SEED_PRICES[symbol][0]
        return AssetClass.STOCKS


def load_settings(env_file: str | Path | None = None) -> SimulatorSettings:
    """Build settings from the environment.

    Recognised variables: SIMTRADE_INITIAL_BALANCE, SIMTRADE_CURRENCY,
    SIMTRADE_DB_PATH, SIMTRADE_STATE_KEY, SIMTRADE_EVALUATION_INTERVAL,
    SIMTRADE_SYNTHETIC_INTERVAL, SIMTRADE_LIVE_INTERVAL, SIMTRADE_PRICE_SOURCE,
    SIMTRADE_SYMBOLS (comma separated), SIMTRADE_ASSET_CLASSES (comma
    separated SYMBOL=CLASS pairs) and SIMTRADE_SEED.

    Args:
        env_file: Optional .env file to load first (default: search cwd).

    Returns:
        Validated settings.

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value.
    """
    load_dotenv(dotenv_path=env_file)

    mapping = {
        "INITIAL_BALANCE": "initial_balance",
        "CURRENCY": "currency",
        "DB_PATH": "db_path",
        "STATE_KEY": "state_key",
        "EVALUATION_INTERVAL": "evaluation_interval_seconds",
        "SYNTHETIC_INTERVAL": "synthetic_interval_seconds",
        "LIVE_INTERVAL": "live_interval_seconds",
        "PRICE_SOURCE": "price_source",
        "SEED": "random_seed",
    }
    values: dict[str, object] = {}
    for env_name, field_name in mapping.items():
        raw = os.getenv(ENV_PREFIX + env_name)
        if raw is not None and raw.strip():
            values[field_name] = raw.strip()

    raw_symbols = os.getenv(ENV_PREFIX + "SYMBOLS")
    if raw_symbols:
        values["symbols"] = [
            s.strip().upper() for s in raw_symbols.split(",") if s.strip()
        ]

    raw_classes = os.getenv(ENV_PREFIX + "ASSET_CLASSES")
    if raw_classes:
        classes: dict[str, str] = {}
        for pair in raw_classes.split(","):
            symbol, _, asset_class = pair.partition("=")
            if symbol.strip():
                classes[symbol.strip().upper()] = asset_class.strip().lower()
        values["asset_classes"] = classes

    return SimulatorSettings(**values)
