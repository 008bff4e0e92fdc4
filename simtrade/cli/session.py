"""Helpers shared by CLI commands: opening the engine and printing results."""

import logging
from decimal import Decimal
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from simtrade.config.settings import SimulatorSettings, load_settings
from simtrade.engine.engine import TradingEngine
from simtrade.feeds.base import PriceSource
from simtrade.feeds.synthetic import SyntheticPriceSource
from simtrade.feeds.yahoo import YahooQuoteSource
from simtrade.models import CommandResult
from simtrade.storage.kv import DuckDBKeyValueStore, StorageError

console = Console()
logger = logging.getLogger(__name__)


def open_engine(
    db_path: Optional[str],
    settings: Optional[SimulatorSettings] = None,
) -> TradingEngine:
    """Open an engine backed by the DuckDB state file.

    Args:
        db_path: Database path override (settings.db_path if None).
        settings: Settings to use (loaded from the environment if None).

    Returns:
        Engine with the persisted state restored.

    Raises:
        typer.Exit: If the database cannot be opened.
    """
    settings = settings or load_settings()
    path = Path(db_path) if db_path else settings.db_path
    logger.debug("Opening state database %s", path)
    try:
        store = DuckDBKeyValueStore(path)
    except StorageError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    return TradingEngine.create(
        store,
        default_balance=settings.initial_balance,
        state_key=settings.state_key,
        evaluation_interval_seconds=settings.evaluation_interval_seconds,
    )


def report(result: CommandResult, success: str) -> None:
    """Print a command result, exiting with code 1 on failure."""
    if not result.ok:
        console.print(f"[red]Rejected:[/red] {result.error}")
        raise typer.Exit(code=1)
    console.print(f"[green]{success}[/green]")


def fmt_money(value: Decimal | None) -> str:
    if value is None:
        return "-"
    return f"{value:,.2f}"


def fmt_cash(value: Decimal | None, currency: Optional[str] = None) -> str:
    """Format a cash amount with the simulation currency (from settings if None)."""
    if currency is None:
        currency = load_settings().currency
    return f"{fmt_money(value)} {currency}"


def fmt_qty(value: Decimal | None) -> str:
    if value is None:
        return "-"
    return format(value.normalize(), "f")


def build_sources(
    settings: SimulatorSettings, seed: Optional[int] = None
) -> list[PriceSource]:
    """Create the price sources selected by settings.price_source.

    Args:
        settings: Simulator settings.
        seed: Synthetic seed override (settings.random_seed if None).

    Returns:
        Sources to register on the engine's feed (empty for "none").
    """
    if settings.price_source == "none":
        return []
    if settings.price_source == "yahoo":
        symbols = {
            symbol: settings.asset_class(symbol) for symbol in settings.symbols
        }
        return [
            YahooQuoteSource(symbols, interval_seconds=settings.live_interval_seconds)
        ]
    return [
        SyntheticPriceSource(
            interval_seconds=settings.synthetic_interval_seconds,
            seed=seed if seed is not None else settings.random_seed,
        )
    ]
