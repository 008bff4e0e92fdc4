"""Market simulation commands.

``simulate`` advances a seeded synthetic market a fixed number of ticks and
reports what filled; ``run`` drives the configured price source in real
time until interrupted.
"""

import logging
import time
from typing import Optional

import typer
from rich.table import Table

from simtrade.cli.session import (
    build_sources,
    console,
    fmt_cash,
    fmt_money,
    fmt_qty,
    open_engine,
    report,
)
from simtrade.config.settings import load_settings
from simtrade.engine.engine import TradingEngine
from simtrade.feeds.synthetic import SyntheticPriceSource
from simtrade.models import EngineState, Trade

logger = logging.getLogger(__name__)


def _print_trades(trades: list[Trade]) -> None:
    if not trades:
        console.print("[dim]No orders filled.[/dim]")
        return
    table = Table(title="Fills", show_header=True, header_style="bold cyan")
    table.add_column("Symbol", style="bold")
    table.add_column("Side")
    table.add_column("Qty", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Realized P&L", justify="right")
    for trade in trades:
        table.add_row(
            trade.symbol,
            trade.side.value,
            fmt_qty(trade.quantity),
            fmt_money(trade.price),
            fmt_money(trade.realized_pnl),
        )
    console.print(table)


def _print_prices(engine: TradingEngine) -> None:
    table = Table(title="Prices", show_header=True, header_style="bold cyan")
    table.add_column("Symbol", style="bold")
    table.add_column("Price", justify="right")
    for symbol, value in sorted(engine.prices.prices.items()):
        table.add_row(symbol, fmt_money(value))
    console.print(table)


def simulate(
    ticks: int = typer.Option(50, "--ticks", "-t", min=1, help="Ticks to generate."),
    seed: Optional[int] = typer.Option(
        None, "--seed", "-s", help="Random seed for a reproducible run."
    ),
    volatility: Optional[float] = typer.Option(
        None,
        "--volatility",
        help="Apply a volatility shock of this multiplier after the first tick.",
    ),
    crash: bool = typer.Option(
        False, "--crash", help="Apply a market crash after the first tick."
    ),
    db_path: Optional[str] = typer.Option(
        None, "--database", "-d", help="Path to the simulator state database."
    ),
) -> None:
    """Run the synthetic market for a number of ticks.

    Pending orders and alerts are evaluated after every tick; fills are
    saved to the state database.

    Example:
        simtrade simulate --ticks 200 --seed 42 --crash
    """
    settings = load_settings()
    engine = open_engine(db_path, settings)
    engine.feed.add_source(
        SyntheticPriceSource(
            seed=seed if seed is not None else settings.random_seed,
        )
    )
    trades_before = len(engine.recorder)
    alerts_before = len(engine.alerts.active_alerts())

    for tick in range(ticks):
        engine.feed.poll_sources()
        if tick == 0 and volatility is not None:
            report(engine.apply_volatility(volatility), "Volatility shock applied")
        if tick == 0 and crash:
            report(engine.apply_market_crash(), "Market crash applied")

    logger.info("Simulated %d ticks", ticks)
    _print_prices(engine)
    _print_trades(engine.recorder.get_trades()[trades_before:])
    fired = alerts_before - len(engine.alerts.active_alerts())
    if fired:
        console.print(f"[yellow]{fired} alert(s) triggered.[/yellow]")
    console.print(f"Cash balance: {fmt_cash(engine.cash_balance, settings.currency)}")


def run(
    duration: Optional[float] = typer.Option(
        None, "--duration", help="Seconds to run (until Ctrl-C if omitted)."
    ),
    db_path: Optional[str] = typer.Option(
        None, "--database", "-d", help="Path to the simulator state database."
    ),
) -> None:
    """Drive the configured price source in real time.

    The source is chosen by SIMTRADE_PRICE_SOURCE (synthetic or yahoo).

    Example:
        SIMTRADE_PRICE_SOURCE=yahoo simtrade run --duration 60
    """
    settings = load_settings()
    engine = open_engine(db_path, settings)
    sources = build_sources(settings)
    if not sources:
        console.print("[red]Error:[/red] No price source configured.")
        raise typer.Exit(code=1)
    for source in sources:
        engine.feed.add_source(source)

    seen = len(engine.recorder)

    def on_change(state: EngineState) -> None:
        nonlocal seen
        for trade in state.trades[seen:]:
            console.print(
                f"[green]Filled:[/green] {trade.side.value.upper()} "
                f"{fmt_qty(trade.quantity)} {trade.symbol} @ {fmt_money(trade.price)}"
            )
        seen = len(state.trades)

    engine.subscribe(on_change)
    console.print(
        f"Running with {settings.price_source} prices, press Ctrl-C to stop."
    )
    engine.start()
    deadline = time.monotonic() + duration if duration else None
    try:
        while deadline is None or time.monotonic() < deadline:
            time.sleep(0.5)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping.[/yellow]")
    finally:
        engine.close()
    _print_prices(engine)
    console.print(f"Cash balance: {fmt_cash(engine.cash_balance, settings.currency)}")
