"""Main CLI entry point for SimTrade.

This module defines the main Typer application and registers all subcommands.
It provides logging configuration options and error handling.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from simtrade.config.logging import setup_logging

app = typer.Typer(
    name="simtrade",
    help="SimTrade - single-user paper trading with simulated prices.",
    add_completion=True,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output (DEBUG level logging).",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-essential output (WARNING level logging).",
    ),
    log_file: Optional[str] = typer.Option(
        None,
        "--log-file",
        help="Path to a JSON log file.",
    ),
) -> None:
    """SimTrade paper-trading simulator.

    Trade against live or synthetic prices with a virtual cash balance:
    market, limit and stop orders, price alerts and a trade history.
    """
    if verbose and quiet:
        console.print(
            "[yellow]Warning:[/yellow] Both --verbose and --quiet specified. "
            "Using --verbose."
        )
        log_level = "DEBUG"
    elif verbose:
        log_level = "DEBUG"
    elif quiet:
        log_level = "WARNING"
    else:
        log_level = None

    setup_logging(level=log_level, log_file=Path(log_file) if log_file else None)


# Registered after the app exists
from simtrade.cli.commands import (  # noqa: E402
    alert_app,
    balance,
    buy,
    cancel,
    limit,
    orders,
    price,
    reset,
    run,
    sell,
    simulate,
    status,
    stop,
    trades,
)

app.command(name="status")(status)
app.command(name="orders")(orders)
app.command(name="trades")(trades)
app.command(name="buy")(buy)
app.command(name="sell")(sell)
app.command(name="limit")(limit)
app.command(name="stop")(stop)
app.command(name="cancel")(cancel)
app.command(name="price")(price)
app.command(name="balance")(balance)
app.command(name="reset")(reset)
app.command(name="simulate")(simulate)
app.command(name="run")(run)
app.add_typer(alert_app, name="alert")


def cli_main() -> None:
    """Entry point for the CLI application."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user.[/yellow]")
        raise typer.Exit(code=130) from None
    except Exception as e:
        logger = logging.getLogger(__name__)
        logger.exception("Unexpected error occurred")
        console.print(f"\n[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    cli_main()
