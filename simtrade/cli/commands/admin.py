"""Administrative commands: reset, balance adjustments and price overrides."""

from typing import Optional

import typer

from simtrade.cli.session import console, fmt_cash, fmt_money, open_engine, report

DB_OPTION = typer.Option(
    None, "--database", "-d", help="Path to the simulator state database."
)


def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation."),
    db_path: Optional[str] = DB_OPTION,
) -> None:
    """Reset the account: fresh balance, no holdings, orders, trades or alerts."""
    if not yes and not typer.confirm("Erase all simulation state?"):
        console.print("[yellow]Reset aborted.[/yellow]")
        raise typer.Exit(code=1)
    engine = open_engine(db_path)
    report(engine.reset_all(), "Simulation reset")
    console.print(f"Cash balance: {fmt_cash(engine.cash_balance)}")


def balance(
    delta: str = typer.Argument(..., help="Amount to add; negative to remove."),
    db_path: Optional[str] = DB_OPTION,
) -> None:
    """Adjust the cash balance. The balance never drops below zero.

    Example:
        simtrade balance 5000
        simtrade balance -- -2500
    """
    engine = open_engine(db_path)
    report(engine.modify_balance(delta), "Balance updated")
    console.print(f"Cash balance: {fmt_cash(engine.cash_balance)}")


def price(
    symbol: str = typer.Argument(..., help="Symbol to set."),
    value: str = typer.Argument(..., help="Price to force."),
    db_path: Optional[str] = DB_OPTION,
) -> None:
    """Force a price and evaluate pending orders and alerts against it.

    Example:
        simtrade price BTC 56000
    """
    engine = open_engine(db_path)
    trades_before = len(engine.recorder)
    fired_before = {a.alert_id for a in engine.alerts.get_alerts() if not a.is_active}

    report(engine.override_price(symbol.upper(), value), f"{symbol.upper()} = {value}")

    for trade in engine.recorder.get_trades()[trades_before:]:
        console.print(
            f"Filled: {trade.side.value.upper()} {trade.quantity} {trade.symbol} "
            f"@ {fmt_money(trade.price)}"
        )
    for alert in engine.alerts.get_alerts():
        if not alert.is_active and alert.alert_id not in fired_before:
            console.print(
                f"[yellow]Alert:[/yellow] {alert.symbol} {alert.condition.value} "
                f"{fmt_money(alert.target_price)}"
            )
