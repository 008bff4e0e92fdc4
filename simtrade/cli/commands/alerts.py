"""Price alert commands."""

from typing import Optional

import typer
from rich.table import Table

from simtrade.cli.session import console, fmt_money, open_engine, report
from simtrade.models import AlertCondition

alert_app = typer.Typer(help="Manage price alerts.", no_args_is_help=True)


@alert_app.command("add")
def add_alert(
    symbol: str = typer.Argument(..., help="Symbol to watch."),
    target_price: str = typer.Argument(..., help="Target price."),
    condition: AlertCondition = typer.Option(
        AlertCondition.ABOVE,
        "--condition",
        "-c",
        help="Fire when the price is above or below the target.",
    ),
    db_path: Optional[str] = typer.Option(
        None, "--database", "-d", help="Path to the simulator state database."
    ),
) -> None:
    """Create a one-shot price alert.

    Example:
        simtrade alert add BTC 70000 --condition above
    """
    engine = open_engine(db_path)
    result = engine.create_alert(symbol.upper(), target_price, condition)
    alert_id = result.alert.alert_id if result.alert else ""
    report(result, f"Alert created: {alert_id}")


@alert_app.command("list")
def list_alerts(
    db_path: Optional[str] = typer.Option(
        None, "--database", "-d", help="Path to the simulator state database."
    ),
    active_only: bool = typer.Option(
        False, "--active", "-a", help="Only show alerts that have not fired."
    ),
) -> None:
    """List price alerts."""
    engine = open_engine(db_path)
    alerts = engine.alerts.active_alerts() if active_only else engine.alerts.get_alerts()
    if not alerts:
        console.print("[dim]No alerts.[/dim]")
        return

    table = Table(title="Price Alerts", show_header=True, header_style="bold cyan")
    table.add_column("ID", overflow="fold")
    table.add_column("Symbol", style="bold")
    table.add_column("Condition")
    table.add_column("Target", justify="right")
    table.add_column("State")
    table.add_column("Triggered")

    for alert in alerts:
        table.add_row(
            alert.alert_id,
            alert.symbol,
            alert.condition.value,
            fmt_money(alert.target_price),
            "[green]active[/green]" if alert.is_active else "[dim]fired[/dim]",
            alert.triggered_at.strftime("%Y-%m-%d %H:%M:%S")
            if alert.triggered_at
            else "-",
        )
    console.print(table)


@alert_app.command("delete")
def delete_alert(
    alert_id: str = typer.Argument(..., help="Alert id to delete."),
    db_path: Optional[str] = typer.Option(
        None, "--database", "-d", help="Path to the simulator state database."
    ),
) -> None:
    """Delete a price alert."""
    engine = open_engine(db_path)
    report(engine.delete_alert(alert_id), f"Alert {alert_id} deleted")
