"""Status commands: account overview, orders and trade history.

Prices are not persisted between runs, so positions are valued at their
average cost unless prices are supplied with --mark SYMBOL=PRICE.
"""

import json
from decimal import Decimal
from typing import Optional

import typer
from rich.panel import Panel
from rich.table import Table

from simtrade.cli.session import console, fmt_cash, fmt_money, fmt_qty, open_engine
from simtrade.config.settings import load_settings
from simtrade.models import OrderStatus, PortfolioSummary, to_decimal


def _parse_marks(marks: list[str]) -> dict[str, Decimal]:
    prices: dict[str, Decimal] = {}
    for mark in marks:
        symbol, sep, price = mark.partition("=")
        if not sep or not symbol:
            console.print(f"[red]Error:[/red] Invalid mark '{mark}', use SYMBOL=PRICE")
            raise typer.Exit(code=1)
        value = to_decimal(price)
        if value is None or value <= 0:
            console.print(
                f"[red]Error:[/red] Invalid price in --mark '{mark}', must be > 0"
            )
            raise typer.Exit(code=1)
        prices[symbol.upper()] = value
    return prices


def status(
    db_path: Optional[str] = typer.Option(
        None, "--database", "-d", help="Path to the simulator state database."
    ),
    marks: list[str] = typer.Option(
        [], "--mark", "-m", help="Price to value a symbol at, as SYMBOL=PRICE."
    ),
    output_format: str = typer.Option(
        "rich", "--format", "-f", help="Output format: 'rich' (default) or 'json'."
    ),
) -> None:
    """Display account status: cash, positions and unrealized P&L.

    Example:
        simtrade status
        simtrade status --mark BTC=66000 --format json
    """
    prices = _parse_marks(marks)

    settings = load_settings()
    engine = open_engine(db_path, settings)
    summary = engine.ledger.valuate(prices)
    pending = engine.order_book.pending_orders()
    active_alerts = engine.alerts.active_alerts()

    if output_format == "json":
        payload = {
            "summary": summary.model_dump(mode="json"),
            "currency": settings.currency,
            "pending_orders": len(pending),
            "active_alerts": len(active_alerts),
            "realized_pnl": str(engine.recorder.realized_pnl()),
        }
        console.print(json.dumps(payload, indent=2))
        return

    _display_rich_status(
        summary, len(pending), len(active_alerts), settings.currency
    )


def _display_rich_status(
    summary: PortfolioSummary, pending: int, active_alerts: int, currency: str
) -> None:
    console.print(
        Panel(
            f"[bold]Cash:[/bold] {fmt_cash(summary.cash_balance, currency)}\n"
            f"[bold]Positions:[/bold] {fmt_money(summary.positions_value)}\n"
            f"[bold]Total equity:[/bold] {fmt_cash(summary.total_equity, currency)}\n"
            f"[bold]Unrealized P&L:[/bold] {fmt_money(summary.unrealized_pnl)}\n"
            f"Pending orders: {pending}   Active alerts: {active_alerts}",
            title="Account",
            border_style="blue",
        )
    )

    if not summary.positions:
        console.print("[dim]No open positions.[/dim]")
        return

    table = Table(title="Positions", show_header=True, header_style="bold cyan")
    table.add_column("Symbol", style="bold")
    table.add_column("Quantity", justify="right")
    table.add_column("Avg Cost", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("P&L %", justify="right")

    for position in summary.positions:
        color = "green" if position.unrealized_pnl >= 0 else "red"
        table.add_row(
            position.symbol,
            fmt_qty(position.quantity),
            fmt_money(position.average_cost),
            fmt_money(position.current_price),
            fmt_money(position.market_value),
            f"[{color}]{fmt_money(position.unrealized_pnl)}[/{color}]",
            f"[{color}]{position.unrealized_pnl_pct:+.2f}%[/{color}]",
        )
    console.print(table)


def orders(
    db_path: Optional[str] = typer.Option(
        None, "--database", "-d", help="Path to the simulator state database."
    ),
    status_filter: Optional[OrderStatus] = typer.Option(
        None, "--status", "-s", help="Only show orders with this status."
    ),
) -> None:
    """List orders, oldest first."""
    engine = open_engine(db_path)
    rows = engine.order_book.get_orders(status_filter)
    if not rows:
        console.print("[dim]No orders.[/dim]")
        return

    table = Table(title="Orders", show_header=True, header_style="bold cyan")
    table.add_column("ID", overflow="fold")
    table.add_column("Created")
    table.add_column("Symbol", style="bold")
    table.add_column("Side")
    table.add_column("Type")
    table.add_column("Qty", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Stop", justify="right")
    table.add_column("Status")
    table.add_column("Fill", justify="right")

    for order in rows:
        table.add_row(
            order.order_id,
            order.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            order.symbol,
            order.side.value,
            order.order_type.value,
            fmt_qty(order.quantity),
            fmt_money(order.limit_price),
            fmt_money(order.stop_price),
            order.status.value,
            fmt_money(order.fill_price),
        )
    console.print(table)


def trades(
    db_path: Optional[str] = typer.Option(
        None, "--database", "-d", help="Path to the simulator state database."
    ),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of trades to show."),
) -> None:
    """Show recent trades, newest first."""
    engine = open_engine(db_path)
    recent = engine.recorder.recent(limit)
    if not recent:
        console.print("[dim]No trades yet.[/dim]")
        return

    table = Table(title="Trade History", show_header=True, header_style="bold cyan")
    table.add_column("Time")
    table.add_column("Symbol", style="bold")
    table.add_column("Side")
    table.add_column("Qty", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Realized P&L", justify="right")

    for trade in recent:
        side_color = "green" if trade.side.value == "buy" else "red"
        table.add_row(
            trade.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            trade.symbol,
            f"[{side_color}]{trade.side.value}[/{side_color}]",
            fmt_qty(trade.quantity),
            fmt_money(trade.price),
            fmt_money(trade.total_value),
            fmt_money(trade.realized_pnl),
        )
    console.print(table)
