"""Order commands: market buy/sell, limit, stop and cancel."""

from typing import Optional

import typer

from simtrade.cli.session import (
    console,
    fmt_cash,
    fmt_money,
    fmt_qty,
    open_engine,
    report,
)
from simtrade.models import OrderSide

DB_OPTION = typer.Option(
    None, "--database", "-d", help="Path to the simulator state database."
)


def _market(
    side: OrderSide,
    symbol: str,
    quantity: str,
    price: str,
    db_path: Optional[str],
) -> None:
    engine = open_engine(db_path)
    result = engine.place_market_order(symbol.upper(), side, quantity, price)
    trade = result.trade
    summary = (
        f"{side.value.upper()} {fmt_qty(trade.quantity)} {trade.symbol} "
        f"@ {fmt_money(trade.price)} (total {fmt_money(trade.total_value)})"
        if trade
        else ""
    )
    report(result, summary)
    console.print(f"Cash balance: {fmt_cash(engine.cash_balance)}")


def buy(
    symbol: str = typer.Argument(..., help="Symbol to buy, e.g. BTC."),
    quantity: str = typer.Argument(..., help="Quantity to buy."),
    price: str = typer.Option(..., "--price", "-p", help="Current market price."),
    db_path: Optional[str] = DB_OPTION,
) -> None:
    """Place a market buy order at the given current price.

    Example:
        simtrade buy BTC 0.5 --price 64000
    """
    _market(OrderSide.BUY, symbol, quantity, price, db_path)


def sell(
    symbol: str = typer.Argument(..., help="Symbol to sell, e.g. BTC."),
    quantity: str = typer.Argument(..., help="Quantity to sell."),
    price: str = typer.Option(..., "--price", "-p", help="Current market price."),
    db_path: Optional[str] = DB_OPTION,
) -> None:
    """Place a market sell order at the given current price.

    Example:
        simtrade sell BTC 0.5 --price 66000
    """
    _market(OrderSide.SELL, symbol, quantity, price, db_path)


def limit(
    side: OrderSide = typer.Argument(..., help="buy or sell."),
    symbol: str = typer.Argument(..., help="Symbol to trade."),
    quantity: str = typer.Argument(..., help="Quantity to trade."),
    limit_price: str = typer.Argument(..., help="Limit price."),
    db_path: Optional[str] = DB_OPTION,
) -> None:
    """Place a pending limit order.

    Buy limits fill when the price drops to the limit, sell limits when it
    rises to the limit; both fill at exactly the limit price.

    Example:
        simtrade limit sell BTC 1 55000
    """
    engine = open_engine(db_path)
    result = engine.place_limit_order(symbol.upper(), side, quantity, limit_price)
    order_id = result.order.order_id if result.order else ""
    report(result, f"Limit order placed: {order_id}")


def stop(
    side: OrderSide = typer.Argument(..., help="buy or sell."),
    symbol: str = typer.Argument(..., help="Symbol to trade."),
    quantity: str = typer.Argument(..., help="Quantity to trade."),
    stop_price: str = typer.Argument(..., help="Trigger price."),
    limit_price: Optional[str] = typer.Option(
        None, "--limit", "-l", help="Execution price once triggered."
    ),
    db_path: Optional[str] = DB_OPTION,
) -> None:
    """Place a pending stop order.

    Sell stops trigger when the price falls to the stop, buy stops when it
    rises to the stop. They execute at --limit if given, else at the
    triggering price.

    Example:
        simtrade stop sell BTC 1 60000 --limit 59500
    """
    engine = open_engine(db_path)
    result = engine.place_stop_order(
        symbol.upper(), side, quantity, stop_price, limit_price
    )
    order_id = result.order.order_id if result.order else ""
    report(result, f"Stop order placed: {order_id}")


def cancel(
    order_id: str = typer.Argument(..., help="Order id to cancel."),
    db_path: Optional[str] = DB_OPTION,
) -> None:
    """Cancel a pending order."""
    engine = open_engine(db_path)
    result = engine.cancel_order(order_id)
    status = result.order.status.value if result.order else ""
    report(result, f"Order {order_id} is {status}")
