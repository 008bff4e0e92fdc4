"""CLI commands for the SimTrade paper-trading simulator."""

from simtrade.cli.commands.admin import balance, price, reset
from simtrade.cli.commands.alerts import alert_app
from simtrade.cli.commands.simulate import run, simulate
from simtrade.cli.commands.status import orders, status, trades
from simtrade.cli.commands.trade import buy, cancel, limit, sell, stop

__all__ = [
    "alert_app",
    "balance",
    "buy",
    "cancel",
    "limit",
    "orders",
    "price",
    "reset",
    "run",
    "sell",
    "simulate",
    "status",
    "stop",
    "trades",
]
