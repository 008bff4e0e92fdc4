"""Command-line interface for the SimTrade paper-trading simulator.

Every command opens the DuckDB state file, applies one engine command and
saves the result, so a sequence of invocations behaves like one session.

Commands:
    status, orders, trades: Inspect the account
    buy, sell, limit, stop, cancel: Place and cancel orders
    alert: Manage price alerts
    price, balance, reset: Administrative overrides
    simulate, run: Drive a price source
"""

from simtrade.cli.main import app

__all__ = ["app"]
