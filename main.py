"""Main entry point for SimTrade; equivalent to the ``simtrade`` command."""

from simtrade.cli.main import cli_main

if __name__ == "__main__":
    cli_main()
