"""SimTrade - paper-trading simulation engine."""

__version__ = "0.1.0"
