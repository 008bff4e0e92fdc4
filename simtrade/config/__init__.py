"""Configuration and logging for SimTrade."""
