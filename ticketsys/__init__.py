"""Betting ticket service: stores accumulator and system tickets in SQLite and computes their combinations and payouts."""

__version__ = "0.1.0"

__all__ = ["__version__"]