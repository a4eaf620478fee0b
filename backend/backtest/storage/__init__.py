"""Backtest storage layer, independent of app/storage.

Reads recorded quotes from CSV files.
"""

from backtest.storage.tick_source import CsvTickSource, TickSource, parse_timestamp

__all__ = [
    "CsvTickSource",
    "TickSource",
    "parse_timestamp",
]
