"""Tick data source for backtesting.

Reads recorded quotes from a CSV file with a header row:

    timestamp,symbol,bid,ask
    2024-01-01T00:00:00Z,USDJPY,141.020,141.035
    1704067205,USDJPY,141.021,141.036

Timestamps are ISO-8601 (naive means UTC) or epoch seconds. Rows must be in
ascending time order. No app/ dependency.
"""

from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Iterator, Protocol

from core.models import Quote, Tick
from core.models.candle import ensure_utc

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("timestamp", "symbol", "bid", "ask")


class TickSource(Protocol):
    """Protocol for tick data access."""

    def __iter__(self) -> Iterator[Tick]: ...


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 or epoch-seconds timestamp into an aware UTC datetime."""
    value = value.strip()
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    except ValueError:
        pass
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(value))


class CsvTickSource:
    """Stream ticks from a CSV file.

    Each row becomes a single-instrument Tick. Iterating twice re-reads the
    file.

    Raises (while iterating):
        ValueError: On a missing column, an unparseable row or a timestamp
            earlier than the previous row's
    """

    def __init__(self, path: str | Path, symbol: str | None = None):
        self.path = Path(path)
        self.symbol = symbol

    def __iter__(self) -> Iterator[Tick]:
        last: datetime | None = None
        skipped = 0

        with open(self.path, newline="") as f:
            reader = csv.DictReader(f)
            missing = [c for c in REQUIRED_COLUMNS if c not in (reader.fieldnames or [])]
            if missing:
                raise ValueError(f"{self.path}: missing columns {missing}")

            for line, row in enumerate(reader, start=2):
                if self.symbol and row["symbol"] != self.symbol:
                    skipped += 1
                    continue
                try:
                    timestamp = parse_timestamp(row["timestamp"])
                    quote = Quote(bid=Decimal(row["bid"]), ask=Decimal(row["ask"]))
                except (ValueError, InvalidOperation) as e:
                    raise ValueError(f"{self.path}:{line}: invalid row: {e}") from e

                if last is not None and timestamp < last:
                    raise ValueError(
                        f"{self.path}:{line}: timestamp {timestamp.isoformat()} "
                        f"is before {last.isoformat()}"
                    )
                last = timestamp
                yield Tick(prices={row["symbol"]: quote}, timestamp=timestamp)

        if skipped:
            logger.debug(f"Skipped {skipped} rows for other symbols in {self.path}")
