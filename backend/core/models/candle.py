"""Candle and candle-window checkpoint models.

The live candle is a slotted dataclass (mutated on every tick); the
checkpoint models are Pydantic so they validate on restore and dump
to plain JSON-compatible dicts.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# Fixed bucket width for range candles
BUCKET_SECONDS = 5 * 60
BUCKET_WIDTH = timedelta(seconds=BUCKET_SECONDS)


def ensure_utc(value: datetime) -> datetime:
    """Return a timezone-aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_time(value: datetime) -> datetime:
    """Floor a timestamp to the start of its 5-minute bucket."""
    epoch = int(ensure_utc(value).timestamp())
    return datetime.fromtimestamp((epoch // BUCKET_SECONDS) * BUCKET_SECONDS, tz=timezone.utc)


@dataclass(slots=True)
class Candle:
    """High/low aggregate of one 5-minute bucket."""

    high: Decimal
    low: Decimal
    bucket_start: datetime

    @classmethod
    def open(cls, price: Decimal, bucket_start: datetime) -> "Candle":
        """Create a candle seeded with its first tick."""
        return cls(high=price, low=price, bucket_start=bucket_start)

    def update(self, price: Decimal) -> None:
        """Widen the candle to include a price."""
        if price > self.high:
            self.high = price
        if price < self.low:
            self.low = price


class CandleState(BaseModel):
    """Serialized form of a Candle."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    high: Decimal
    low: Decimal
    bucket_start: datetime

    @field_validator("bucket_start")
    @classmethod
    def _bucket_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check(self):
        if not self.high.is_finite() or not self.low.is_finite():
            raise ValueError("candle prices must be finite")
        if self.low > self.high:
            raise ValueError(f"candle low {self.low} is above high {self.high}")
        if self.bucket_start != normalize_time(self.bucket_start):
            raise ValueError(
                f"bucket_start {self.bucket_start.isoformat()} is not on a bucket boundary"
            )
        return self


class WindowState(BaseModel):
    """Checkpoint of a CandleWindow: candles plus the next bucket boundary.

    Both keys are required. An empty window is stored explicitly as
    ``{"candles": [], "next_boundary": null}``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    candles: list[CandleState]
    next_boundary: datetime | None

    @field_validator("next_boundary")
    @classmethod
    def _boundary_utc(cls, value: datetime | None) -> datetime | None:
        return None if value is None else ensure_utc(value)

    @model_validator(mode="after")
    def _check(self):
        starts = [c.bucket_start for c in self.candles]
        if any(later <= earlier for earlier, later in zip(starts, starts[1:])):
            raise ValueError("candles must have strictly ascending bucket_start values")
        if not self.candles:
            if self.next_boundary is not None:
                raise ValueError("next_boundary must be null when there are no candles")
            return self
        expected = starts[-1] + BUCKET_WIDTH
        if self.next_boundary != expected:
            raise ValueError(
                f"next_boundary {self.next_boundary} does not follow the last candle "
                f"(expected {expected.isoformat()})"
            )
        return self
