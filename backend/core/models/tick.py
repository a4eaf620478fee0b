"""Tick (price update) data models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.models.candle import ensure_utc


class Quote(BaseModel):
    """Best bid/ask for one instrument."""

    model_config = ConfigDict(frozen=True)

    bid: Decimal
    ask: Decimal


class Tick(BaseModel):
    """One timestamped price update, possibly covering several instruments."""

    model_config = ConfigDict(frozen=True)

    prices: dict[str, Quote] = Field(default_factory=dict)
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # Naive timestamps from CSV replays are UTC
        return ensure_utc(value)

    def __getitem__(self, instrument: str) -> Quote:
        return self.prices[instrument]

    def get(self, instrument: str) -> Quote | None:
        """Get the quote for an instrument, or None if this tick has none."""
        return self.prices.get(instrument)
