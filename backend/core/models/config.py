"""Agent configuration models."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.models.instruments import resolve_pip_size


class RangeBreakConfig(BaseModel):
    """Range break agent configuration.

    Invalid values fail validation; there is no silent fallback.
    The pip size is looked up from the instrument registry unless given.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="RangeBreakAgent", min_length=1)
    instrument: str = Field(min_length=1)

    # Period over which the range is judged (minutes)
    lookback_minutes: int = Field(default=60 * 8, gt=0)
    # Width (pips) below which the market counts as ranging
    range_pips: Decimal = Field(default=Decimal("100"), gt=0)
    # Trailing stop distance for executed orders (pips)
    trailing_stop_pips: int = Field(default=30, gt=0)
    trade_units: int = Field(default=1, gt=0)

    pip_size: Decimal | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _resolve_pip(self):
        if self.pip_size is None:
            try:
                pip = resolve_pip_size(self.instrument)
            except KeyError as e:
                raise ValueError(
                    f"pip_size is required for unregistered instrument '{self.instrument}'"
                ) from e
            object.__setattr__(self, "pip_size", pip)
        return self

    @property
    def lookback_period(self) -> timedelta:
        return timedelta(minutes=self.lookback_minutes)


class PropertyInfo(BaseModel):
    """Describes one configurable agent property (for UIs)."""

    id: str
    name: str
    default: str | int | None = None


RANGE_BREAK_PROPERTIES: list[PropertyInfo] = [
    PropertyInfo(id="instrument", name="Target instrument", default="USDJPY"),
    PropertyInfo(id="lookback_minutes", name="Range detection period (minutes)", default=60 * 8),
    PropertyInfo(id="range_pips", name="Range width treated as ranging (pips)", default=100),
    PropertyInfo(id="trailing_stop_pips", name="Trailing stop distance (pips)", default=30),
    PropertyInfo(id="trade_units", name="Trade units", default=1),
]
