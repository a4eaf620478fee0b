"""Instrument metadata (pip sizes)."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class Instrument(BaseModel):
    """A tradable instrument and its pip size."""

    model_config = ConfigDict(frozen=True)

    name: str
    pip: Decimal


# Known instruments. JPY crosses quote to 2 decimals, other FX majors to 4.
INSTRUMENTS: dict[str, Instrument] = {
    i.name: i
    for i in [
        Instrument(name="USDJPY", pip=Decimal("0.01")),
        Instrument(name="EURJPY", pip=Decimal("0.01")),
        Instrument(name="GBPJPY", pip=Decimal("0.01")),
        Instrument(name="AUDJPY", pip=Decimal("0.01")),
        Instrument(name="EURUSD", pip=Decimal("0.0001")),
        Instrument(name="GBPUSD", pip=Decimal("0.0001")),
        Instrument(name="AUDUSD", pip=Decimal("0.0001")),
        Instrument(name="NZDUSD", pip=Decimal("0.0001")),
        Instrument(name="USDCHF", pip=Decimal("0.0001")),
        Instrument(name="USDCAD", pip=Decimal("0.0001")),
        Instrument(name="EURGBP", pip=Decimal("0.0001")),
        Instrument(name="BTCUSDT", pip=Decimal("0.1")),
        Instrument(name="ETHUSDT", pip=Decimal("0.01")),
        Instrument(name="SOLUSDT", pip=Decimal("0.001")),
        Instrument(name="BNBUSDT", pip=Decimal("0.01")),
        Instrument(name="XRPUSDT", pip=Decimal("0.0001")),
    ]
}


def resolve_pip_size(name: str) -> Decimal:
    """Get the pip size of a known instrument.

    Raises:
        KeyError: If the instrument is not registered.
    """
    instrument = INSTRUMENTS.get(name)
    if instrument is None:
        available = ", ".join(sorted(INSTRUMENTS)) or "(none)"
        raise KeyError(f"Unknown instrument '{name}'. Available: {available}")
    return instrument.pip
