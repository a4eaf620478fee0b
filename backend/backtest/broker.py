"""Paper broker for backtesting.

Fills market orders immediately at the last seen quote: buys at the ask,
sells at the bid. Trailing stops are recorded but not simulated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from core.models import OrderReceipt, OrderSide, OrderType, Quote, Tick
from core.strategy import OrderError

logger = logging.getLogger(__name__)


@dataclass
class PaperFill:
    """A simulated market order fill."""

    order_id: str
    instrument: str
    side: OrderSide
    units: int
    price: Decimal
    time: datetime
    trailing_stop_pips: int | None = None


class PaperBroker:
    """In-memory Broker implementation."""

    def __init__(self):
        self._quotes: dict[str, Quote] = {}
        self._time: datetime | None = None
        self.fills: list[PaperFill] = []

    def mark(self, tick: Tick) -> None:
        """Record the latest quotes so orders fill at current prices."""
        self._quotes.update(tick.prices)
        self._time = tick.timestamp

    async def place_order(
        self,
        instrument: str,
        units: int,
        side: OrderSide,
        order_type: OrderType = OrderType.MARKET,
        trailing_stop_pips: int | None = None,
    ) -> OrderReceipt:
        if order_type != OrderType.MARKET:
            raise OrderError(f"Unsupported order type: {order_type.value}")

        quote = self._quotes.get(instrument)
        if quote is None or self._time is None:
            raise OrderError(f"No quote for {instrument}")

        price = quote.ask if side == OrderSide.BUY else quote.bid
        fill = PaperFill(
            order_id=f"paper-{len(self.fills) + 1}",
            instrument=instrument,
            side=side,
            units=units,
            price=price,
            time=self._time,
            trailing_stop_pips=trailing_stop_pips,
        )
        self.fills.append(fill)
        logger.debug(f"Paper fill {fill.order_id}: {side.value} {units} {instrument} @ {price}")

        return OrderReceipt(
            order_id=fill.order_id,
            message=f"Paper {side.value} {units} {instrument} @ {price}",
        )
