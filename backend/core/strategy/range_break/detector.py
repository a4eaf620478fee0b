"""Range breakout classification.

A market is "ranging" when the candle window spans at least the lookback
period and its high-low spread is narrower than the range threshold. A
tick then breaks out when it lands at least half a threshold away from
the range center. After a breakout the window is reset so the next range
is built from scratch, starting with the breakout tick itself.
"""

import logging
from datetime import datetime
from decimal import Decimal

from core.candle_window import CandleWindow
from core.models import (
    BreakState,
    ClassificationResult,
    RangeBreakConfig,
    WindowState,
    ensure_utc,
)

logger = logging.getLogger(__name__)


class RangeBreakoutDetector:
    """Classify ticks against the range held in a CandleWindow."""

    def __init__(self, range_pips: Decimal, pip_size: Decimal, window: CandleWindow):
        """
        Args:
            range_pips: Spread (pips) below which the market counts as ranging
            pip_size: Price value of one pip
            window: Candle window owned by this detector
        """
        self.range_pips = range_pips
        self.pip_size = pip_size
        self._window = window

    @classmethod
    def from_config(cls, config: RangeBreakConfig) -> "RangeBreakoutDetector":
        return cls(
            range_pips=config.range_pips,
            pip_size=config.pip_size,
            window=CandleWindow(config.lookback_period),
        )

    @property
    def window(self) -> CandleWindow:
        return self._window

    def classify(self, price: Decimal, time: datetime) -> ClassificationResult:
        """Classify a tick, then fold it into the window.

        The window is reset before the tick is added when the tick breaks
        out, so the breakout tick seeds the next range.
        """
        time = ensure_utc(time)
        state = self._check_state(price, time)
        if state != BreakState.NO_SIGNAL:
            logger.debug(f"Range break {state.value} at {price} ({time.isoformat()}), resetting window")
            self._window.reset()
        self._window.update(price, time)
        return ClassificationResult(state=state, price=price, time=time)

    def _check_state(self, price: Decimal, time: datetime) -> BreakState:
        highest = self._window.highest()
        lowest = self._window.lowest()
        if highest is None or lowest is None:
            return BreakState.NO_SIGNAL
        if not self._has_full_period(time):
            return BreakState.NO_SIGNAL

        diff = highest - lowest
        if diff >= self.range_pips * self.pip_size:
            # Too wide to be a range
            return BreakState.NO_SIGNAL

        center = highest - diff / 2
        band = (self.range_pips / 2) * self.pip_size
        if price >= center + band:
            return BreakState.BREAK_HIGH
        if price <= center - band:
            return BreakState.BREAK_LOW
        return BreakState.NO_SIGNAL

    def _has_full_period(self, time: datetime) -> bool:
        oldest = self._window.oldest_bucket_start()
        if oldest is None:
            return False
        return time - oldest >= self._window.lookback_period

    # ------------------------------------------------------------------
    # Checkpointing
    # ------------------------------------------------------------------

    def state(self) -> WindowState:
        return self._window.state()

    def restore_state(self, state: WindowState | dict) -> None:
        self._window.restore(state)
