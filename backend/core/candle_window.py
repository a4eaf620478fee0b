"""Rolling window of 5-minute candles built from ticks.

Candles are aligned to 5-minute bucket boundaries. A tick opens a new
candle when there is no current candle or its bucket start is past the
window's next boundary; otherwise it widens the current (last) candle.
Opening a candle evicts every candle older than the lookback period,
measured from the new candle's bucket start.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal

from pydantic import ValidationError

from core.models.candle import BUCKET_WIDTH, Candle, WindowState, normalize_time
from core.models.converters import (
    blob_to_window_state,
    candle_to_state,
    state_to_candle,
)

logger = logging.getLogger(__name__)


class StateRestoreError(ValueError):
    """A checkpoint could not be restored."""


class CandleWindow:
    """Candles covering a rolling lookback period.

    The candle list is private; callers use the read-only queries
    (highest, lowest, oldest_bucket_start) and the explicit mutators
    (update, reset, restore).

    Usage:
        window = CandleWindow(lookback_period=timedelta(hours=8))
        window.update(Decimal("110.25"), tick_time)
        window.highest()
    """

    def __init__(self, lookback_period: timedelta):
        if lookback_period <= timedelta(0):
            raise ValueError(f"lookback_period must be positive, got {lookback_period}")
        self._lookback = lookback_period
        self._candles: list[Candle] = []
        self._next_boundary: datetime | None = None

    @property
    def lookback_period(self) -> timedelta:
        return self._lookback

    @property
    def next_boundary(self) -> datetime | None:
        """Bucket start above which the next tick opens a new candle."""
        return self._next_boundary

    def update(self, price: Decimal, time: datetime) -> None:
        """Fold a tick into the window."""
        bucket_start = normalize_time(time)
        if self._next_boundary is None or not self._candles or bucket_start > self._next_boundary:
            self._open_candle(price, bucket_start)
        else:
            self._candles[-1].update(price)

    def _open_candle(self, price: Decimal, bucket_start: datetime) -> None:
        limit = bucket_start - self._lookback
        kept = [c for c in self._candles if c.bucket_start >= limit]
        evicted = len(self._candles) - len(kept)
        if evicted:
            logger.debug(f"Evicted {evicted} candles older than {limit.isoformat()}")

        kept.append(Candle.open(price, bucket_start))
        self._candles = kept
        self._next_boundary = bucket_start + BUCKET_WIDTH

    def highest(self) -> Decimal | None:
        """Highest high across retained candles, or None if empty."""
        if not self._candles:
            return None
        return max(c.high for c in self._candles)

    def lowest(self) -> Decimal | None:
        """Lowest low across retained candles, or None if empty."""
        if not self._candles:
            return None
        return min(c.low for c in self._candles)

    def oldest_bucket_start(self) -> datetime | None:
        """Earliest bucket start among retained candles, or None if empty."""
        if not self._candles:
            return None
        return min(c.bucket_start for c in self._candles)

    def reset(self) -> None:
        """Discard all candles; the range must be rebuilt from scratch."""
        self._candles = []
        self._next_boundary = None

    # ------------------------------------------------------------------
    # Checkpointing
    # ------------------------------------------------------------------

    def state(self) -> WindowState:
        """Snapshot the window as a checkpoint model."""
        return WindowState(
            candles=[candle_to_state(c) for c in self._candles],
            next_boundary=self._next_boundary,
        )

    def restore(self, state: WindowState | dict) -> None:
        """Replace the window contents with a checkpoint.

        The checkpoint is fully validated before anything is replaced,
        including that every candle lies within this window's lookback.

        Raises:
            StateRestoreError: If the checkpoint is malformed.
        """
        try:
            validated = blob_to_window_state(state)
        except ValidationError as e:
            raise StateRestoreError(f"Malformed candle window checkpoint: {e}") from e

        if validated.candles:
            limit = validated.candles[-1].bucket_start - self._lookback
            stale = [c for c in validated.candles if c.bucket_start < limit]
            if stale:
                raise StateRestoreError(
                    f"Checkpoint holds {len(stale)} candles older than the lookback "
                    f"period ({limit.isoformat()})"
                )

        self._candles = [state_to_candle(c) for c in validated.candles]
        self._next_boundary = validated.next_boundary
        logger.info(
            f"Restored candle window: {len(self._candles)} candles, "
            f"next boundary {self._next_boundary.isoformat() if self._next_boundary else None}"
        )

    def __len__(self) -> int:
        return len(self._candles)
