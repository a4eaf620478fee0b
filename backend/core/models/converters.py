"""Converters between live candles and their checkpoint representation.

Live models use:
- @dataclass(slots=True) Candle mutated in place on every tick

Checkpoint models use:
- frozen Pydantic models validated on restore
- plain JSON-compatible dicts (Decimal as str, datetime as ISO-8601)
"""

from typing import Any

from core.models.candle import Candle, CandleState, WindowState


# =============================================================================
# Candle conversions
# =============================================================================

def candle_to_state(candle: Candle) -> CandleState:
    """Convert a live Candle to its checkpoint model."""
    return CandleState(
        high=candle.high,
        low=candle.low,
        bucket_start=candle.bucket_start,
    )


def state_to_candle(state: CandleState) -> Candle:
    """Convert a checkpoint model back to a live Candle."""
    return Candle(
        high=state.high,
        low=state.low,
        bucket_start=state.bucket_start,
    )


# =============================================================================
# Window conversions
# =============================================================================

def window_state_to_blob(state: WindowState) -> dict[str, Any]:
    """Dump a window checkpoint to a plain, JSON-compatible dict."""
    return state.model_dump(mode="json")


def blob_to_window_state(blob: Any) -> WindowState:
    """Validate a plain dict (or WindowState) into a window checkpoint.

    Raises:
        pydantic.ValidationError: If the blob is malformed.
    """
    if isinstance(blob, WindowState):
        return blob
    return WindowState.model_validate(blob)
