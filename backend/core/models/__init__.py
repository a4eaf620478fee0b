"""Data models shared by the live app and the backtester."""

from core.models.candle import (
    BUCKET_SECONDS,
    BUCKET_WIDTH,
    Candle,
    CandleState,
    WindowState,
    ensure_utc,
    normalize_time,
)
from core.models.config import RANGE_BREAK_PROPERTIES, PropertyInfo, RangeBreakConfig
from core.models.instruments import INSTRUMENTS, Instrument, resolve_pip_size
from core.models.signal import (
    ActionOutcome,
    BreakState,
    ClassificationResult,
    MessageType,
    Notification,
    NotificationAction,
    OrderReceipt,
    OrderSide,
    OrderType,
    Presentation,
    TradeAction,
)
from core.models.tick import Quote, Tick

__all__ = [
    # Candles
    "BUCKET_SECONDS",
    "BUCKET_WIDTH",
    "Candle",
    "CandleState",
    "WindowState",
    "ensure_utc",
    "normalize_time",
    # Configuration
    "RangeBreakConfig",
    "PropertyInfo",
    "RANGE_BREAK_PROPERTIES",
    "Instrument",
    "INSTRUMENTS",
    "resolve_pip_size",
    # Signals and actions
    "ActionOutcome",
    "BreakState",
    "ClassificationResult",
    "MessageType",
    "Notification",
    "NotificationAction",
    "OrderReceipt",
    "OrderSide",
    "OrderType",
    "Presentation",
    "TradeAction",
    # Ticks
    "Quote",
    "Tick",
]
