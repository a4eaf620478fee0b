"""Classification, notification and action-outcome models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict


class BreakState(str, Enum):
    """Classification of a tick against the established range."""

    NO_SIGNAL = "no"
    BREAK_HIGH = "break_high"
    BREAK_LOW = "break_low"


class ClassificationResult(BaseModel):
    """Result of classifying one tick."""

    model_config = ConfigDict(frozen=True)

    state: BreakState
    price: Decimal
    time: datetime

    @property
    def is_break(self) -> bool:
        """Check if the tick broke out of the range."""
        return self.state != BreakState.NO_SIGNAL


class OrderSide(str, Enum):
    """Order side enum."""

    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    """Order type enum."""

    MARKET = "market"


class TradeAction(str, Enum):
    """User actions offered by a breakout notification."""

    BUY = "range_break_buy"
    SELL = "range_break_sell"

    @property
    def side(self) -> OrderSide:
        return OrderSide.BUY if self is TradeAction.BUY else OrderSide.SELL

    @property
    def label(self) -> str:
        return "Buy" if self is TradeAction.BUY else "Sell"

    @classmethod
    def for_break(cls, state: BreakState) -> "TradeAction":
        """Action to offer for a breakout: buy above the range, sell below it."""
        if state == BreakState.BREAK_HIGH:
            return cls.BUY
        if state == BreakState.BREAK_LOW:
            return cls.SELL
        raise ValueError(f"No action for state {state.value!r}")


class NotificationAction(BaseModel):
    """An actionable choice attached to a notification."""

    model_config = ConfigDict(frozen=True)

    label: str
    action_id: str


class Notification(BaseModel):
    """Outbound notification sent when a breakout is detected."""

    model_config = ConfigDict(frozen=True)

    agent: str
    message: str
    actions: list[NotificationAction] = []
    timestamp: datetime


class MessageType(str, Enum):
    """Outcome message type."""

    INFO = "info"
    ERROR = "error"


class Presentation(str, Enum):
    """How the host should present an outcome message."""

    DEFAULT = "default"
    SUPPRESS_DEFAULT = "suppress_default"  # host must not show its own error UI


class ActionOutcome(BaseModel):
    """Result of executing a user action."""

    model_config = ConfigDict(frozen=True)

    type: MessageType
    message: str
    presentation: Presentation = Presentation.DEFAULT

    @classmethod
    def info(cls, message: str) -> "ActionOutcome":
        return cls(type=MessageType.INFO, message=message)

    @classmethod
    def error(cls, message: str) -> "ActionOutcome":
        return cls(
            type=MessageType.ERROR,
            message=message,
            presentation=Presentation.SUPPRESS_DEFAULT,
        )

    @property
    def is_error(self) -> bool:
        return self.type == MessageType.ERROR


class OrderReceipt(BaseModel):
    """What a broker returns for an accepted order."""

    order_id: str | None = None
    message: str | None = None
