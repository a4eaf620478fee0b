"""Agent protocol and the host capabilities agents depend on.

This module provides:
- Agent: Runtime-checkable Protocol that hosted agents must satisfy
- Broker, Notifier, MessageSink: capabilities injected by the host
- OrderError: raised by brokers that reject or fail an order
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from core.models import (
    ActionOutcome,
    ClassificationResult,
    Notification,
    OrderReceipt,
    OrderSide,
    OrderType,
    Tick,
)


class OrderError(Exception):
    """A broker failed to place an order."""


# ---------------------------------------------------------------------------
# Host capabilities
# ---------------------------------------------------------------------------
@runtime_checkable
class Broker(Protocol):
    """Order execution capability."""

    async def place_order(
        self,
        instrument: str,
        units: int,
        side: OrderSide,
        order_type: OrderType = OrderType.MARKET,
        trailing_stop_pips: int | None = None,
    ) -> OrderReceipt | None:
        """Place an order.

        Raises:
            OrderError: If the order is rejected or cannot be sent.
        """
        ...


@runtime_checkable
class Notifier(Protocol):
    """Outbound notification channel.

    push_notification must return immediately; delivery happens elsewhere.
    """

    def push_notification(self, notification: Notification) -> None:
        ...


@runtime_checkable
class MessageSink(Protocol):
    """Outbound channel for action outcome messages."""

    def push_message(self, outcome: ActionOutcome) -> None:
        ...


# ---------------------------------------------------------------------------
# Agent Protocol
# ---------------------------------------------------------------------------
@runtime_checkable
class Agent(Protocol):
    """Protocol that hosted agents must implement.

    The host serializes on_tick calls, may run on_action concurrently
    with tick processing, and only calls restore_state at startup.
    """

    @property
    def name(self) -> str:
        """Agent name shown in notifications and outcomes."""
        ...

    @property
    def description(self) -> str:
        """Human-readable description of what the agent does."""
        ...

    def on_tick(self, tick: Tick) -> ClassificationResult | None:
        """Process one tick. Must not block on notification delivery."""
        ...

    async def on_action(self, action_id: str) -> ActionOutcome:
        """Execute a user action chosen from a notification."""
        ...

    def serialize_state(self) -> dict[str, Any]:
        """Return a JSON-compatible checkpoint of the agent state."""
        ...

    def restore_state(self, state: dict[str, Any]) -> None:
        """Replace the agent state with a checkpoint (startup only)."""
        ...
