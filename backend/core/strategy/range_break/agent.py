"""Range break agent.

Watches one instrument's bid, notifies when the price breaks out of a
range it has held for the lookback period, and executes the trade the
user picks from the notification. Exits are left to a trailing stop.

This module is pure business logic with no I/O dependencies. The broker,
the notification channel and the outcome channel are injected, making it
usable by both the live host and the backtester.
"""

import logging
from typing import Any

from core.models import (
    ActionOutcome,
    BreakState,
    ClassificationResult,
    Notification,
    NotificationAction,
    OrderType,
    RangeBreakConfig,
    RANGE_BREAK_PROPERTIES,
    PropertyInfo,
    Tick,
    TradeAction,
)
from core.models.converters import window_state_to_blob
from core.strategy.protocol import Broker, MessageSink, Notifier
from core.strategy.range_break.detector import RangeBreakoutDetector
from core.strategy.registry import register_agent

logger = logging.getLogger(__name__)

RANGE_BREAK_AGENT_NAME = "range_break"

DESCRIPTION = """Agent that trades range breakouts.
 - Sends a notification when the rate, after staying within a fixed
   number of pips for the configured period (8 hours by default),
   breaks out of that range.
 - The trade can be executed from the notification.
 - Positions are closed by a trailing stop."""

DEFAULT_CONFIRMATIONS = {
    TradeAction.BUY: "Buy order executed",
    TradeAction.SELL: "Sell order executed",
}


@register_agent(RANGE_BREAK_AGENT_NAME)
class BreakoutAgent:
    """
    Notify on range breakouts and execute the chosen trade.

    State machine (per tick):
    - Building: window spans less than the lookback period -> no signal
    - Ranging: window spans the period and is narrower than the threshold
    - Breakout: tick lands outside the band -> one notification, window
      resets, back to Building

    Injected capabilities:
    - broker: places market orders with a trailing stop
    - notifier: receives breakout notifications (None = log only)
    - message_sink: receives action outcomes (None = log only)
    """

    def __init__(
        self,
        config: RangeBreakConfig,
        broker: Broker,
        notifier: Notifier | None = None,
        message_sink: MessageSink | None = None,
    ):
        self.config = config
        self._broker = broker
        self._notifier = notifier
        self._message_sink = message_sink
        self._detector = RangeBreakoutDetector.from_config(config)

        logger.info(
            "%s created: %s lookback=%dmin range=%spips (pip=%s) trailing_stop=%dpips units=%d",
            config.name,
            config.instrument,
            config.lookback_minutes,
            config.range_pips,
            config.pip_size,
            config.trailing_stop_pips,
            config.trade_units,
        )

    # ------------------------------------------------------------------
    # Agent Protocol properties
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def description(self) -> str:
        return DESCRIPTION

    @property
    def properties(self) -> list[PropertyInfo]:
        return RANGE_BREAK_PROPERTIES

    @property
    def detector(self) -> RangeBreakoutDetector:
        return self._detector

    # ------------------------------------------------------------------
    # Tick processing
    # ------------------------------------------------------------------

    def on_tick(self, tick: Tick) -> ClassificationResult | None:
        """Classify the tick's bid and notify on a breakout.

        Returns:
            The classification, or None if the tick has no quote for the
            configured instrument.
        """
        quote = tick.get(self.config.instrument)
        if quote is None:
            return None

        result = self._detector.classify(quote.bid, tick.timestamp)
        if result.is_break:
            self._send_notification(result)
        return result

    def _send_notification(self, result: ClassificationResult) -> None:
        side = "above" if result.state == BreakState.BREAK_HIGH else "below"
        message = (
            f"{self.config.instrument} {result.price} broke {side} its range. Trade?"
        )
        action = TradeAction.for_break(result.state)
        notification = Notification(
            agent=self.name,
            message=message,
            actions=[NotificationAction(label=action.label, action_id=action.value)],
            timestamp=result.time,
        )
        if self._notifier:
            self._notifier.push_notification(notification)
        logger.info(f"{message} {result.state.value} {result.time.isoformat()}")

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def on_action(self, action_id: str) -> ActionOutcome:
        """Execute the action picked from a breakout notification.

        Broker failures are converted into an error outcome and never
        retried.
        """
        try:
            action = TradeAction(action_id)
        except ValueError:
            logger.warning(f"{self.name}: unknown action '{action_id}'")
            outcome = ActionOutcome.info(f"{self.name}: Unknown action '{action_id}'")
            self._push_message(outcome)
            return outcome

        try:
            receipt = await self._broker.place_order(
                self.config.instrument,
                self.config.trade_units,
                action.side,
                OrderType.MARKET,
                trailing_stop_pips=self.config.trailing_stop_pips,
            )
        except Exception as e:
            logger.error(
                f"{self.name}: {action.side.value} order for {self.config.instrument} failed: {e}",
                exc_info=True,
            )
            outcome = ActionOutcome.error(
                f"{self.name}: Failed to execute {action.side.value} order "
                f"for {self.config.instrument}"
            )
        else:
            if receipt is not None and receipt.message:
                message = receipt.message
            else:
                message = DEFAULT_CONFIRMATIONS[action]
            outcome = ActionOutcome.info(f"{self.name}: {message}")
            logger.info(outcome.message)

        self._push_message(outcome)
        return outcome

    def _push_message(self, outcome: ActionOutcome) -> None:
        if self._message_sink:
            self._message_sink.push_message(outcome)

    # ------------------------------------------------------------------
    # Checkpointing
    # ------------------------------------------------------------------

    def serialize_state(self) -> dict[str, Any]:
        """Return the candle window checkpoint as a JSON-compatible dict."""
        return window_state_to_blob(self._detector.state())

    def restore_state(self, state: dict[str, Any]) -> None:
        """Replace the candle window with a checkpoint.

        Raises:
            StateRestoreError: If the checkpoint is malformed.
        """
        self._detector.restore_state(state)
