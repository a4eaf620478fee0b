"""Replay engine for backtesting.

Feeds recorded ticks through an agent in chronological order, collecting
its notifications, classification counts and (optionally) the trades it
would have placed had the user accepted every notification.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from core.models import (
    ActionOutcome,
    BreakState,
    Notification,
    RangeBreakConfig,
    Tick,
)
from core.strategy import create_agent
from core.strategy.range_break import RANGE_BREAK_AGENT_NAME

from backtest.broker import PaperBroker, PaperFill

logger = logging.getLogger(__name__)


class RecordingNotifier:
    """Collect notifications and outcomes in memory."""

    def __init__(self):
        self.notifications: list[Notification] = []
        self.outcomes: list[ActionOutcome] = []

    def push_notification(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def push_message(self, outcome: ActionOutcome) -> None:
        self.outcomes.append(outcome)


@dataclass
class ReplayResult:
    """Result of replaying a tick stream."""

    instrument: str
    config: RangeBreakConfig
    ticks: int = 0
    skipped: int = 0  # ticks without a quote for the instrument
    counts: dict[str, int] = field(default_factory=dict)
    notifications: list[Notification] = field(default_factory=list)
    outcomes: list[ActionOutcome] = field(default_factory=list)
    fills: list[PaperFill] = field(default_factory=list)
    start_time: datetime | None = None
    end_time: datetime | None = None
    final_state: dict[str, Any] = field(default_factory=dict)

    @property
    def breaks(self) -> int:
        return self.counts.get(BreakState.BREAK_HIGH.value, 0) + self.counts.get(
            BreakState.BREAK_LOW.value, 0
        )


class ReplayEngine:
    """Process ticks for a single agent.

    Processing order for each tick:
    1. Mark the paper broker with the tick's quotes
    2. Classify the tick through the agent
    3. If auto_trade is set, execute the action of each new notification
    """

    def __init__(
        self,
        config: RangeBreakConfig,
        agent_name: str = RANGE_BREAK_AGENT_NAME,
        auto_trade: bool = False,
        state: dict[str, Any] | None = None,
    ):
        self.config = config
        self.auto_trade = auto_trade
        self.broker = PaperBroker()
        self.recorder = RecordingNotifier()
        self.agent = create_agent(
            agent_name,
            config=config,
            broker=self.broker,
            notifier=self.recorder,
            message_sink=self.recorder,
        )
        if state is not None:
            # Raises StateRestoreError on a malformed checkpoint
            self.agent.restore_state(state)

        self._counts: Counter[str] = Counter()
        self._ticks = 0
        self._skipped = 0
        self._start: datetime | None = None
        self._end: datetime | None = None

    async def process_tick(self, tick: Tick) -> None:
        """Process a single tick."""
        self._ticks += 1
        if self._start is None:
            self._start = tick.timestamp
        self._end = tick.timestamp

        self.broker.mark(tick)
        seen = len(self.recorder.notifications)

        result = self.agent.on_tick(tick)
        if result is None:
            self._skipped += 1
            return
        self._counts[result.state.value] += 1

        if self.auto_trade:
            for notification in self.recorder.notifications[seen:]:
                for action in notification.actions:
                    await self.agent.on_action(action.action_id)

    async def run(self, ticks: Iterable[Tick]) -> ReplayResult:
        """Replay every tick and return the collected result."""
        for tick in ticks:
            await self.process_tick(tick)

        logger.info(
            f"Replayed {self._ticks} ticks for {self.config.instrument}: "
            f"{len(self.recorder.notifications)} breakouts, {len(self.broker.fills)} fills"
        )
        return self.get_result()

    def get_result(self) -> ReplayResult:
        return ReplayResult(
            instrument=self.config.instrument,
            config=self.config,
            ticks=self._ticks,
            skipped=self._skipped,
            counts=dict(self._counts),
            notifications=list(self.recorder.notifications),
            outcomes=list(self.recorder.outcomes),
            fills=list(self.broker.fills),
            start_time=self._start,
            end_time=self._end,
            final_state=self.agent.serialize_state(),
        )
