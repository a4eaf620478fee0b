"""Tests for the range break agent and the agent registry."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.candle_window import StateRestoreError
from core.models import (
    BreakState,
    MessageType,
    OrderReceipt,
    OrderSide,
    OrderType,
    Presentation,
    Quote,
    RangeBreakConfig,
    Tick,
    TradeAction,
)
from core.strategy import (
    Agent,
    OrderError,
    create_agent,
    get_agent_class,
    list_agents,
    register_agent,
)
from core.strategy import registry
from core.strategy.range_break import BreakoutAgent, RANGE_BREAK_AGENT_NAME

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def tick(price: str, minute: float, instrument: str = "USDJPY") -> Tick:
    bid = Decimal(price)
    return Tick(
        prices={instrument: Quote(bid=bid, ask=bid + Decimal("0.003"))},
        timestamp=T0 + timedelta(minutes=minute),
    )


@pytest.fixture
def config():
    return RangeBreakConfig(
        instrument="USDJPY",
        lookback_minutes=10,
        range_pips=Decimal("20"),
    )


@pytest.fixture
def broker():
    broker = MagicMock()
    broker.place_order = AsyncMock(return_value=OrderReceipt(order_id="42"))
    return broker


@pytest.fixture
def notifier():
    return MagicMock()


@pytest.fixture
def sink():
    return MagicMock()


@pytest.fixture
def agent(config, broker, notifier, sink):
    return BreakoutAgent(config, broker, notifier=notifier, message_sink=sink)


def build_range(agent: BreakoutAgent) -> None:
    for i, price in enumerate(["100.00", "100.15", "100.05", "100.10", "100.08",
                               "100.00", "100.12", "100.03", "100.15", "100.06", "100.09"]):
        agent.on_tick(tick(price, i))


class TestOnTick:
    """Tests for tick classification and notifications."""

    def test_quiet_ticks_send_nothing(self, agent, notifier):
        build_range(agent)
        notifier.push_notification.assert_not_called()

    def test_breakout_sends_one_notification(self, agent, notifier):
        build_range(agent)
        result = agent.on_tick(tick("100.30", 11))

        assert result.state == BreakState.BREAK_HIGH
        notifier.push_notification.assert_called_once()
        notification = notifier.push_notification.call_args[0][0]
        assert notification.agent == "RangeBreakAgent"
        assert notification.message == "USDJPY 100.30 broke above its range. Trade?"
        assert notification.timestamp == T0 + timedelta(minutes=11)
        assert [(a.label, a.action_id) for a in notification.actions] == [
            ("Buy", "range_break_buy"),
        ]

    def test_break_low_offers_sell(self, agent, notifier):
        build_range(agent)
        agent.on_tick(tick("99.90", 11))

        notification = notifier.push_notification.call_args[0][0]
        assert "broke below" in notification.message
        assert notification.actions[0].action_id == TradeAction.SELL.value
        assert notification.actions[0].label == "Sell"

    def test_classifies_bid(self, agent):
        quote_tick = Tick(
            prices={"USDJPY": Quote(bid=Decimal("100.01"), ask=Decimal("100.50"))},
            timestamp=T0,
        )
        result = agent.on_tick(quote_tick)
        assert result.price == Decimal("100.01")

    def test_tick_without_instrument_is_ignored(self, agent):
        assert agent.on_tick(tick("1.1000", 0, instrument="EURUSD")) is None
        assert len(agent.detector.window) == 0

    def test_works_without_notifier(self, config, broker):
        agent = BreakoutAgent(config, broker)
        build_range(agent)
        assert agent.on_tick(tick("100.30", 11)).is_break


class TestOnAction:
    """Tests for executing notification actions."""

    @pytest.mark.asyncio
    async def test_buy_places_market_order_with_trailing_stop(self, agent, broker, sink):
        outcome = await agent.on_action("range_break_buy")

        broker.place_order.assert_awaited_once_with(
            "USDJPY", 1, OrderSide.BUY, OrderType.MARKET, trailing_stop_pips=30,
        )
        assert outcome.type == MessageType.INFO
        assert outcome.message == "RangeBreakAgent: Buy order executed"
        assert outcome.presentation == Presentation.DEFAULT
        sink.push_message.assert_called_once_with(outcome)

    @pytest.mark.asyncio
    async def test_sell(self, agent, broker):
        outcome = await agent.on_action("range_break_sell")

        assert broker.place_order.call_args[0][2] == OrderSide.SELL
        assert outcome.message == "RangeBreakAgent: Sell order executed"

    @pytest.mark.asyncio
    async def test_broker_message_is_used(self, agent, broker):
        broker.place_order.return_value = OrderReceipt(order_id="SIMULATED", message="Simulated buy")
        outcome = await agent.on_action("range_break_buy")
        assert outcome.message == "RangeBreakAgent: Simulated buy"

    @pytest.mark.asyncio
    async def test_broker_returning_none(self, agent, broker):
        broker.place_order.return_value = None
        outcome = await agent.on_action("range_break_buy")
        assert outcome.type == MessageType.INFO

    @pytest.mark.asyncio
    async def test_order_failure_becomes_error_outcome(self, agent, broker, sink):
        broker.place_order.side_effect = OrderError("margin")

        outcome = await agent.on_action("range_break_buy")

        assert outcome.is_error
        assert outcome.presentation == Presentation.SUPPRESS_DEFAULT
        assert "RangeBreakAgent" in outcome.message
        assert "USDJPY" in outcome.message
        assert "Failed" in outcome.message
        assert "margin" not in outcome.message
        sink.push_message.assert_called_once_with(outcome)

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_not_retried(self, agent, broker):
        broker.place_order.side_effect = ConnectionError("reset by peer")

        outcome = await agent.on_action("range_break_sell")

        assert outcome.is_error
        assert broker.place_order.await_count == 1

    @pytest.mark.asyncio
    async def test_unknown_action(self, agent, broker, sink):
        outcome = await agent.on_action("close_all")

        assert outcome.type == MessageType.INFO
        assert "Unknown action" in outcome.message
        broker.place_order.assert_not_awaited()
        sink.push_message.assert_called_once_with(outcome)


class TestAgentState:
    """Tests for serialize_state / restore_state."""

    def test_round_trip(self, agent, config, broker):
        build_range(agent)
        blob = agent.serialize_state()

        other = BreakoutAgent(config, broker)
        other.restore_state(blob)

        assert other.serialize_state() == blob
        assert other.detector.window.highest() == Decimal("100.15")
        assert other.detector.window.lowest() == Decimal("100.00")

    def test_blob_is_json_compatible(self, agent):
        build_range(agent)
        blob = agent.serialize_state()

        assert isinstance(blob["next_boundary"], str)
        assert all(isinstance(c["high"], str) for c in blob["candles"])

    def test_restored_agent_detects_breakout(self, agent, config, broker, notifier):
        build_range(agent)
        other = BreakoutAgent(config, broker, notifier=notifier)
        other.restore_state(agent.serialize_state())

        assert other.on_tick(tick("100.30", 11)).state == BreakState.BREAK_HIGH
        notifier.push_notification.assert_called_once()

    def test_malformed_state(self, agent):
        with pytest.raises(StateRestoreError):
            agent.restore_state({"candles": [{"high": "oops"}]})

    @pytest.mark.parametrize("blob", [
        {},
        {"checker": {"candles": [], "next_update": None}},
        {"candle": []},
    ])
    def test_missing_keys_keep_current_window(self, agent, blob):
        build_range(agent)
        before = agent.serialize_state()

        with pytest.raises(StateRestoreError):
            agent.restore_state(blob)

        assert agent.serialize_state() == before
        assert len(agent.detector.window) == 2


class TestAgentMetadata:
    """Tests for the agent's description and properties."""

    def test_implements_agent_protocol(self, agent):
        assert isinstance(agent, Agent)

    def test_description(self, agent):
        assert "range" in agent.description.lower()
        assert "trailing stop" in agent.description

    def test_properties(self, agent):
        defaults = {p.id: p.default for p in agent.properties}
        assert defaults["lookback_minutes"] == 480
        assert defaults["range_pips"] == 100
        assert defaults["trailing_stop_pips"] == 30
        assert defaults["trade_units"] == 1


class TestRegistry:
    """Tests for the agent registry."""

    @pytest.fixture
    def temp_name(self):
        name = "test_dummy_agent"
        yield name
        registry._REGISTRY.pop(name, None)

    def test_range_break_registered(self):
        assert RANGE_BREAK_AGENT_NAME in list_agents()
        assert get_agent_class(RANGE_BREAK_AGENT_NAME) is BreakoutAgent

    def test_create_agent(self, config, broker):
        agent = create_agent(RANGE_BREAK_AGENT_NAME, config=config, broker=broker)
        assert isinstance(agent, BreakoutAgent)
        assert agent.config is config

    def test_unknown_agent(self):
        with pytest.raises(KeyError, match="Unknown agent"):
            get_agent_class("nope")

    def test_duplicate_registration(self, temp_name):
        @register_agent(temp_name)
        class First:
            pass

        with pytest.raises(ValueError, match="already registered"):
            @register_agent(temp_name)
            class Second:
                pass

        assert get_agent_class(temp_name) is First
