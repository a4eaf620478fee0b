"""Tests for the Binance bookTicker feed."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import orjson
import pytest

from app.clients.binance_ws_book_ticker import (
    BinanceBookTickerListener,
    BinanceBookTickerWebSocket,
    parse_book_ticker,
)

EVENT = {
    "e": "bookTicker",
    "u": 400900217,
    "E": 1704067200123,
    "T": 1704067200100,
    "s": "BTCUSDT",
    "b": "42000.10",
    "B": "31.21",
    "a": "42000.20",
    "A": "40.66",
}


class TestParseBookTicker:
    def test_quote_and_time(self):
        tick = parse_book_ticker(EVENT)

        quote = tick["BTCUSDT"]
        assert quote.bid == Decimal("42000.10")
        assert quote.ask == Decimal("42000.20")
        assert tick.timestamp == datetime(2024, 1, 1, 0, 0, 0, 100000, tzinfo=timezone.utc)


class TestListener:
    """Tests for message dispatch (no network)."""

    @pytest.mark.asyncio
    async def test_dispatches_to_stream_callbacks(self):
        received = []

        async def on_tick(tick):
            received.append(tick)

        listener = BinanceBookTickerListener(
            callbacks={"btcusdt@bookTicker": [on_tick]},
            on_connected=MagicMock(),
            on_disconnected=MagicMock(),
            loop=asyncio.get_running_loop(),
        )
        listener._handle_message(orjson.dumps(EVENT))
        for _ in range(50):
            if received:
                break
            await asyncio.sleep(0.01)

        assert len(received) == 1
        assert received[0]["BTCUSDT"].bid == Decimal("42000.10")

    @pytest.mark.asyncio
    async def test_ignores_confirmations_and_garbage(self):
        callback = AsyncMock()
        listener = BinanceBookTickerListener(
            callbacks={"btcusdt@bookTicker": [callback]},
            on_connected=MagicMock(),
            on_disconnected=MagicMock(),
            loop=asyncio.get_running_loop(),
        )
        listener._handle_message(b'{"result": null, "id": 1}')
        listener._handle_message(b"not json")
        await asyncio.sleep(0.05)

        callback.assert_not_called()


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_duplicate_callbacks_ignored(self):
        feed = BinanceBookTickerWebSocket()
        callback = AsyncMock()

        await feed.subscribe("BTCUSDT", callback)
        await feed.subscribe("BTCUSDT", callback)

        assert feed._callbacks == {"btcusdt@bookTicker": [callback]}

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        feed = BinanceBookTickerWebSocket()
        callback = AsyncMock()
        await feed.subscribe("BTCUSDT", callback)

        feed.unsubscribe("BTCUSDT", callback)
        assert feed._callbacks == {}
        assert not feed.is_connected
