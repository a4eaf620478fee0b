"""Binance WebSocket client for real-time best bid/ask quotes using picows."""

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Awaitable

import orjson
from picows import ws_connect, WSFrame, WSTransport, WSListener, WSMsgType, WSCloseCode

from core.models import Quote, Tick

logger = logging.getLogger(__name__)

# Type alias for tick callback
TickCallback = Callable[[Tick], Awaitable[None]]


def parse_book_ticker(data: dict) -> Tick:
    """Convert a bookTicker event into a single-instrument Tick.

    Prices stay strings until Decimal so no float rounding creeps in.
    """
    return Tick(
        prices={data["s"]: Quote(bid=Decimal(data["b"]), ask=Decimal(data["a"]))},
        timestamp=datetime.fromtimestamp(data["T"] / 1000, tz=timezone.utc),
    )


class BinanceBookTickerListener(WSListener):
    """picows listener for Binance bookTicker WebSocket stream."""

    def __init__(
        self,
        callbacks: dict[str, list[TickCallback]],
        on_connected: Callable[[], None],
        on_disconnected: Callable[[], None],
        loop: asyncio.AbstractEventLoop,
    ):
        self._callbacks = callbacks
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected
        self._transport: WSTransport | None = None
        # picows callbacks may run outside the loop thread
        self._loop = loop

    def on_ws_connected(self, transport: WSTransport):
        """Called when WebSocket connection is established."""
        self._transport = transport
        logger.info("picows: bookTicker WebSocket connected")

        if self._callbacks:
            self._send_subscribe(list(self._callbacks.keys()))

        self._on_connected()

    def on_ws_disconnected(self, transport: WSTransport):
        """Called when WebSocket is disconnected."""
        logger.info("picows: bookTicker WebSocket disconnected")
        self._transport = None
        self._on_disconnected()

    def on_ws_frame(self, transport: WSTransport, frame: WSFrame):
        """Called when a new frame is received."""
        if frame.msg_type == WSMsgType.TEXT:
            self._handle_message(frame.get_payload_as_bytes())
        elif frame.msg_type == WSMsgType.PING:
            transport.send_pong(frame.get_payload_as_bytes())

    def _send_subscribe(self, streams: list[str]) -> None:
        if not self._transport:
            return

        msg = {
            "method": "SUBSCRIBE",
            "params": streams,
            "id": int(datetime.now().timestamp() * 1000),
        }
        self._transport.send(WSMsgType.TEXT, orjson.dumps(msg))
        logger.info(f"Subscribed to bookTicker streams: {streams}")

    def send_subscribe(self, streams: list[str]) -> None:
        """Public method to subscribe to additional streams."""
        self._send_subscribe(streams)

    def _handle_message(self, message: bytes) -> None:
        try:
            data = orjson.loads(message)

            # Ignore subscription confirmations
            if "result" in data or "id" in data:
                return

            if data.get("e") == "bookTicker":
                self._dispatch(data)

        except orjson.JSONDecodeError as e:
            logger.error(f"Failed to parse bookTicker message: {e}")
        except Exception as e:
            logger.error(f"Error handling bookTicker message: {e}")

    def _dispatch(self, data: dict) -> None:
        tick = parse_book_ticker(data)

        stream_name = f"{data['s'].lower()}@bookTicker"
        for callback in self._callbacks.get(stream_name, []):
            asyncio.run_coroutine_threadsafe(
                self._safe_callback(callback, tick), self._loop
            )

    async def _safe_callback(self, callback: TickCallback, tick: Tick) -> None:
        try:
            await callback(tick)
        except Exception as e:
            logger.error(f"Tick callback error: {e}")

    def disconnect(self) -> None:
        """Disconnect the WebSocket."""
        if self._transport:
            self._transport.send_close(WSCloseCode.OK)
            self._transport.disconnect()


class BinanceBookTickerWebSocket:
    """Quote feed for Binance Futures bookTicker streams using picows."""

    WS_URL = "wss://fstream.binance.com/ws"

    def __init__(self):
        self._callbacks: dict[str, list[TickCallback]] = {}
        self._running = False
        self._reconnect_delay = 1.0
        self._max_reconnect_delay = 60.0
        self._task: asyncio.Task | None = None
        self._listener: BinanceBookTickerListener | None = None
        self._connected = asyncio.Event()
        self._disconnected = asyncio.Event()

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    async def subscribe(self, symbol: str, callback: TickCallback) -> None:
        """
        Subscribe to quote updates for a symbol.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            callback: Async function to call with each Tick

        Duplicate callbacks are ignored so reconnects do not accumulate them.
        """
        stream_name = f"{symbol.lower()}@bookTicker"
        callbacks = self._callbacks.setdefault(stream_name, [])
        if callback not in callbacks:
            callbacks.append(callback)

        if self._listener and self._connected.is_set():
            self._listener.send_subscribe([stream_name])

    def unsubscribe(self, symbol: str, callback: TickCallback | None = None) -> None:
        """Remove one callback, or all callbacks when None, for a symbol."""
        stream_name = f"{symbol.lower()}@bookTicker"
        if stream_name not in self._callbacks:
            return
        if callback is None:
            del self._callbacks[stream_name]
        elif callback in self._callbacks[stream_name]:
            self._callbacks[stream_name].remove(callback)
            if not self._callbacks[stream_name]:
                del self._callbacks[stream_name]

    async def start(self) -> None:
        """Start the WebSocket connection and message processing."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the WebSocket connection."""
        self._running = False
        if self._listener:
            self._listener.disconnect()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def _on_connected(self) -> None:
        self._connected.set()
        self._disconnected.clear()
        self._reconnect_delay = 1.0

    def _on_disconnected(self) -> None:
        self._connected.clear()
        self._disconnected.set()

    async def _run(self) -> None:
        """Main WebSocket loop with reconnection."""
        while self._running:
            try:
                await self._connect_and_process()
            except Exception as e:
                logger.error(f"picows bookTicker error: {e}")

            if self._running:
                logger.info(
                    f"Reconnecting bookTicker WS in {self._reconnect_delay} seconds..."
                )
                await asyncio.sleep(self._reconnect_delay)
                self._reconnect_delay = min(
                    self._reconnect_delay * 2, self._max_reconnect_delay
                )

    async def _connect_and_process(self) -> None:
        self._disconnected.clear()
        loop = asyncio.get_running_loop()

        def listener_factory():
            self._listener = BinanceBookTickerListener(
                callbacks=self._callbacks,
                on_connected=self._on_connected,
                on_disconnected=self._on_disconnected,
                loop=loop,
            )
            return self._listener

        logger.info(f"Connecting bookTicker WS to {self.WS_URL}")
        await ws_connect(
            listener_factory,
            self.WS_URL,
            enable_auto_ping=True,
            auto_ping_idle_timeout=30,
            auto_ping_reply_timeout=10,
        )

        await self._disconnected.wait()
