"""WebSocket endpoint for real-time updates.

The ConnectionManager doubles as the agent's notification and outcome
channel: agents push synchronously from the tick path, messages are queued
and a background task broadcasts them to every connected client.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import orjson
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from core.models import ActionOutcome, Notification

logger = logging.getLogger(__name__)

ActionHandler = Callable[[str], Awaitable[ActionOutcome]]


def _orjson_dumps(obj: Any) -> str:
    """Serialize object to JSON string using orjson."""
    return orjson.dumps(obj, default=str).decode("utf-8")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WebSocketMessage(BaseModel):
    """WebSocket message format."""

    type: str  # "notification", "info", "error", "status"
    data: dict[str, Any]
    timestamp: datetime

    def to_json(self) -> str:
        """Serialize to JSON string using orjson for performance."""
        return _orjson_dumps(self.model_dump(mode="json"))


class ConnectionManager:
    """Manage WebSocket connections and broadcasts.

    Implements the Notifier and MessageSink capabilities. Pushes never
    block: they enqueue and return, delivery happens in the task started
    by start().
    """

    def __init__(self, queue_size: int = 1000):
        self._connections: list[WebSocket] = []
        self._lock = asyncio.Lock()
        self._queue: asyncio.Queue[WebSocketMessage] = asyncio.Queue(maxsize=queue_size)
        self._task: asyncio.Task | None = None
        self._action_tasks: set[asyncio.Task] = set()
        self.action_handler: ActionHandler | None = None

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections.append(websocket)
        logger.info(f"WebSocket connected. Total connections: {len(self._connections)}")

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a disconnected WebSocket."""
        async with self._lock:
            if websocket in self._connections:
                self._connections.remove(websocket)
        logger.info(f"WebSocket disconnected. Total connections: {len(self._connections)}")

    async def broadcast(self, message: WebSocketMessage) -> None:
        """Broadcast message to all connected clients."""
        if not self._connections:
            return

        message_text = message.to_json()
        disconnected = []

        async with self._lock:
            for websocket in self._connections:
                try:
                    await websocket.send_text(message_text)
                except Exception as e:
                    logger.warning(f"Failed to send message: {e}")
                    disconnected.append(websocket)

            # Remove disconnected websockets
            for ws in disconnected:
                self._connections.remove(ws)

    # ------------------------------------------------------------------
    # Agent channels
    # ------------------------------------------------------------------

    def push_notification(self, notification: Notification) -> None:
        """Queue a breakout notification for delivery."""
        self._enqueue(WebSocketMessage(
            type="notification",
            data=notification.model_dump(mode="json"),
            timestamp=_utcnow(),
        ))

    def push_message(self, outcome: ActionOutcome) -> None:
        """Queue an action outcome for delivery."""
        data: dict[str, Any] = {"message": outcome.message}
        if outcome.is_error:
            data["presentation"] = outcome.presentation.value
        self._enqueue(WebSocketMessage(
            type=outcome.type.value,
            data=data,
            timestamp=_utcnow(),
        ))

    async def send_status(self, status_data: dict) -> None:
        """Broadcast system status update."""
        await self.broadcast(WebSocketMessage(
            type="status",
            data=status_data,
            timestamp=_utcnow(),
        ))

    def _enqueue(self, message: WebSocketMessage) -> None:
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"Delivery queue full, dropping {message.type} message")

    @property
    def pending(self) -> int:
        """Number of queued, undelivered messages."""
        return self._queue.qsize()

    # ------------------------------------------------------------------
    # Client actions
    # ------------------------------------------------------------------

    def run_action(self, action_id: str) -> asyncio.Task:
        """Execute an action in its own task so the client's receive loop keeps running."""
        if self.action_handler is None:
            raise RuntimeError("No action handler installed")
        task = asyncio.create_task(self.action_handler(action_id))
        self._action_tasks.add(task)
        task.add_done_callback(self._action_done)
        return task

    def _action_done(self, task: asyncio.Task) -> None:
        self._action_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Action failed: {task.exception()}")

    async def wait_actions(self) -> None:
        """Wait for in-flight actions to finish."""
        if self._action_tasks:
            await asyncio.gather(*self._action_tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Delivery task
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the background delivery task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._deliver_loop())

    async def stop(self) -> None:
        """Finish in-flight actions, flush queued messages and stop the delivery task."""
        await self.wait_actions()
        if self._task is None:
            return
        await self.flush()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def flush(self) -> None:
        """Deliver everything queued so far."""
        while not self._queue.empty():
            await self.broadcast(self._queue.get_nowait())
            self._queue.task_done()

    async def _deliver_loop(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self.broadcast(message)
            except Exception as e:
                logger.error(f"Delivery error: {e}")
            finally:
                self._queue.task_done()

    @property
    def connection_count(self) -> int:
        """Get number of active connections."""
        return len(self._connections)


# Global connection manager
manager = ConnectionManager()


async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Messages sent to clients:
    - notification: Breakout detected, with the actions the user can pick
    - info: Action outcome
    - error: Failed action outcome (presentation tells the client whether
      to show its own error UI)
    - status: System status update

    Messages accepted from clients:
    - ping
    - action: {"action_id": "..."} executes a notification action

    Message format:
    {
        "type": "notification",
        "data": {...},
        "timestamp": "2024-01-01T00:00:00+00:00"
    }
    """
    await manager.connect(websocket)

    try:
        await websocket.send_text(_orjson_dumps({
            "type": "connected",
            "data": {"message": "Connected to range break agent"},
            "timestamp": _utcnow().isoformat(),
        }))

        while True:
            try:
                data = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=60.0,
                )

                try:
                    message = orjson.loads(data)
                except orjson.JSONDecodeError:
                    await _send_error(websocket, "Invalid JSON")
                    continue
                await handle_client_message(websocket, message)

            except asyncio.TimeoutError:
                # Keep connection alive
                await websocket.send_text(_orjson_dumps({
                    "type": "ping",
                    "data": {},
                    "timestamp": _utcnow().isoformat(),
                }))

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        await manager.disconnect(websocket)


async def _send_error(websocket: WebSocket, text: str) -> None:
    await websocket.send_text(_orjson_dumps({
        "type": "error",
        "data": {"message": text},
        "timestamp": _utcnow().isoformat(),
    }))


async def handle_client_message(websocket: WebSocket, message: dict) -> None:
    """Handle incoming message from client."""
    if not isinstance(message, dict):
        await _send_error(websocket, "Expected a JSON object")
        return

    msg_type = message.get("type", "")

    if msg_type == "ping":
        await websocket.send_text(_orjson_dumps({
            "type": "pong",
            "data": {},
            "timestamp": _utcnow().isoformat(),
        }))
    elif msg_type == "action":
        action_id = (message.get("data") or {}).get("action_id")
        if not action_id:
            await _send_error(websocket, "action_id is required")
        elif manager.action_handler is None:
            await _send_error(websocket, "No agent is running")
        else:
            # The outcome reaches the client through the broadcast queue
            manager.run_action(action_id)
    else:
        await _send_error(websocket, f"Unknown message type: {msg_type}")
