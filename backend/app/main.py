"""Main application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)
logging.getLogger("picows").setLevel(logging.WARNING)
logging.getLogger("ccxt").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from app.agent_config import load_agent_config
from app.api import router, manager, set_agent, websocket_endpoint
from app.clients import BinanceBookTickerWebSocket
from app.config import get_settings
from app.services import OrderService
from app.storage import cache, state_cache
from core.models import Tick
from core.strategy import Agent, create_agent

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# Global services
agent: Agent | None = None
order_service: OrderService | None = None
feed: BinanceBookTickerWebSocket | None = None
_checkpoint_task: asyncio.Task | None = None


async def save_checkpoint() -> bool:
    """Persist the agent's candle window."""
    if agent is None:
        return False
    return await state_cache.save_state(agent.name, agent.serialize_state())


async def restore_checkpoint() -> bool:
    """Load the last checkpoint into the agent.

    Raises:
        StateRestoreError: If a stored checkpoint is malformed
    """
    if agent is None:
        return False
    state = await state_cache.load_state(agent.name)
    if state is None:
        logger.info(f"No checkpoint for {agent.name}, starting with an empty window")
        return False
    agent.restore_state(state)
    return True


async def _periodic_checkpoint(interval: float):
    """Background task to periodically checkpoint agent state."""
    while True:
        try:
            await asyncio.sleep(interval)
            await save_checkpoint()
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.warning(f"Checkpoint error: {e}")


async def on_tick(tick: Tick) -> None:
    """Feed a quote update to the agent."""
    if agent is not None:
        agent.on_tick(tick)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global agent, order_service, feed, _checkpoint_task

    logger.info("Starting range break agent...")

    cache_initialized = False
    feed_started = False

    try:
        settings = get_settings()
        agent_config = load_agent_config(
            Path(settings.agent_config_path) if settings.agent_config_path else None
        )

        # Initialize Redis cache with timeout
        try:
            await asyncio.wait_for(cache.init_cache(), timeout=10)
            cache_initialized = True
            if cache.is_cache_available():
                logger.info("Redis cache initialized")
            else:
                logger.warning("Redis cache unavailable - running without checkpoints")
        except asyncio.TimeoutError:
            logger.warning("Redis cache initialization timed out - running without checkpoints")
            cache_initialized = True

        order_service = OrderService(
            api_key=agent_config.broker.api_key or None,
            api_secret=agent_config.broker.api_secret or None,
            testnet=agent_config.broker.testnet,
            pip_sizes={
                agent_config.range_break.instrument: agent_config.range_break.pip_size,
            },
        )

        manager.start()
        agent = create_agent(
            agent_config.agent,
            config=agent_config.range_break,
            broker=order_service,
            notifier=manager,
            message_sink=manager,
        )
        await restore_checkpoint()

        set_agent(agent)
        manager.action_handler = agent.on_action

        feed = BinanceBookTickerWebSocket()
        await feed.subscribe(agent_config.range_break.instrument, on_tick)
        await feed.start()
        feed_started = True
        logger.info(f"Quote feed started for {agent_config.range_break.instrument}")

        _checkpoint_task = asyncio.create_task(
            _periodic_checkpoint(settings.checkpoint_interval)
        )
        logger.info(f"Checkpoint task started (every {settings.checkpoint_interval}s)")

    except Exception as e:
        logger.error(f"Startup failed: {e}")
        if feed_started and feed:
            try:
                await feed.stop()
            except Exception as cleanup_err:
                logger.warning(f"Error stopping quote feed: {cleanup_err}")
        await manager.stop()
        if cache_initialized:
            try:
                await cache.close_cache()
            except Exception as cleanup_err:
                logger.warning(f"Error closing cache: {cleanup_err}")
        raise  # Re-raise to prevent app from starting in broken state

    yield

    # Shutdown
    logger.info("Shutting down...")

    # Stop quotes first so the window no longer changes
    if feed:
        await feed.stop()

    if _checkpoint_task:
        _checkpoint_task.cancel()
        try:
            await _checkpoint_task
        except asyncio.CancelledError:
            pass

    if await save_checkpoint():
        logger.info("Final checkpoint saved")

    set_agent(None)
    manager.action_handler = None
    await manager.stop()

    if order_service:
        await order_service.close()

    await cache.close_cache()

    logger.info("Shutdown complete")


# Create FastAPI app with orjson for faster JSON serialization
app = FastAPI(
    title="Range Break Agent",
    description="Range breakout notifications with one-click trade execution",
    version=VERSION,
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST routes
app.include_router(router, prefix="/api")

# WebSocket endpoint
app.websocket("/ws")(websocket_endpoint)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Range Break Agent",
        "version": VERSION,
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "cache": await cache.ping()}


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
