"""REST API routes."""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from app.api.websocket import manager
from app.storage import cache
from core.models import ActionOutcome
from core.strategy import Agent

logger = logging.getLogger(__name__)

router = APIRouter()

VERSION = "0.1.0"

# The running agent, installed by the app lifespan
_agent: Agent | None = None


def set_agent(agent: Agent | None) -> None:
    """Install (or clear) the agent served by the API."""
    global _agent
    _agent = agent


def get_agent() -> Agent:
    """Get the running agent.

    Raises:
        HTTPException: 503 if no agent is running
    """
    if _agent is None:
        raise HTTPException(status_code=503, detail="No agent is running")
    return _agent


# Response models
class SystemStatus(BaseModel):
    """System status response."""

    status: str
    version: str
    agent: Optional[str] = None
    instrument: Optional[str] = None
    candles: int
    checkpoints_enabled: bool
    connections: int


class PropertyResponse(BaseModel):
    """Configurable agent property."""

    id: str
    name: str
    default: Any


class AgentResponse(BaseModel):
    """Agent metadata and effective configuration."""

    name: str
    description: str
    properties: list[PropertyResponse]
    config: dict[str, Any]


class WindowStateResponse(BaseModel):
    """Current candle window checkpoint."""

    candles: list[dict[str, Any]]
    next_boundary: Optional[datetime] = None


@router.get("/status", response_model=SystemStatus)
async def get_status():
    """Get system status."""
    agent = _agent
    instrument = None
    candles = 0
    if agent is not None:
        instrument = getattr(getattr(agent, "config", None), "instrument", None)
        candles = len(agent.serialize_state().get("candles", []))

    return SystemStatus(
        status="running" if agent is not None else "idle",
        version=VERSION,
        agent=agent.name if agent is not None else None,
        instrument=instrument,
        candles=candles,
        checkpoints_enabled=cache.is_cache_available(),
        connections=manager.connection_count,
    )


@router.get("/agent", response_model=AgentResponse)
async def get_agent_info():
    """Get the running agent's metadata."""
    agent = get_agent()
    config = getattr(agent, "config", None)
    return AgentResponse(
        name=agent.name,
        description=agent.description,
        properties=[
            PropertyResponse(id=p.id, name=p.name, default=p.default)
            for p in getattr(agent, "properties", [])
        ],
        config=config.model_dump(mode="json") if config is not None else {},
    )


@router.get("/agent/state", response_model=WindowStateResponse)
async def get_agent_state():
    """Get the agent's current candle window."""
    return WindowStateResponse(**get_agent().serialize_state())


@router.post("/actions/{action_id}", response_model=ActionOutcome)
async def execute_action(action_id: str):
    """Execute an action picked from a notification.

    Failures are reported in the outcome body, not as HTTP errors.
    """
    agent = get_agent()
    logger.info(f"Action requested: {action_id}")
    return await agent.on_action(action_id)
