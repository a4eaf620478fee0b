"""Agent checkpoint cache.

Stores each agent's serialized state in Redis so a restart resumes
mid-range instead of rebuilding the candle window from scratch.

Data structure:
- agent_state:{agent} -> JSON {candles: [...], next_boundary}

A stored checkpoint that cannot be decoded is fatal: starting with an
empty window would silently break range continuity.
"""

from __future__ import annotations

import logging
from typing import Any

import orjson

from app.storage import cache
from core.candle_window import StateRestoreError

logger = logging.getLogger(__name__)


def _state_key(agent: str) -> str:
    """Get the cache key for an agent checkpoint."""
    return f"{cache.KEY_PREFIX_AGENT_STATE}{agent}"


async def save_state(agent: str, state: dict[str, Any]) -> bool:
    """Save an agent checkpoint.

    Args:
        agent: Agent name
        state: JSON-compatible checkpoint from Agent.serialize_state()

    Returns:
        True if saved successfully
    """
    if not cache.is_cache_available():
        return False

    saved = await cache.set_json(_state_key(agent), state)
    if saved:
        logger.debug(f"Saved checkpoint for {agent}: {len(state.get('candles', []))} candles")
    return saved


async def load_state(agent: str) -> dict[str, Any] | None:
    """Load an agent checkpoint.

    Returns:
        The checkpoint dict, or None if none is stored or the cache is down

    Raises:
        StateRestoreError: If a stored checkpoint is not valid JSON
    """
    if not cache.is_cache_available():
        return None

    data = await cache.get(_state_key(agent))
    if data is None:
        return None

    try:
        state = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise StateRestoreError(f"Corrupt checkpoint for {agent}: {e}") from e

    if not isinstance(state, dict):
        raise StateRestoreError(
            f"Corrupt checkpoint for {agent}: expected an object, got {type(state).__name__}"
        )
    return state


async def clear_state(agent: str) -> bool:
    """Delete an agent checkpoint."""
    if not cache.is_cache_available():
        return False

    return await cache.delete(_state_key(agent))
