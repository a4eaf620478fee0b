"""Agent registry for discovering and instantiating agents by name.

Usage:
    @register_agent("my_agent")
    class MyAgent:
        ...

    agent = create_agent("my_agent", config=config, broker=broker)
    agents = list_agents()
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

# Global registry: agent_name -> agent_class
_REGISTRY: dict[str, type] = {}


def register_agent(name: str):
    """Decorator to register an agent class under a given name.

    Raises:
        ValueError: If an agent with the same name is already registered.
    """

    def decorator(cls):
        if name in _REGISTRY:
            raise ValueError(
                f"Agent '{name}' is already registered by {_REGISTRY[name].__name__}"
            )
        _REGISTRY[name] = cls
        logger.debug("Registered agent: %s -> %s", name, cls.__name__)
        return cls

    return decorator


def get_agent_class(name: str) -> type:
    """Get the agent class by name (without instantiating).

    Raises:
        KeyError: If no agent is registered under the given name.
    """
    cls = _REGISTRY.get(name)
    if cls is None:
        available = ", ".join(sorted(_REGISTRY.keys())) or "(none)"
        raise KeyError(f"Unknown agent '{name}'. Available: {available}")
    return cls


def create_agent(name: str, **kwargs: Any):
    """Create an agent instance by name.

    Args:
        name: Registered agent name.
        **kwargs: Arguments passed to the agent constructor.

    Raises:
        KeyError: If no agent is registered under the given name.
    """
    return get_agent_class(name)(**kwargs)


def list_agents() -> list[str]:
    """Return a sorted list of registered agent names."""
    return sorted(_REGISTRY.keys())
