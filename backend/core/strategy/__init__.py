"""Agent plugin system.

Public API:
- Agent: Protocol that all agents must implement
- Broker, Notifier, MessageSink: host capabilities injected into agents
- OrderError: raised by brokers when an order fails
- register_agent: Decorator to register an agent class
- create_agent: Factory function to instantiate agents by name
- list_agents: Discover all registered agents
- get_agent_class: Get agent class by name without instantiating

Importing this package auto-registers all built-in agents.
"""

from core.strategy.protocol import (
    Agent,
    Broker,
    MessageSink,
    Notifier,
    OrderError,
)
from core.strategy.registry import (
    register_agent,
    create_agent,
    list_agents,
    get_agent_class,
)

# Import built-in agents to trigger auto-registration
import core.strategy.range_break  # noqa: F401

__all__ = [
    "Agent",
    "Broker",
    "MessageSink",
    "Notifier",
    "OrderError",
    "register_agent",
    "create_agent",
    "list_agents",
    "get_agent_class",
]
