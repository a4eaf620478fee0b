"""API endpoints."""

from app.api.routes import router, set_agent, get_agent
from app.api.websocket import manager, websocket_endpoint, ConnectionManager

__all__ = [
    "router",
    "set_agent",
    "get_agent",
    "manager",
    "websocket_endpoint",
    "ConnectionManager",
]
