"""Data storage layer."""

from app.storage import cache
from app.storage import state_cache

__all__ = [
    "cache",
    "state_cache",
]
