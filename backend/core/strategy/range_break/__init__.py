"""Range break agent package.

Importing this package triggers agent registration via the
@register_agent decorator on BreakoutAgent.
"""

from core.strategy.range_break.agent import (
    DESCRIPTION,
    RANGE_BREAK_AGENT_NAME,
    BreakoutAgent,
)
from core.strategy.range_break.detector import RangeBreakoutDetector

__all__ = [
    "BreakoutAgent",
    "RangeBreakoutDetector",
    "DESCRIPTION",
    "RANGE_BREAK_AGENT_NAME",
]
