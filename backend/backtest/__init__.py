"""Backtesting system for the range break agent.

Fully independent of app/ and only depends on core/ for business logic.

Storage:
- Ticks: read from CSV files (timestamp,symbol,bid,ask)
- Checkpoints: JSON files, so a replay can resume where another stopped

Usage:
    python -m backtest --ticks usdjpy.csv --instrument USDJPY
    python -m backtest --ticks usdjpy.csv --instrument USDJPY --state-out state.json
"""

from backtest.engine import ReplayEngine, ReplayResult
from backtest.broker import PaperBroker

__all__ = ["ReplayEngine", "ReplayResult", "PaperBroker"]
