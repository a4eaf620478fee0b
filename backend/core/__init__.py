"""Core range-breakout logic: candles, windowing, classification and agents.

This package contains pure business logic with no I/O dependencies
(no Redis, exchange or network access). It is shared between the
live host (app/) and the tick replay backtester (backtest/).
"""
