"""Backtest-specific configuration.

Independent of app/config.py. Environment variables supply defaults for
the replayed agent; CLI flags override them.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class BacktestSettings(BaseSettings):
    """Backtest configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BACKTEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    instrument: str = ""
    lookback_minutes: int = 480
    range_pips: Decimal = Decimal(100)
    trailing_stop_pips: int = 30
    trade_units: int = 1
    pip_size: Decimal | None = None


_settings: BacktestSettings | None = None


def get_backtest_settings() -> BacktestSettings:
    """Get cached backtest settings instance."""
    global _settings
    if _settings is None:
        _settings = BacktestSettings()
    return _settings
