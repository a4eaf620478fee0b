"""CLI entry point for the backtesting system.

Completely independent of app/: ticks come from a CSV file and the agent
checkpoint is read from / written to a JSON file, in the same format the
live host stores in Redis.

Usage:
    python -m backtest --ticks usdjpy.csv --instrument USDJPY
    python -m backtest --ticks btc.csv --instrument BTCUSDT --range-pips 500 --auto-trade
    python -m backtest --ticks day2.csv --instrument USDJPY --state-in day1.json --state-out day2.json
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from decimal import Decimal
from pathlib import Path

# Add backend to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pydantic import ValidationError

from core.candle_window import StateRestoreError
from core.models import RangeBreakConfig

from backtest.config import get_backtest_settings
from backtest.engine import ReplayEngine
from backtest.report import ReportFormatter
from backtest.storage.tick_source import CsvTickSource


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_backtest_settings()
    parser = argparse.ArgumentParser(
        description="Replay recorded ticks through the range break agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m backtest --ticks usdjpy.csv --instrument USDJPY
  python -m backtest --ticks btc.csv --instrument BTCUSDT --range-pips 500 --auto-trade
  python -m backtest --ticks day2.csv --instrument USDJPY --state-in day1.json --state-out day2.json
        """,
    )

    parser.add_argument(
        "--ticks",
        type=Path,
        required=True,
        help="CSV file with timestamp,symbol,bid,ask rows",
    )
    parser.add_argument(
        "--instrument",
        type=str,
        default=settings.instrument,
        help="Instrument to watch (default: $BACKTEST_INSTRUMENT)",
    )
    parser.add_argument(
        "--lookback-minutes",
        type=int,
        default=settings.lookback_minutes,
        help=f"Period the range must hold (default: {settings.lookback_minutes})",
    )
    parser.add_argument(
        "--range-pips",
        type=Decimal,
        default=settings.range_pips,
        help=f"Range width threshold in pips (default: {settings.range_pips})",
    )
    parser.add_argument(
        "--trailing-stop-pips",
        type=int,
        default=settings.trailing_stop_pips,
        help=f"Trailing stop distance in pips (default: {settings.trailing_stop_pips})",
    )
    parser.add_argument(
        "--units",
        type=int,
        default=settings.trade_units,
        help=f"Units per trade (default: {settings.trade_units})",
    )
    parser.add_argument(
        "--pip-size",
        type=Decimal,
        default=settings.pip_size,
        help="Pip size (default: looked up from the instrument registry)",
    )
    parser.add_argument(
        "--auto-trade",
        action="store_true",
        help="Accept every breakout notification with the paper broker",
    )
    parser.add_argument(
        "--state-in",
        type=Path,
        default=None,
        help="Resume from a checkpoint JSON file",
    )
    parser.add_argument(
        "--state-out",
        type=Path,
        default=None,
        help="Write the final checkpoint to a JSON file",
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file path for JSON results",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> RangeBreakConfig:
    """Build the agent config from CLI arguments.

    Raises:
        pydantic.ValidationError: If a value is invalid or the pip size
            cannot be resolved
    """
    return RangeBreakConfig(
        instrument=args.instrument,
        lookback_minutes=args.lookback_minutes,
        range_pips=args.range_pips,
        trailing_stop_pips=args.trailing_stop_pips,
        trade_units=args.units,
        pip_size=args.pip_size,
    )


def load_checkpoint(path: Path) -> dict:
    """Read a checkpoint file.

    Raises:
        StateRestoreError: If the file is not a JSON object
    """
    try:
        with open(path) as f:
            state = json.load(f)
    except json.JSONDecodeError as e:
        raise StateRestoreError(f"{path}: invalid JSON: {e}") from e
    if not isinstance(state, dict):
        raise StateRestoreError(f"{path}: expected a JSON object")
    return state


def save_checkpoint(state: dict, path: Path) -> None:
    """Write a checkpoint file."""
    with open(path, "w") as f:
        json.dump(state, f, indent=2)
    print(f"Checkpoint saved to {path}")


async def run(args: argparse.Namespace) -> int:
    """Run a replay. Returns the process exit code."""
    try:
        config = build_config(args)
    except ValidationError as e:
        print(f"Error: invalid agent configuration\n{e}")
        return 1

    try:
        state = load_checkpoint(args.state_in) if args.state_in else None
        engine = ReplayEngine(config, auto_trade=args.auto_trade, state=state)
    except StateRestoreError as e:
        print(f"Error: cannot restore checkpoint: {e}")
        return 1

    print(f"\nReplay: {config.instrument} from {args.ticks}")
    if args.state_in:
        print(f"Resuming from {args.state_in}")

    source = CsvTickSource(args.ticks, symbol=config.instrument)
    result = await engine.run(source)

    ReportFormatter.print_console(result)

    if args.output:
        ReportFormatter.save_json(result, args.output)
    if args.state_out:
        save_checkpoint(result.final_state, args.state_out)
    return 0


async def main() -> None:
    args = parse_args()

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    sys.exit(await run(args))


if __name__ == "__main__":
    asyncio.run(main())
