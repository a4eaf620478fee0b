"""Report formatting for replay results.

Outputs results to console (formatted tables) and JSON files.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum

from backtest.engine import ReplayResult


class DecimalEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


class ReportFormatter:
    """Format replay results for display and export."""

    @staticmethod
    def print_console(result: ReplayResult) -> None:
        """Print formatted report to console."""
        config = result.config

        print("\n" + "=" * 70)
        print("  REPLAY RESULTS - Range Break")
        print("=" * 70)
        if result.start_time and result.end_time:
            print(f"  Period: {result.start_time:%Y-%m-%d %H:%M} → {result.end_time:%Y-%m-%d %H:%M}")
        print(f"  Instrument: {result.instrument} (pip {config.pip_size})")
        print(
            f"  Lookback: {config.lookback_minutes}min  Range: {config.range_pips}pips  "
            f"Trailing stop: {config.trailing_stop_pips}pips"
        )

        print("\n" + "-" * 70)
        print("  TICKS")
        print("-" * 70)
        print(f"  Total:          {result.ticks}")
        print(f"  Other symbols:  {result.skipped}")
        for state, count in sorted(result.counts.items()):
            print(f"  {state:<15} {count}")

        if result.notifications:
            print("\n" + "-" * 70)
            print(f"  BREAKOUTS (last 10 of {len(result.notifications)})")
            print("-" * 70)
            for n in result.notifications[-10:]:
                print(f"  {n.timestamp:%Y-%m-%d %H:%M:%S}  {n.message}")

        if result.fills:
            print("\n" + "-" * 70)
            print(f"  PAPER FILLS ({len(result.fills)})")
            print("-" * 70)
            print(f"  {'Time':<20} {'Side':<6} {'Units':>6} {'Price':>14}")
            for f in result.fills[-10:]:
                print(f"  {f.time:%Y-%m-%d %H:%M:%S}  {f.side.value:<6} {f.units:>6} {f.price:>14}")

        errors = [o for o in result.outcomes if o.is_error]
        if errors:
            print(f"\n  Failed actions: {len(errors)}")

        print(f"\n  Window at end: {len(result.final_state.get('candles', []))} candles")
        print("\n" + "=" * 70)

    @staticmethod
    def to_dict(result: ReplayResult) -> dict:
        """Convert results to JSON-serializable dict."""
        return {
            "metadata": {
                "instrument": result.instrument,
                "start_time": result.start_time.isoformat() if result.start_time else None,
                "end_time": result.end_time.isoformat() if result.end_time else None,
                "config": result.config.model_dump(mode="json"),
            },
            "ticks": {
                "total": result.ticks,
                "skipped": result.skipped,
                "by_state": dict(result.counts),
            },
            "notifications": [
                n.model_dump(mode="json") for n in result.notifications
            ],
            "outcomes": [
                o.model_dump(mode="json") for o in result.outcomes
            ],
            "fills": [
                {
                    "order_id": f.order_id,
                    "instrument": f.instrument,
                    "side": f.side.value,
                    "units": f.units,
                    "price": str(f.price),
                    "time": f.time.isoformat(),
                    "trailing_stop_pips": f.trailing_stop_pips,
                }
                for f in result.fills
            ],
            "final_state": result.final_state,
        }

    @staticmethod
    def save_json(result: ReplayResult, filepath: str) -> None:
        """Save results to JSON file."""
        data = ReportFormatter.to_dict(result)
        with open(filepath, "w") as f:
            json.dump(data, f, indent=2, cls=DecimalEncoder)
        print(f"\nResults saved to {filepath}")
