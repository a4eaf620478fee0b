"""Tests for range breakout classification."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from core.candle_window import CandleWindow
from core.models import BreakState, RangeBreakConfig
from core.strategy.range_break import RangeBreakoutDetector

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def minutes(n: float) -> datetime:
    return T0 + timedelta(minutes=n)


def make_detector(lookback_minutes: int = 10, range_pips: str = "20", pip: str = "0.01"):
    return RangeBreakoutDetector(
        range_pips=Decimal(range_pips),
        pip_size=Decimal(pip),
        window=CandleWindow(timedelta(minutes=lookback_minutes)),
    )


def feed_range(detector: RangeBreakoutDetector) -> list[BreakState]:
    """Ticks every minute from t=0 to t=10 between 100.00 and 100.15."""
    prices = ["100.00", "100.05", "100.15", "100.10", "100.02", "100.08",
              "100.12", "100.00", "100.15", "100.07", "100.09"]
    return [
        detector.classify(Decimal(p), minutes(i)).state
        for i, p in enumerate(prices)
    ]


class TestClassifyScenarios:
    """Worked examples for the breakout rules."""

    def test_single_tick_on_empty_window(self):
        detector = make_detector()
        result = detector.classify(Decimal("100"), T0)

        assert result.state == BreakState.NO_SIGNAL
        assert result.price == Decimal("100")
        assert result.time == T0
        assert len(detector.window) == 1

    def test_narrow_range_stays_quiet(self):
        detector = make_detector()
        states = feed_range(detector)

        assert all(s == BreakState.NO_SIGNAL for s in states)
        assert detector.window.highest() - detector.window.lowest() == Decimal("0.15")

    def test_break_high_resets_window(self):
        detector = make_detector()
        feed_range(detector)

        result = detector.classify(Decimal("100.30"), minutes(11))
        assert result.state == BreakState.BREAK_HIGH
        assert result.is_break

        # Window was reset and seeded with the breakout tick
        assert len(detector.window) == 1
        assert detector.window.oldest_bucket_start() == minutes(10)
        assert detector.window.highest() == Decimal("100.30")

        follow = detector.classify(Decimal("100.31"), minutes(11) + timedelta(seconds=1))
        assert follow.state == BreakState.NO_SIGNAL
        assert len(detector.window) == 1
        assert detector.window.highest() == Decimal("100.31")

    def test_break_low(self):
        detector = make_detector()
        feed_range(detector)

        result = detector.classify(Decimal("99.97"), minutes(11))
        assert result.state == BreakState.BREAK_LOW
        assert detector.window.oldest_bucket_start() == minutes(10)

    def test_band_edges_are_inclusive(self):
        """center = 100.075, band = 0.10: 100.175 breaks high, 99.975 breaks low."""
        high = make_detector()
        feed_range(high)
        assert high.classify(Decimal("100.175"), minutes(11)).state == BreakState.BREAK_HIGH

        low = make_detector()
        feed_range(low)
        assert low.classify(Decimal("99.975"), minutes(11)).state == BreakState.BREAK_LOW

    def test_just_inside_band(self):
        detector = make_detector()
        feed_range(detector)
        assert detector.classify(Decimal("100.174"), minutes(11)).state == BreakState.NO_SIGNAL

    def test_insufficient_history_never_breaks(self):
        detector = make_detector()
        detector.classify(Decimal("100.00"), minutes(0))
        detector.classify(Decimal("100.10"), minutes(5))

        # Far outside the band, but history spans only 9 minutes
        result = detector.classify(Decimal("105"), minutes(9))
        assert result.state == BreakState.NO_SIGNAL

    def test_wide_range_never_breaks(self):
        detector = make_detector()
        detector.classify(Decimal("100.00"), minutes(0))
        detector.classify(Decimal("100.20"), minutes(5))  # diff == threshold

        result = detector.classify(Decimal("101"), minutes(11))
        assert result.state == BreakState.NO_SIGNAL

    def test_odd_range_pips_use_exact_half(self):
        """range 21 pips gives a 0.105 band, not 0.10."""
        inside = make_detector(range_pips="21")
        inside.classify(Decimal("100.00"), minutes(0))
        inside.classify(Decimal("100.00"), minutes(10))
        assert inside.classify(Decimal("100.10"), minutes(11)).state == BreakState.NO_SIGNAL

        edge = make_detector(range_pips="21")
        edge.classify(Decimal("100.00"), minutes(0))
        edge.classify(Decimal("100.00"), minutes(10))
        assert edge.classify(Decimal("100.105"), minutes(11)).state == BreakState.BREAK_HIGH

    def test_naive_time_is_utc(self):
        detector = make_detector()
        result = detector.classify(Decimal("100"), datetime(2024, 1, 1))
        assert result.time == T0


class TestDetectorProperties:
    """Properties that hold over tick sequences."""

    def test_oldest_equals_breakout_bucket(self):
        detector = make_detector(lookback_minutes=20, range_pips="50")
        price = Decimal("100")
        breaks = 0
        for i in range(600):
            # Slow drift with periodic jumps
            price += Decimal("0.01") if i % 40 < 30 else Decimal("-0.02")
            if i % 97 == 96:
                price += Decimal("1")
            t = minutes(i)
            result = detector.classify(price, t)
            if result.is_break:
                breaks += 1
                assert detector.window.oldest_bucket_start() == minutes(i - i % 5)
        assert breaks > 0

    def test_checkpoint_replay_is_idempotent(self):
        detector = make_detector()
        feed_range(detector)

        blob = detector.state().model_dump(mode="json")
        restored = make_detector()
        restored.restore_state(blob)

        tick = (Decimal("100.11"), minutes(11))
        assert detector.classify(*tick).state == restored.classify(*tick).state
        assert detector.state() == restored.state()

    def test_checkpoint_preserves_breakout(self):
        detector = make_detector()
        feed_range(detector)

        restored = make_detector()
        restored.restore_state(detector.state())
        assert restored.classify(Decimal("100.30"), minutes(11)).state == BreakState.BREAK_HIGH


class TestFromConfig:
    """Tests for building a detector from configuration."""

    def test_uses_config_values(self):
        config = RangeBreakConfig(instrument="USDJPY", lookback_minutes=120, range_pips=Decimal("50"))
        detector = RangeBreakoutDetector.from_config(config)

        assert detector.range_pips == Decimal("50")
        assert detector.pip_size == Decimal("0.01")
        assert detector.window.lookback_period == timedelta(minutes=120)

    @pytest.mark.parametrize("instrument,pip", [("EURUSD", "0.0001"), ("BTCUSDT", "0.1")])
    def test_pip_from_registry(self, instrument, pip):
        config = RangeBreakConfig(instrument=instrument)
        assert RangeBreakoutDetector.from_config(config).pip_size == Decimal(pip)
