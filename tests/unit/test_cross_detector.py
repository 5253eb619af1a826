"""
Tests for CrossDetector
=======================
Crossing rules, missing data, duplicate suppression and per-key state.
"""

import math

import pytest

from volume_cross.domain.models.market import MovingAveragePoint
from volume_cross.domain.models.signals import CrossType
from volume_cross.domain.services.cross_detector import CrossDetector, DetectorState

pytestmark = [pytest.mark.unit, pytest.mark.fast]

T0 = 1_700_000_000_000


@pytest.fixture
def detector(mock_logger):
    return CrossDetector(logger=mock_logger)


def feed(detector, pairs, exchange="bybit", symbol="BTC", start=T0):
    """Feed (fast, slow) pairs one minute apart, returning events per call"""
    return [
        detector.observe(exchange, symbol, start + i * 60_000, fast, slow)
        for i, (fast, slow) in enumerate(pairs)
    ]


class TestInsufficientHistory:

    def test_single_point_emits_nothing(self, detector):
        assert detector.observe("bybit", "BTC", T0, 90.0, 100.0) == []
        assert detector.state("bybit", "BTC") == DetectorState.HAVE_ONE_POINT

    def test_fresh_key_has_no_history(self, detector):
        assert detector.state("bybit", "BTC") == DetectorState.NO_HISTORY

    def test_second_point_reaches_steady_state(self, detector):
        feed(detector, [(90.0, 100.0), (95.0, 98.0)])

        assert detector.state("bybit", "BTC") == DetectorState.STEADY


class TestCrossingRules:

    def test_golden_cross_fires_once_at_third_pair(self, detector):
        results = feed(detector, [(90.0, 100.0), (95.0, 98.0), (102.0, 97.0)])

        assert results[0] == [] and results[1] == []
        assert len(results[2]) == 1
        event = results[2][0]
        assert event.type == CrossType.GOLDEN
        assert event.timestamp == T0 + 120_000
        assert (event.fast_value, event.slow_value) == (102.0, 97.0)
        assert (event.prev_fast_value, event.prev_slow_value) == (95.0, 98.0)

    def test_death_cross(self, detector):
        results = feed(detector, [(100.0, 90.0), (95.0, 98.0)])

        assert [e.type for e in results[1]] == [CrossType.DEATH]

    def test_touching_then_crossing_up_is_golden(self, detector):
        results = feed(detector, [(98.0, 98.0), (99.0, 98.0)])

        assert [e.type for e in results[1]] == [CrossType.GOLDEN]

    def test_touching_then_crossing_down_is_death(self, detector):
        results = feed(detector, [(98.0, 98.0), (97.0, 98.0)])

        assert [e.type for e in results[1]] == [CrossType.DEATH]

    def test_staying_above_does_not_repeat(self, detector):
        results = feed(detector, [(90.0, 100.0), (102.0, 97.0), (103.0, 96.0), (110.0, 90.0)])

        assert sum(len(r) for r in results) == 1

    def test_equal_values_do_not_fire(self, detector):
        results = feed(detector, [(90.0, 100.0), (98.0, 98.0)])

        assert results[1] == []

    def test_keys_are_tracked_separately(self, detector):
        detector.observe("bybit", "BTC", T0, 90.0, 100.0)
        detector.observe("binance", "BTC", T0, 110.0, 100.0)

        events = detector.observe("bybit", "BTC", T0 + 1, 102.0, 97.0)

        assert [e.exchange for e in events] == ["bybit"]

    def test_observe_point_uses_moving_averages(self, detector):
        detector.observe_point("bybit", "BTC", MovingAveragePoint(timestamp=T0, value=1.0, ma_fast=90.0, ma_slow=100.0))
        events = detector.observe_point(
            "bybit", "BTC", MovingAveragePoint(timestamp=T0 + 1, value=1.0, ma_fast=101.0, ma_slow=100.0)
        )

        assert [e.type for e in events] == [CrossType.GOLDEN]


class TestMissingData:

    @pytest.mark.parametrize("bad_value", [None, math.nan, "abc", object()])
    def test_malformed_current_value_yields_no_event(self, detector, bad_value):
        detector.observe("bybit", "BTC", T0, 90.0, 100.0)

        assert detector.observe("bybit", "BTC", T0 + 1, bad_value, 97.0) == []

    def test_missing_point_is_still_consumed(self, detector):
        results = feed(detector, [(90.0, 100.0), (None, 98.0), (102.0, 97.0)])

        # The third pair is compared against the missing one, not the first
        assert results == [[], [], []]

    def test_never_raises_on_garbage(self, detector):
        feed(detector, [("x", "y"), ({}, []), (1.0, 2.0)])

        assert detector.state("bybit", "BTC") == DetectorState.STEADY

    @pytest.mark.parametrize("bad_timestamp", ["not-a-time", None, math.nan, math.inf, object()])
    def test_malformed_timestamp_is_ignored(self, detector, mock_logger, bad_timestamp):
        detector.observe("bybit", "BTC", T0, 90.0, 100.0)

        assert detector.observe("bybit", "BTC", bad_timestamp, 95.0, 98.0) == []
        assert detector.state("bybit", "BTC") == DetectorState.HAVE_ONE_POINT
        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args[0][0] == "cross_detector.invalid_point"

        # Next valid point still compares against the first one
        events = detector.observe("bybit", "BTC", T0 + 60_000, 102.0, 97.0)
        assert [e.prev_fast_value for e in events] == [90.0]


class TestOrderingAndHousekeeping:

    def test_older_point_is_ignored(self, detector):
        detector.observe("bybit", "BTC", T0 + 2000, 90.0, 100.0)

        assert detector.observe("bybit", "BTC", T0 + 1000, 102.0, 97.0) == []
        events = detector.observe("bybit", "BTC", T0 + 3000, 102.0, 97.0)
        assert [e.prev_fast_value for e in events] == [90.0]

    def test_clear_history_for_one_key(self, detector):
        detector.observe("bybit", "BTC", T0, 90.0, 100.0)
        detector.observe("bybit", "ETH", T0, 90.0, 100.0)

        detector.clear_history("BTC", "bybit")

        assert detector.monitored_keys() == ["bybit:ETH"]
        assert detector.state("bybit", "BTC") == DetectorState.NO_HISTORY

    def test_clear_all_history(self, detector):
        detector.observe("bybit", "BTC", T0, 90.0, 100.0)

        detector.clear_history()

        assert detector.monitored_keys() == []
