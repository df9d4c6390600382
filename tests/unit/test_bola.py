"""
Utility-Based Selector Unit Tests

Tests the Lyapunov control parameters and buffer-driven level choice.
"""

import math

import pytest

from abr.bola import UtilityBasedSelector, lyapunov_parameters
from abr.ladder import BitrateLadder
from abr.selection import BufferState, SelectionReason, SelectionState


def buffer_of(seconds: float) -> BufferState:
    return BufferState(playback_position_us=0, buffered_duration_us=int(seconds * 1_000_000))


class TestLyapunovParameters:
    """gp and vp derivation."""

    def test_parameters_at_buffer_floor(self, envivio_ladder):
        """10 + 2 * 6 = 22 s buffer floor for a six-level ladder."""
        gp, vp = lyapunov_parameters(envivio_ladder.utilities, 22.0, 10.0)

        assert gp == pytest.approx((math.log(4300) - 1) / 1.2)
        assert gp == pytest.approx(6.138642, rel=1e-5)
        assert vp == pytest.approx(1.629028, rel=1e-5)

    def test_highest_utility_first_is_degenerate(self):
        assert lyapunov_parameters([math.log(4300), math.log(300)], 22.0) is None

    def test_buffer_at_minimum_is_degenerate(self, envivio_ladder):
        assert lyapunov_parameters(envivio_ladder.utilities, 10.0, 10.0) is None


class TestUtilityBasedSelector:
    """Per-chunk decisions."""

    def test_initial_selection_is_top_bitrate(self, envivio_ladder):
        selector = UtilityBasedSelector(envivio_ladder)

        result = selector.select(buffer_of(0), SelectionState())

        assert result.index == 0
        assert result.reason == SelectionReason.INITIAL
        assert envivio_ladder.variant_for_index(result.index).bitrate_kbps == 4300.0

    def test_low_buffer_drops_to_lowest_bitrate(self, envivio_ladder):
        """At 5 s the lowest bitrate scores best, which maps to index 5."""
        selector = UtilityBasedSelector(envivio_ladder)
        state = SelectionState(selected_index=0, reason=SelectionReason.INITIAL)

        scores = selector.scores(5.0)
        result = selector.select(buffer_of(5), state)

        assert scores.index(max(scores)) == 0
        assert scores[0] == pytest.approx(0.047638, rel=1e-4)
        assert result.index == 5
        assert result.reason == SelectionReason.ADAPTIVE
        assert envivio_ladder.variant_for_index(result.index).bitrate_kbps == 300.0

    def test_unchanged_index_keeps_reason(self, envivio_ladder):
        selector = UtilityBasedSelector(envivio_ladder)
        state = SelectionState(selected_index=5, reason=SelectionReason.INITIAL)

        result = selector.select(buffer_of(5), state)

        assert result.index == 5, f"Expected no change, got {result.index}"
        assert result.reason == SelectionReason.INITIAL, "Reason must stay INITIAL without a change"

    def test_high_buffer_switches(self, envivio_ladder):
        """At 60 s the top bitrate scores best, which maps to index 0."""
        selector = UtilityBasedSelector(envivio_ladder)
        state = SelectionState(selected_index=5, reason=SelectionReason.INITIAL)

        scores = selector.scores(60.0)
        result = selector.select(buffer_of(60), state)

        assert scores[5] == pytest.approx(0.0015785, rel=1e-3)
        assert scores[5] > scores[4]
        assert result.index == 0
        assert result.reason == SelectionReason.ADAPTIVE
        assert envivio_ladder.variant_for_index(result.index).bitrate_kbps == 4300.0

    def test_ties_go_to_later_level(self):
        """Equal scores pick the last scanned level."""
        ladder = BitrateLadder.from_bitrates([1000.0, 1000.0, 2000.0])
        selector = UtilityBasedSelector(ladder)
        state = SelectionState(selected_index=2, reason=SelectionReason.INITIAL)

        scores = selector.scores(5.0)
        result = selector.select(buffer_of(5), state)

        assert scores[0] == scores[1]
        assert scores[0] > scores[2]
        assert result.index == 1, "Tie between levels 0 and 1 must resolve to level 1"

    def test_degenerate_ladder_keeps_selection(self):
        ladder = BitrateLadder.from_bitrates([4300.0, 300.0])
        selector = UtilityBasedSelector(ladder)
        state = SelectionState(selected_index=1, reason=SelectionReason.INITIAL)

        result = selector.select(buffer_of(30), state)

        assert result.index == 1
        assert result.reason == SelectionReason.INITIAL

    def test_single_level_ladder(self):
        ladder = BitrateLadder.from_bitrates([500.0])
        selector = UtilityBasedSelector(ladder)

        initial = selector.select(buffer_of(0), SelectionState())
        state = SelectionState(selected_index=initial.index, reason=initial.reason)
        later = selector.select(buffer_of(30), state)

        assert initial.index == 0
        assert later.index == 0
        assert later.reason == SelectionReason.INITIAL
