"""
Policy-Based Selector Unit Tests

Tests state window updates, decision mapping, reward accounting and
inference failure handling with a scripted policy model.
"""

import math

import numpy as np
import pytest

from abr.exceptions import ConfigurationError
from abr.pensieve import PolicyBasedSelector
from abr.qoe import QoEType
from abr.selection import BufferState, SelectionReason, SelectionState
from abr.state_window import (
    BITRATE_ROW,
    BUFFER_ROW,
    NEXT_CHUNK_SIZES_ROW,
    REMAINING_CHUNKS_ROW,
    THROUGHPUT_ROW,
)
from service.chunk_sizes import ChunkSizeTable
from service.load_info import ReportedLoadInfo

TOTAL_CHUNKS = 48


def chunk_table(levels: int = 6, total_chunks: int = TOTAL_CHUNKS) -> ChunkSizeTable:
    """Every chunk of level l is (l + 1) MB."""
    return ChunkSizeTable([[(level + 1) * 1_000_000] * (total_chunks + 1) for level in range(levels)])


def buffer_of(seconds: float) -> BufferState:
    return BufferState(playback_position_us=0, buffered_duration_us=int(seconds * 1_000_000))


class TestPolicyBasedSelector:
    """Decisions driven by the scripted model."""

    @pytest.fixture
    def load_info(self):
        return ReportedLoadInfo()

    @pytest.fixture
    def selector(self, envivio_ladder, policy_model, load_info):
        return PolicyBasedSelector(
            envivio_ladder, policy_model, load_info, chunk_table(), TOTAL_CHUNKS
        )

    @pytest.fixture
    def started(self, selector):
        """State after the initial selection."""
        result = selector.select(buffer_of(0), SelectionState())
        return SelectionState(selected_index=result.index, reason=result.reason)

    def test_initial_selection(self, selector, envivio_ladder):
        """Initial level is the second ladder position."""
        result = selector.select(buffer_of(0), SelectionState())

        assert result.index == 4
        assert result.reason == SelectionReason.INITIAL
        assert result.reward is None
        assert envivio_ladder.variant_for_index(result.index).bitrate_kbps == 750.0

    def test_non_media_load_is_ignored(self, selector, started, load_info, policy_model):
        load_info.record_load(500, is_media=False)

        result = selector.select(buffer_of(4), started)

        assert result.index == started.selected_index
        assert result.reason == SelectionReason.INITIAL
        assert selector.chunks_processed == 0
        assert policy_model.states == [], "Model must not run for non-media loads"

    def test_adaptive_decision_and_reward(self, selector, started, load_info, envivio_ladder):
        """Model prefers level 2 while level 1 is playing."""
        load_info.record_load(0, is_media=True)

        result = selector.select(buffer_of(4), started)

        assert result.index == 3, f"Level 2 should map to index 3, got {result.index}"
        assert result.reason == SelectionReason.ADAPTIVE
        # 750 kbps, no rebuffering, no switch from the 750 kbps default
        assert result.reward == pytest.approx(0.75)
        assert result.bitrate_kbps == 1200.0
        assert envivio_ladder.variant_for_index(result.index).bitrate_kbps == result.bitrate_kbps
        assert selector.chunks_processed == 1

    def test_second_decision_penalizes_switch(self, selector, started, load_info):
        load_info.record_load(0, is_media=True)
        first = selector.select(buffer_of(4), started)
        state = SelectionState(selected_index=first.index, reason=first.reason)

        load_info.record_load(2000, is_media=True)
        second = selector.select(buffer_of(3), state)

        # 1200 kbps after 750 kbps, 2 s download covered by 4 s buffer
        assert second.reward == pytest.approx(1.2 - 0.45)
        assert second.index == 3
        assert second.reason == SelectionReason.ADAPTIVE, "Unchanged level keeps the previous reason"

    def test_rebuffering_penalty(self, selector, started, load_info):
        """Download longer than the previous buffer counts as rebuffering."""
        load_info.record_load(1500, is_media=True)

        result = selector.select(buffer_of(4), started)

        assert result.reward == pytest.approx(0.75 - 4.3 * 1.5)

    def test_state_window_contents(self, selector, started, load_info, policy_model):
        load_info.record_load(0, is_media=True)
        selector.select(buffer_of(4), started)

        state = policy_model.states[-1]
        assert state.shape == (1, 6, 8)
        assert state.dtype == np.float32
        assert state[0, BITRATE_ROW, -1] == pytest.approx(750 / 4300)
        assert state[0, BUFFER_ROW, -1] == pytest.approx(0.4)
        # 2 MB chunk over a 1 ms floor
        assert state[0, THROUGHPUT_ROW, -1] == pytest.approx(2000.0)
        assert state[0, REMAINING_CHUNKS_ROW, -1] == pytest.approx(1.0)
        assert state[0, BITRATE_ROW, :-1].tolist() == [0.0] * 7, "Older slots stay zero"
        assert state[0, NEXT_CHUNK_SIZES_ROW].tolist() == pytest.approx(
            [1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 0.0, 0.0]
        )

    def test_history_shifts_left(self, selector, started, load_info, policy_model):
        load_info.record_load(0, is_media=True)
        first = selector.select(buffer_of(4), started)
        state = SelectionState(selected_index=first.index, reason=first.reason)
        selector.select(buffer_of(6), state)

        window = policy_model.states[-1]
        assert window[0, BUFFER_ROW, -2:].tolist() == pytest.approx([0.4, 0.6])
        assert window[0, BITRATE_ROW, -2:].tolist() == pytest.approx([750 / 4300, 1200 / 4300])

    def test_end_of_video_chunk_sizes(self, envivio_ladder, policy_model, load_info):
        selector = PolicyBasedSelector(
            envivio_ladder, policy_model, load_info, chunk_table(total_chunks=1), total_chunks=1
        )
        initial = selector.select(buffer_of(0), SelectionState())
        state = SelectionState(selected_index=initial.index, reason=initial.reason)

        load_info.record_load(100, is_media=True)
        first = selector.select(buffer_of(4), state)
        state = SelectionState(selected_index=first.index, reason=first.reason)
        selector.select(buffer_of(4), state)

        sizes = policy_model.states[-1][0, NEXT_CHUNK_SIZES_ROW]
        assert sizes[:6].tolist() == pytest.approx([-1e-6] * 6)

    def test_inference_failure_keeps_selection(self, selector, started, load_info, policy_model):
        policy_model.fail_with = RuntimeError("interpreter crashed")
        load_info.record_load(200, is_media=True)

        result = selector.select(buffer_of(4), started)

        assert result.index == started.selected_index
        assert result.reason == started.reason
        assert result.reward is None
        assert selector.inference_failures == 1
        assert selector.chunks_processed == 1, "Window update precedes inference"

    def test_malformed_scores_count_as_failure(self, selector, started, load_info, policy_model):
        policy_model.output_shape = (1, 5)
        load_info.record_load(200, is_media=True)

        result = selector.select(buffer_of(4), started)

        assert result.index == started.selected_index
        assert selector.inference_failures == 1

    def test_log_reward(self, envivio_ladder, policy_model, load_info):
        selector = PolicyBasedSelector(
            envivio_ladder,
            policy_model,
            load_info,
            chunk_table(),
            TOTAL_CHUNKS,
            qoe_type=QoEType.LOG,
        )
        initial = selector.select(buffer_of(0), SelectionState())
        state = SelectionState(selected_index=initial.index, reason=initial.reason)
        load_info.record_load(0, is_media=True)

        result = selector.select(buffer_of(4), state)

        assert result.reward == pytest.approx(math.log(750 / 300))


class TestPolicyBasedSelectorConfiguration:
    """Construction rejects settings the model input cannot represent."""

    def test_total_chunks_must_be_positive(self, envivio_ladder, policy_model):
        with pytest.raises(ConfigurationError):
            PolicyBasedSelector(
                envivio_ladder, policy_model, ReportedLoadInfo(), chunk_table(), total_chunks=0
            )

    def test_ladder_must_fit_history(self, envivio_ladder, policy_model):
        with pytest.raises(ConfigurationError, match="history length 4"):
            PolicyBasedSelector(
                envivio_ladder,
                policy_model,
                ReportedLoadInfo(),
                chunk_table(),
                TOTAL_CHUNKS,
                history_length=4,
            )
