"""
Queue Eviction Unit Tests

Tests rate limiting, retained headroom and the sub-HD discard rule.
"""

import pytest

from abr.eviction import QueueEvictionPolicy, playout_duration_us
from abr.ladder import QualityVariant
from abr.selection import PendingChunk, SelectionState

SECOND_US = 1_000_000


def queue_of(variant: QualityVariant, count: int, spacing_s: int = 10) -> list[PendingChunk]:
    return [PendingChunk(start_time_us=i * spacing_s * SECOND_US, variant=variant) for i in range(count)]


class TestQueueEvictionPolicy:
    """Truncation point of the pending queue."""

    @pytest.fixture
    def policy(self, clock):
        return QueueEvictionPolicy(clock=clock)

    def test_discards_from_first_far_sd_chunk(self, policy, envivio_ladder):
        """480p chunks 30 s ahead are dropped when 1080p is ideal."""
        state = SelectionState()
        queue = queue_of(envivio_ladder.variant(2), 5)

        size = policy.evaluate(state, 0, queue, envivio_ladder.variant(4))

        assert size == 3, f"Expected truncation at chunk 3, got {size}"

    def test_rate_limited(self, policy, clock, envivio_ladder):
        state = SelectionState()
        queue = queue_of(envivio_ladder.variant(2), 5)
        ideal = envivio_ladder.variant(4)

        assert policy.evaluate(state, 0, queue, ideal) == 3
        clock.advance(500)
        assert policy.evaluate(state, 0, queue, ideal) == 5, "Evaluation within 2 s must keep all"
        clock.advance(1500)
        assert policy.evaluate(state, 0, queue, ideal) == 3

    def test_empty_queue(self, policy, clock, envivio_ladder):
        state = SelectionState()

        assert policy.evaluate(state, 0, [], envivio_ladder.variant(4)) == 0
        assert state.last_buffer_evaluation_ms == clock.now_ms

    def test_short_queue_kept(self, policy, envivio_ladder):
        """Nothing is dropped when the whole queue plays out within 25 s."""
        queue = queue_of(envivio_ladder.variant(0), 3)

        assert policy.evaluate(SelectionState(), 0, queue, envivio_ladder.variant(5)) == 3

    def test_hd_chunks_kept(self, policy, envivio_ladder):
        queue = queue_of(envivio_ladder.variant(3), 5)

        assert policy.evaluate(SelectionState(), 0, queue, envivio_ladder.variant(5)) == 5

    def test_higher_bitrate_than_ideal_kept(self, policy, envivio_ladder):
        queue = queue_of(envivio_ladder.variant(2), 5)

        assert policy.evaluate(SelectionState(), 0, queue, envivio_ladder.variant(1)) == 5

    def test_unknown_resolution_kept(self, policy):
        chunk_variant = QualityVariant(0, 300.0)
        ideal = QualityVariant(1, 4300.0, 1920, 1080)

        assert policy.evaluate(SelectionState(), 0, queue_of(chunk_variant, 5), ideal) == 5

    def test_playback_speed_shrinks_headroom(self, policy, envivio_ladder):
        """At 2x the last chunk is only 20 s of playout away."""
        state = SelectionState(playback_speed=2.0)
        queue = queue_of(envivio_ladder.variant(2), 5)

        assert policy.evaluate(state, 0, queue, envivio_ladder.variant(4)) == 5

    def test_playout_duration(self):
        assert playout_duration_us(3_000_000, 1.0) == 3_000_000
        assert playout_duration_us(3_000_000, 2.0) == 1_500_000
        assert playout_duration_us(1_000_000, 3.0) == 333_333
