"""Queue eviction: how much buffered low-quality media to discard.

When the ideal variant is well above what is queued, chunks far enough
ahead of the playhead can be dropped and refetched at the better quality.
"""

import logging
import time
from typing import Callable, Optional, Sequence

from abr.ladder import NO_VALUE, QualityVariant
from abr.selection import PendingChunk, SelectionState

logger = logging.getLogger(__name__)

DEFAULT_MIN_DURATION_TO_RETAIN_AFTER_DISCARD_MS = 25000
DEFAULT_MIN_TIME_BETWEEN_BUFFER_REEVALUATION_MS = 2000

# Only SD chunks are worth refetching
HD_MIN_HEIGHT = 720
HD_MIN_WIDTH = 1280


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def playout_duration_us(media_duration_us: int, playback_speed: float) -> int:
    """Convert a media duration into wall-clock playout duration."""
    if playback_speed == 1.0:
        return media_duration_us
    return round(media_duration_us / playback_speed)


def _is_known(value: Optional[int]) -> bool:
    return value is not None and value != NO_VALUE


class QueueEvictionPolicy:
    """Decides the truncation point of the pending chunk queue."""

    def __init__(
        self,
        min_duration_to_retain_after_discard_ms: int = DEFAULT_MIN_DURATION_TO_RETAIN_AFTER_DISCARD_MS,
        min_time_between_buffer_reevaluation_ms: int = DEFAULT_MIN_TIME_BETWEEN_BUFFER_REEVALUATION_MS,
        clock: Callable[[], float] = monotonic_ms,
    ):
        """Initialize policy.

        Args:
            min_duration_to_retain_after_discard_ms: Media that must stay
                queued at the lower quality after a discard
            min_time_between_buffer_reevaluation_ms: Minimum spacing between
                two evaluations
            clock: Monotonic clock in milliseconds
        """
        self.min_duration_to_retain_after_discard_us = min_duration_to_retain_after_discard_ms * 1000
        self.min_time_between_buffer_reevaluation_ms = min_time_between_buffer_reevaluation_ms
        self.clock = clock

    def should_evaluate(self, state: SelectionState, now_ms: float) -> bool:
        return (
            state.last_buffer_evaluation_ms is None
            or now_ms - state.last_buffer_evaluation_ms >= self.min_time_between_buffer_reevaluation_ms
        )

    def is_discardable(
        self, chunk: PendingChunk, ideal: QualityVariant, playout_before_chunk_us: int
    ) -> bool:
        """Whether the queue may be truncated at this chunk."""
        variant = chunk.variant
        return (
            playout_before_chunk_us >= self.min_duration_to_retain_after_discard_us
            and variant.bitrate_kbps < ideal.bitrate_kbps
            and _is_known(variant.height)
            and variant.height < HD_MIN_HEIGHT
            and _is_known(variant.width)
            and variant.width < HD_MIN_WIDTH
            and _is_known(ideal.height)
            and variant.height < ideal.height
        )

    def evaluate(
        self,
        state: SelectionState,
        playback_position_us: int,
        queue: Sequence[PendingChunk],
        ideal: QualityVariant,
    ) -> int:
        """Return how many queued chunks to keep.

        Args:
            state: Selection state (rate-limit timestamp and playback speed)
            playback_position_us: Current playback position
            queue: Pending chunks in playback order
            ideal: Variant the selector currently considers ideal

        Returns:
            Index of the first chunk to discard, or len(queue) to keep all
        """
        now_ms = self.clock()
        if not self.should_evaluate(state, now_ms):
            return len(queue)

        state.last_buffer_evaluation_ms = now_ms
        if not queue:
            return 0

        queue_size = len(queue)
        last_chunk = queue[-1]
        playout_before_last_us = playout_duration_us(
            last_chunk.start_time_us - playback_position_us, state.playback_speed
        )
        if playout_before_last_us < self.min_duration_to_retain_after_discard_us:
            return queue_size

        for i, chunk in enumerate(queue):
            playout_before_chunk_us = playout_duration_us(
                chunk.start_time_us - playback_position_us, state.playback_speed
            )
            if self.is_discardable(chunk, ideal, playout_before_chunk_us):
                logger.info(
                    f"Discarding queue from chunk {i}/{queue_size} "
                    f"({chunk.variant.bitrate_kbps:.0f} kbps < ideal {ideal.bitrate_kbps:.0f} kbps)"
                )
                return i

        return queue_size
