"""Selection controller owning one playback session's decision state.

Composes a quality selector, the queue eviction policy and an optional
bandwidth allocator. All calls are expected from a single decision thread.
"""

import logging
import time
from typing import Any, Literal, Optional, Sequence

from abr.bandwidth import BandwidthAllocator
from abr.eviction import QueueEvictionPolicy
from abr.interfaces.selector import IQualitySelector
from abr.ladder import QualityVariant
from abr.qoe import QoEAccumulator
from abr.selection import (
    BufferState,
    PendingChunk,
    SelectionReason,
    SelectionResult,
    SelectionState,
)
from service.metrics import DecisionMetrics

logger = logging.getLogger(__name__)

IdealIndexSource = Literal["selected", "bandwidth"]


class SelectionController:
    """Per-session orchestrator exposed to the playback system."""

    def __init__(
        self,
        selector: IQualitySelector,
        eviction_policy: QueueEvictionPolicy,
        allocator: Optional[BandwidthAllocator] = None,
        metrics: Optional[DecisionMetrics] = None,
        ideal_index_source: IdealIndexSource = "selected",
        session_id: str = "default",
    ):
        """Initialize controller.

        Args:
            selector: Strategy making per-chunk decisions
            eviction_policy: Decides queue truncation
            allocator: Bandwidth share for this selection, if tracked
            metrics: Shared metrics collector
            ideal_index_source: "selected" uses the current selection as the
                ideal variant, "bandwidth" the best variant fitting the
                allocated bandwidth
            session_id: Identifier used in log records
        """
        if ideal_index_source == "bandwidth" and allocator is None:
            raise ValueError("ideal_index_source='bandwidth' requires an allocator")

        self.selector = selector
        self.eviction_policy = eviction_policy
        self.allocator = allocator
        self.metrics = metrics or DecisionMetrics()
        self.ideal_index_source = ideal_index_source
        self.session_id = session_id

        self.state = SelectionState()
        self.qoe = QoEAccumulator()

    @property
    def ladder(self):
        return self.selector.ladder

    def update_selected_track(self, buffer_state: BufferState) -> SelectionResult:
        """Run one selector decision and apply it to the session state."""
        failures_before = getattr(self.selector, "inference_failures", 0)
        start_time = time.perf_counter()

        result = self.selector.select(buffer_state, self.state)

        latency_ms = (time.perf_counter() - start_time) * 1000.0
        switched = result.index != self.state.selected_index
        if switched:
            logger.info(
                f"Selection {self.state.selected_index} -> {result.index} ({result.reason.value})",
                extra={"session_id": self.session_id, "latency_ms": round(latency_ms, 3)},
            )

        self.state.selected_index = result.index
        self.state.reason = result.reason
        if result.reward is not None:
            self.qoe.record_reward(result.reward)
        if result.bitrate_kbps is not None:
            self.qoe.record_bitrate(result.bitrate_kbps)

        self.metrics.record_decision(
            latency_ms, switched and result.reason == SelectionReason.ADAPTIVE
        )
        if getattr(self.selector, "inference_failures", 0) > failures_before:
            self.metrics.increment_inference_failure()

        return result

    def get_selected_index(self) -> int:
        return self.state.selected_index

    def get_selection_reason(self) -> SelectionReason:
        return self.state.reason

    def selected_variant(self) -> QualityVariant:
        """Variant played for the current selection index."""
        return self.ladder.variant_for_index(self.state.selected_index)

    def get_allocated_bandwidth(self) -> Optional[int]:
        """Allocated bandwidth in bps, or None without an allocator."""
        if self.allocator is None:
            return None
        return self.allocator.get_allocated_bandwidth()

    def ideal_index(self) -> int:
        """Selection index of the variant queue eviction compares against.

        In bandwidth mode this is the highest variant whose bitrate, scaled
        by playback speed, fits the allocated bandwidth, falling back to the
        lowest variant.
        """
        if self.ideal_index_source == "selected" or self.allocator is None:
            return self.state.selected_index

        effective_bitrate = self.allocator.get_allocated_bandwidth()
        for index in range(len(self.ladder)):
            variant = self.ladder.variant_for_index(index)
            if round(variant.bitrate_bps * self.state.playback_speed) <= effective_bitrate:
                return index
        return len(self.ladder) - 1

    def evaluate_queue_size(
        self, playback_position_us: int, queue: Sequence[PendingChunk]
    ) -> int:
        """Return how many queued chunks to keep."""
        ideal = self.ladder.variant_for_index(self.ideal_index())
        queue_size = self.eviction_policy.evaluate(
            self.state, playback_position_us, queue, ideal
        )
        if queue_size < len(queue):
            self.metrics.increment_queue_discard()
            logger.info(
                f"Truncating queue to {queue_size}/{len(queue)} chunks",
                extra={"session_id": self.session_id},
            )
        return queue_size

    def on_playback_speed_changed(self, playback_speed: float) -> None:
        if playback_speed <= 0:
            raise ValueError(f"Playback speed must be > 0, got {playback_speed}")
        self.state.playback_speed = playback_speed

    def enable(self) -> None:
        """Reset evaluation timers on stream (re)start."""
        self.state.last_buffer_evaluation_ms = None

    def qoe_snapshot(self) -> dict[str, Any]:
        return self.qoe.snapshot()

    def status(self) -> dict[str, Any]:
        """Session state as a JSON-serializable dictionary."""
        variant = self.selected_variant()
        return {
            "session_id": self.session_id,
            "strategy": type(self.selector).__name__,
            "selected_index": self.state.selected_index,
            "selected_bitrate_kbps": variant.bitrate_kbps,
            "reason": self.state.reason.value,
            "playback_speed": self.state.playback_speed,
            "allocated_bandwidth_bps": self.get_allocated_bandwidth(),
            "qoe": self.qoe_snapshot(),
        }
