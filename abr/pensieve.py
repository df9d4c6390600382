"""Policy-based selector (Pensieve).

Feeds a rolling state window to a pretrained policy model after every media
chunk download, follows the model's highest-scoring level, and keeps a linear
QoE reward tally for the chunks it selected.
"""

import logging

import numpy as np

from abr.exceptions import ConfigurationError, InferenceError
from abr.interfaces.inference import IPolicyModel
from abr.interfaces.load_info import IChunkSizeSource, ILoadInfoProvider
from abr.interfaces.selector import IQualitySelector
from abr.ladder import BitrateLadder, known_bitrate
from abr.qoe import M_IN_K, REBUF_PENALTY, SMOOTH_PENALTY, QoEType, linear_reward, log_reward
from abr.selection import BufferState, SelectionReason, SelectionResult, SelectionState
from abr.state_window import DEFAULT_HISTORY_LENGTH, ModelStateWindow, StateSample

logger = logging.getLogger(__name__)

BUFFER_NORM_FACTOR = 10.0
DEFAULT_BITRATE = 1  # Ladder position of the initial selection


class PolicyBasedSelector(IQualitySelector):
    """Selector driven by an external policy model."""

    def __init__(
        self,
        ladder: BitrateLadder,
        model: IPolicyModel,
        load_info: ILoadInfoProvider,
        chunk_sizes: IChunkSizeSource,
        total_chunks: int,
        history_length: int = DEFAULT_HISTORY_LENGTH,
        buffer_norm_factor: float = BUFFER_NORM_FACTOR,
        rebuf_penalty: float = REBUF_PENALTY,
        smooth_penalty: float = SMOOTH_PENALTY,
        qoe_type: QoEType = QoEType.LINEAR,
        default_bitrate: int = DEFAULT_BITRATE,
    ):
        """Initialize selector.

        Args:
            ladder: Quality ladder in ascending bitrate order
            model: Policy model scoring the state window
            load_info: Reports duration and type of the last completed load
            chunk_sizes: Expected chunk sizes per level (bytes)
            total_chunks: Number of chunks in the video
            history_length: History slots per state row
            buffer_norm_factor: Normalization for buffer and download time
            rebuf_penalty: QoE penalty per rebuffering second
            smooth_penalty: QoE penalty per Mbps of bitrate switch
            qoe_type: Reward formula
            default_bitrate: Ladder position of the initial selection

        Raises:
            ConfigurationError: If total_chunks < 1 or the ladder does not fit
                the history length
        """
        if total_chunks < 1:
            raise ConfigurationError(f"total_chunks must be >= 1, got {total_chunks}")

        self._ladder = ladder
        self.model = model
        self.load_info = load_info
        self.chunk_sizes = chunk_sizes
        self.total_chunks = total_chunks
        self.chunk_til_video_end_cap = total_chunks
        self.buffer_norm_factor = buffer_norm_factor
        self.rebuf_penalty = rebuf_penalty
        self.smooth_penalty = smooth_penalty
        self.qoe_type = qoe_type
        self.default_bitrate = default_bitrate

        self.window = ModelStateWindow(history_length=history_length, ladder_size=len(ladder))
        self.chunks_processed = 0
        self.previous_quality = min(default_bitrate, len(ladder) - 1)
        self.previous_buffered_us = 0
        self.inference_failures = 0

        logger.info(
            f"Policy-based selector initialized for {ladder}, "
            f"{total_chunks} chunks, qoe={qoe_type.value}"
        )

    @property
    def ladder(self) -> BitrateLadder:
        return self._ladder

    def select(self, buffer_state: BufferState, state: SelectionState) -> SelectionResult:
        size = len(self._ladder)

        if state.reason == SelectionReason.UNKNOWN:
            index = max(size - self.default_bitrate - 1, 0)
            logger.info(f"Initial selection: index {index}")
            return SelectionResult(index=index, reason=SelectionReason.INITIAL)

        unchanged = SelectionResult(index=state.selected_index, reason=state.reason)
        if not self.load_info.last_load_was_media():
            return unchanged

        delay_ms = self.load_info.last_load_duration_ms()
        current_quality = self._ladder.position(state.selected_index)

        try:
            self._update_window(buffer_state, current_quality, delay_ms)
            self.chunks_processed += 1
            scores = self._infer()
        except Exception as e:
            self.inference_failures += 1
            logger.error(
                f"Policy inference failed, keeping index {state.selected_index}: {e}",
                exc_info=True,
            )
            return unchanged

        predicted = int(np.argmax(scores[0]))
        index, reason = state.selected_index, state.reason
        if predicted != current_quality:
            index = self._ladder.selection_index(predicted)
            reason = SelectionReason.ADAPTIVE

        rebuffer_s = max(delay_ms - self.previous_buffered_us / 1000.0, 0.0) / 1000.0
        reward = self._reward(current_quality, rebuffer_s)

        logger.debug(
            f"Chunk {self.chunks_processed}: predicted level {predicted}, "
            f"rebuffer {rebuffer_s:.3f}s, reward {reward:.3f}",
            extra={"chunk_index": self.chunks_processed},
        )

        self.previous_quality = current_quality
        self.previous_buffered_us = buffer_state.buffered_duration_us

        return SelectionResult(
            index=index,
            reason=reason,
            reward=reward,
            bitrate_kbps=known_bitrate(self._ladder.bitrates_kbps[predicted]),
        )

    def _update_window(
        self, buffer_state: BufferState, current_quality: int, delay_ms: int
    ) -> None:
        bitrates = self._ladder.bitrates_kbps
        processed = self.chunks_processed
        # Guard the throughput sample against zero-length loads
        effective_delay_ms = max(delay_ms, 1)

        chunk_size = self.chunk_sizes.size(current_quality, processed)
        remaining = min(self.total_chunks - processed, self.chunk_til_video_end_cap)

        self.window.push(
            StateSample(
                bitrate_ratio=known_bitrate(bitrates[current_quality])
                / self._ladder.max_bitrate_kbps,
                buffer_level=(buffer_state.buffered_duration_us / 1_000_000.0)
                / self.buffer_norm_factor,
                throughput=chunk_size / effective_delay_ms / M_IN_K,
                download_time=(delay_ms / M_IN_K) / self.buffer_norm_factor,
                remaining_chunks_ratio=remaining / self.chunk_til_video_end_cap,
            )
        )
        self.window.set_next_chunk_sizes(
            [size / M_IN_K / M_IN_K for size in self._next_chunk_sizes()]
        )

    def _next_chunk_sizes(self) -> list[int]:
        if self.chunks_processed >= self.total_chunks:
            return [-1] * len(self._ladder)
        return [
            self.chunk_sizes.size(level, self.chunks_processed + 1)
            for level in range(len(self._ladder))
        ]

    def _infer(self) -> np.ndarray:
        scores = np.asarray(self.model.infer(self.window.as_tensor()), dtype=np.float64)
        expected = (1, len(self._ladder))
        if scores.shape != expected:
            raise InferenceError(f"Expected scores of shape {expected}, got {scores.shape}")
        if not np.all(np.isfinite(scores)):
            raise InferenceError("Policy model returned non-finite scores")
        return scores

    def _reward(self, quality: int, rebuffer_s: float) -> float:
        bitrates = self._ladder.bitrates_kbps
        if self.qoe_type == QoEType.LOG:
            return log_reward(
                bitrates[quality],
                bitrates[self.previous_quality],
                rebuffer_s,
                self._ladder.min_known_bitrate_kbps,
                self.rebuf_penalty,
                self.smooth_penalty,
            )
        return linear_reward(
            bitrates[quality],
            bitrates[self.previous_quality],
            rebuffer_s,
            self.rebuf_penalty,
            self.smooth_penalty,
        )
