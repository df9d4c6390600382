"""Utility-based selector (BOLA).

Lyapunov buffer-occupancy optimization over log-bitrate utilities. Each
decision picks the level maximizing

    (V * (utility + gp) - buffer_level) / bitrate

where gp and V are derived from the highest utility and a buffer target.
"""

import logging
from typing import Optional, Sequence

from abr.interfaces.selector import IQualitySelector
from abr.ladder import BitrateLadder
from abr.selection import BufferState, SelectionReason, SelectionResult, SelectionState

logger = logging.getLogger(__name__)

MINIMUM_BUFFER_S = 10.0
MINIMUM_BUFFER_PER_LEVEL_S = 2.0

# |gp| below this is treated as degenerate
GP_EPSILON = 1e-9


def lyapunov_parameters(
    utilities: Sequence[float],
    buffer_time_s: float,
    minimum_buffer_s: float = MINIMUM_BUFFER_S,
) -> Optional[tuple[float, float]]:
    """Compute the (gp, vp) control parameters.

    Args:
        utilities: Log utility per ladder level
        buffer_time_s: Buffer target, already floored
        minimum_buffer_s: Minimum buffer constant

    Returns:
        (gp, vp), or None when the highest utility sits at position 0 or
        gp is too close to zero to divide by
    """
    highest_utility_index = 0
    for i in range(len(utilities)):
        if utilities[i] > utilities[highest_utility_index]:
            highest_utility_index = i
    if highest_utility_index == 0:
        return None

    denominator = buffer_time_s / minimum_buffer_s - 1
    if denominator == 0:
        return None

    gp = (utilities[highest_utility_index] - 1) / denominator
    if abs(gp) < GP_EPSILON:
        return None

    vp = minimum_buffer_s / gp
    return gp, vp


class UtilityBasedSelector(IQualitySelector):
    """Buffer-driven selector over a log-utility ladder."""

    def __init__(
        self,
        ladder: BitrateLadder,
        minimum_buffer_s: float = MINIMUM_BUFFER_S,
        minimum_buffer_per_level_s: float = MINIMUM_BUFFER_PER_LEVEL_S,
    ):
        """Initialize selector.

        Args:
            ladder: Quality ladder in ascending bitrate order
            minimum_buffer_s: Minimum buffer target in seconds
            minimum_buffer_per_level_s: Extra buffer target per ladder level
        """
        self._ladder = ladder
        self.minimum_buffer_s = minimum_buffer_s
        self.minimum_buffer_per_level_s = minimum_buffer_per_level_s

        logger.info(f"Utility-based selector initialized for {ladder}")

    @property
    def ladder(self) -> BitrateLadder:
        return self._ladder

    def buffer_time_s(self, buffer_level_s: float) -> float:
        """Floor the buffer level so the control parameters stay defined."""
        floor = self.minimum_buffer_s + self.minimum_buffer_per_level_s * len(self._ladder)
        return max(buffer_level_s, floor)

    def scores(self, buffer_level_s: float) -> Optional[list[float]]:
        """Score every level for the given buffer level, None if degenerate."""
        params = lyapunov_parameters(
            self._ladder.utilities, self.buffer_time_s(buffer_level_s), self.minimum_buffer_s
        )
        if params is None:
            return None

        gp, vp = params
        return [
            (vp * (utility + gp) - buffer_level_s) / bitrate
            for utility, bitrate in zip(self._ladder.utilities, self._ladder.bitrates_kbps)
        ]

    def select(self, buffer_state: BufferState, state: SelectionState) -> SelectionResult:
        size = len(self._ladder)

        if state.reason == SelectionReason.UNKNOWN:
            # Optimistic start on the top bitrate
            index = self._ladder.selection_index(size - 1)
            logger.info(f"Initial selection: index {index}")
            return SelectionResult(index=index, reason=SelectionReason.INITIAL)

        buffer_level_s = buffer_state.buffered_duration_us / 1_000_000.0
        scores = self.scores(buffer_level_s)
        if scores is None:
            logger.debug("Degenerate utility ladder, keeping current selection")
            return SelectionResult(index=state.selected_index, reason=state.reason)

        quality = 0
        best: Optional[float] = None
        for i, score in enumerate(scores):
            if best is None or score >= best:
                quality = i
                best = score

        index = self._ladder.selection_index(quality)
        if index != state.selected_index:
            logger.debug(
                f"Buffer {buffer_level_s:.2f}s: switching {state.selected_index} -> {index}"
            )
            return SelectionResult(index=index, reason=SelectionReason.ADAPTIVE)

        return SelectionResult(index=state.selected_index, reason=state.reason)
