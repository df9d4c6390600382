"""Selection state and decision data structures."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from abr.ladder import QualityVariant


class SelectionReason(str, Enum):
    """Why the current index was selected."""

    UNKNOWN = "unknown"
    INITIAL = "initial"
    ADAPTIVE = "adaptive"


@dataclass
class SelectionState:
    """Mutable per-session selection state.

    Attributes:
        selected_index: Current selection index (0 is the top bitrate)
        reason: Reason for the current selection
        last_buffer_evaluation_ms: Time of the last queue evaluation, None if unset
        playback_speed: Current playback speed multiplier
    """

    selected_index: int = 0
    reason: SelectionReason = SelectionReason.UNKNOWN
    last_buffer_evaluation_ms: Optional[float] = None
    playback_speed: float = 1.0


@dataclass(frozen=True)
class BufferState:
    """Playback buffer snapshot supplied before each decision (microseconds)."""

    playback_position_us: int
    buffered_duration_us: int
    available_duration_us: Optional[int] = None


@dataclass(frozen=True)
class SelectionResult:
    """Output of one selector decision.

    Attributes:
        index: Selection index, see BitrateLadder.position
        reason: Selection reason after the decision
        reward: QoE reward for the chunk just completed, if computed
        bitrate_kbps: Bitrate credited to the cumulative bitrate total, if any
    """

    index: int
    reason: SelectionReason
    reward: Optional[float] = None
    bitrate_kbps: Optional[float] = None


@dataclass(frozen=True)
class PendingChunk:
    """Buffered chunk that has not started playing yet."""

    start_time_us: int
    variant: QualityVariant
