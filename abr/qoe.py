"""Quality-of-Experience reward accounting."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from abr.ladder import known_bitrate

M_IN_K = 1000.0
REBUF_PENALTY = 4.3
SMOOTH_PENALTY = 1.0


class QoEType(str, Enum):
    """Reward formula used by the policy-based selector."""

    LINEAR = "linear"
    LOG = "log"


def _relative_log_utility(bitrate_kbps: float, min_bitrate_kbps: float) -> float:
    if known_bitrate(bitrate_kbps) == 0.0 or known_bitrate(min_bitrate_kbps) == 0.0:
        return 0.0
    return math.log(bitrate_kbps / min_bitrate_kbps)


def linear_reward(
    bitrate_kbps: float,
    previous_bitrate_kbps: float,
    rebuffer_s: float,
    rebuf_penalty: float = REBUF_PENALTY,
    smooth_penalty: float = SMOOTH_PENALTY,
) -> float:
    """Linear QoE: bitrate (Mbps) minus rebuffer and switch penalties."""
    bitrate_kbps = known_bitrate(bitrate_kbps)
    previous_bitrate_kbps = known_bitrate(previous_bitrate_kbps)
    return (
        bitrate_kbps / M_IN_K
        - rebuf_penalty * rebuffer_s
        - smooth_penalty * abs(bitrate_kbps - previous_bitrate_kbps) / M_IN_K
    )


def log_reward(
    bitrate_kbps: float,
    previous_bitrate_kbps: float,
    rebuffer_s: float,
    min_bitrate_kbps: float,
    rebuf_penalty: float = REBUF_PENALTY,
    smooth_penalty: float = SMOOTH_PENALTY,
) -> float:
    """Log QoE: utility is log(bitrate / lowest bitrate).

    An unknown (NO_VALUE) bitrate, or a ladder with no known bitrate, has
    zero utility.
    """
    utility = _relative_log_utility(bitrate_kbps, min_bitrate_kbps)
    previous_utility = _relative_log_utility(previous_bitrate_kbps, min_bitrate_kbps)
    return (
        utility
        - rebuf_penalty * rebuffer_s
        - smooth_penalty * abs(utility - previous_utility)
    )


@dataclass
class QoEAccumulator:
    """Running QoE totals, append only. Diagnostics only."""

    cumulative_reward: float = 0.0
    cumulative_bitrate: float = 0.0
    reward_history: list[float] = field(default_factory=list)

    def record_reward(self, reward: float) -> None:
        self.reward_history.append(reward)
        self.cumulative_reward += reward

    def record_bitrate(self, bitrate_kbps: float) -> None:
        self.cumulative_bitrate += bitrate_kbps

    def snapshot(self) -> dict[str, Any]:
        """Return totals as a JSON-serializable dictionary."""
        return {
            "cumulative_reward": self.cumulative_reward,
            "cumulative_bitrate": self.cumulative_bitrate,
            "chunks_rewarded": len(self.reward_history),
            "reward_history": list(self.reward_history),
        }
