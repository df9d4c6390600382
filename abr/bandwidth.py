"""Allocated bandwidth computation for a single adaptive selection."""

import logging
from typing import Optional, Sequence

from abr.exceptions import ConfigurationError
from abr.interfaces.bandwidth import IBandwidthMeter

logger = logging.getLogger(__name__)

DEFAULT_BANDWIDTH_FRACTION = 0.7


class ReportedBandwidthMeter(IBandwidthMeter):
    """Throughput estimate pushed in by the media pipeline."""

    def __init__(self, initial_estimate_bps: float = 0.0):
        self._estimate_bps = float(initial_estimate_bps)

    def update(self, estimate_bps: float) -> None:
        """Record a fresh throughput estimate in bits per second."""
        if estimate_bps < 0:
            raise ValueError(f"Throughput estimate must be >= 0, got {estimate_bps}")
        self._estimate_bps = float(estimate_bps)

    def get_bitrate_estimate(self) -> float:
        return self._estimate_bps


class BandwidthAllocator:
    """Turns the raw throughput estimate into this selection's share."""

    def __init__(
        self,
        meter: IBandwidthMeter,
        bandwidth_fraction: float = DEFAULT_BANDWIDTH_FRACTION,
        reserved_bandwidth: int = 0,
    ):
        """Initialize allocator.

        Args:
            meter: Throughput estimator
            bandwidth_fraction: Fraction of the estimate considered usable
            reserved_bandwidth: Bandwidth held back for other tracks (bps)
        """
        self.meter = meter
        self.bandwidth_fraction = bandwidth_fraction
        self.reserved_bandwidth = reserved_bandwidth
        self._checkpoints: Optional[list[tuple[int, int]]] = None

    @property
    def checkpoints(self) -> Optional[list[tuple[int, int]]]:
        return self._checkpoints

    def set_allocation_checkpoints(self, checkpoints: Sequence[Sequence[int]]) -> None:
        """Install the checkpoint table used to interpolate the share.

        Args:
            checkpoints: (total bandwidth, allocated bandwidth) pairs

        Raises:
            ConfigurationError: If fewer than 2 checkpoints are given
        """
        if len(checkpoints) < 2:
            raise ConfigurationError(
                f"Allocation checkpoints need at least 2 entries, got {len(checkpoints)}"
            )
        self._checkpoints = [(int(total), int(allocated)) for total, allocated in checkpoints]

    def get_allocated_bandwidth(self) -> int:
        """Return the bandwidth allocated to this selection in bits per second."""
        total_bandwidth = int(self.meter.get_bitrate_estimate() * self.bandwidth_fraction)
        allocatable = max(0, total_bandwidth - self.reserved_bandwidth)
        if self._checkpoints is None:
            return allocatable

        checkpoints = self._checkpoints
        next_index = 1
        while next_index < len(checkpoints) - 1 and checkpoints[next_index][0] < allocatable:
            next_index += 1

        previous = checkpoints[next_index - 1]
        following = checkpoints[next_index]
        span = following[0] - previous[0]
        if span == 0:
            return previous[1]

        fraction = (allocatable - previous[0]) / span
        return previous[1] + int(fraction * (following[1] - previous[1]))
