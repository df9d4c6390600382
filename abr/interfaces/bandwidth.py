"""Throughput estimator interface."""

from abc import ABC, abstractmethod


class IBandwidthMeter(ABC):
    """Produces a single throughput estimate."""

    @abstractmethod
    def get_bitrate_estimate(self) -> float:
        """Get the current throughput estimate.

        Returns:
            Estimated throughput in bits per second
        """
        pass
