"""Fixed-capacity history ring for state window rows.

Pushing into a full ring discards the oldest sample. Reads return samples
oldest first, left-padded with zeros until the ring has filled up.
"""

import numpy as np


class HistoryRing:
    """Fixed-capacity ring of float samples.

    Single-threaded: owned by one state window, no locking.
    """

    def __init__(self, capacity: int = 8):
        """Initialize ring.

        Args:
            capacity: Number of history slots (default 8)
        """
        if capacity < 1:
            raise ValueError(f"Capacity must be >= 1, got {capacity}")

        self.capacity = capacity
        self.buffer = np.zeros(capacity, dtype=np.float32)
        self.write_cursor = 0

    def push(self, value: float) -> None:
        """Append newest sample, overwriting the oldest when full."""
        self.buffer[self.write_cursor] = value
        self.write_cursor = (self.write_cursor + 1) % self.capacity

    def to_array(self) -> np.ndarray:
        """Return samples oldest to newest, newest in the last slot."""
        # Unwritten slots are still zero, so rolling yields the zero padding
        return np.roll(self.buffer, -self.write_cursor).copy()

    def __repr__(self) -> str:
        return f"HistoryRing(capacity={self.capacity}, write_cursor={self.write_cursor})"
