"""Rolling model input for the policy-based selector.

Row layout (6 rows x history slots):
    0: selected bitrate / max ladder bitrate        (history)
    1: buffered seconds / normalization factor      (history)
    2: throughput sample                            (history)
    3: download time / normalization factor         (history)
    4: next chunk sizes per level, MB               (overwritten)
    5: remaining chunks ratio                       (history)
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from abr.exceptions import ConfigurationError
from abr.ring_buffer import HistoryRing

STATE_ROWS = 6
DEFAULT_HISTORY_LENGTH = 8

BITRATE_ROW = 0
BUFFER_ROW = 1
THROUGHPUT_ROW = 2
DOWNLOAD_TIME_ROW = 3
NEXT_CHUNK_SIZES_ROW = 4
REMAINING_CHUNKS_ROW = 5

HISTORY_ROWS = (BITRATE_ROW, BUFFER_ROW, THROUGHPUT_ROW, DOWNLOAD_TIME_ROW, REMAINING_CHUNKS_ROW)


@dataclass(frozen=True)
class StateSample:
    """One decision's worth of history features (already normalized)."""

    bitrate_ratio: float
    buffer_level: float
    throughput: float
    download_time: float
    remaining_chunks_ratio: float


class ModelStateWindow:
    """Fixed 6 x H matrix of normalized recent-history features."""

    def __init__(self, history_length: int = DEFAULT_HISTORY_LENGTH, ladder_size: int = 6):
        """Initialize window.

        Args:
            history_length: History slots per row (H)
            ladder_size: Number of ladder levels written into the size row

        Raises:
            ConfigurationError: If the ladder does not fit in one row
        """
        if ladder_size > history_length:
            raise ConfigurationError(
                f"Ladder size {ladder_size} exceeds history length {history_length}"
            )

        self.history_length = history_length
        self.ladder_size = ladder_size
        self._rows = {row: HistoryRing(history_length) for row in HISTORY_ROWS}
        self._next_chunk_sizes = np.zeros(history_length, dtype=np.float32)

    def push(self, sample: StateSample) -> None:
        """Shift every history row left and append the newest sample."""
        self._rows[BITRATE_ROW].push(sample.bitrate_ratio)
        self._rows[BUFFER_ROW].push(sample.buffer_level)
        self._rows[THROUGHPUT_ROW].push(sample.throughput)
        self._rows[DOWNLOAD_TIME_ROW].push(sample.download_time)
        self._rows[REMAINING_CHUNKS_ROW].push(sample.remaining_chunks_ratio)

    def set_next_chunk_sizes(self, sizes_mb: Sequence[float]) -> None:
        """Overwrite the next-chunk-size row in place (slots past the ladder are zero)."""
        if len(sizes_mb) != self.ladder_size:
            raise ValueError(f"Expected {self.ladder_size} chunk sizes, got {len(sizes_mb)}")
        row = np.zeros(self.history_length, dtype=np.float32)
        row[: self.ladder_size] = sizes_mb
        self._next_chunk_sizes = row

    def as_tensor(self) -> np.ndarray:
        """Return the window as a float32 array, shape (1, 6, H)."""
        matrix = np.zeros((1, STATE_ROWS, self.history_length), dtype=np.float32)
        for row, ring in self._rows.items():
            matrix[0, row] = ring.to_array()
        matrix[0, NEXT_CHUNK_SIZES_ROW] = self._next_chunk_sizes
        return matrix
