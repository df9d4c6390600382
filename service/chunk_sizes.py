"""Persisted per-level chunk-size tables.

Each level is a text file ``<root>/<video>/video_size_<level>`` holding one
byte count per chunk, whitespace separated.
"""

import logging
from pathlib import Path
from typing import Sequence

from abr.exceptions import ChunkSizeError
from abr.interfaces.load_info import IChunkSizeSource

logger = logging.getLogger(__name__)

END_OF_DATA = -1


def read_chunk_sizes(path: Path, total_chunks: int) -> list[int]:
    """Read one level's chunk sizes.

    Args:
        path: Size file
        total_chunks: Number of chunks in the video

    Returns:
        total_chunks + 1 entries. Entries the file does not provide stay 0;
        an unreadable file yields all zeros.

    Raises:
        ChunkSizeError: If the file holds a non-integer or negative size
    """
    sizes = [0] * (total_chunks + 1)
    try:
        tokens = Path(path).read_text(encoding="utf-8").split()
    except OSError as e:
        logger.warning(f"Chunk size file unavailable, using zeros: {path} ({e})")
        return sizes

    for i, token in enumerate(tokens[:total_chunks]):
        try:
            size = int(token)
        except ValueError as e:
            raise ChunkSizeError(f"Malformed chunk size {token!r} at {path}:{i}") from e
        if size < 0:
            raise ChunkSizeError(f"Negative chunk size {size} at {path}:{i}")
        sizes[i] = size
    return sizes


class ChunkSizeTable(IChunkSizeSource):
    """In-memory chunk sizes for every level of one video."""

    def __init__(self, sizes: Sequence[Sequence[int]]):
        self._sizes = [list(level) for level in sizes]

    @classmethod
    def load(cls, root: Path, video_id: str, levels: int, total_chunks: int) -> "ChunkSizeTable":
        """Load every level's size file for a video."""
        tables = [
            read_chunk_sizes(Path(root) / video_id / f"video_size_{level}", total_chunks)
            for level in range(levels)
        ]
        logger.info(
            f"Loaded chunk sizes for {video_id}: {levels} levels x {total_chunks} chunks"
        )
        return cls(tables)

    def size(self, level: int, chunk_index: int) -> int:
        if not 0 <= level < len(self._sizes):
            return END_OF_DATA
        sizes = self._sizes[level]
        if not 0 <= chunk_index < len(sizes):
            return END_OF_DATA
        return sizes[chunk_index]

    @property
    def levels(self) -> int:
        return len(self._sizes)
