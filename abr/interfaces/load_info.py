"""Chunk load reporting and chunk-size lookup interfaces."""

from abc import ABC, abstractmethod


class ILoadInfoProvider(ABC):
    """Reports timing and type of the most recently completed load.

    The media pipeline updates it before each decision call.
    """

    @abstractmethod
    def last_load_duration_ms(self) -> int:
        """Duration of the last completed load in milliseconds."""
        pass

    @abstractmethod
    def last_load_was_media(self) -> bool:
        """Whether the last completed load was a media chunk."""
        pass


class IChunkSizeSource(ABC):
    """Expected chunk sizes per quality level."""

    @abstractmethod
    def size(self, level: int, chunk_index: int) -> int:
        """Get the expected size of one chunk.

        Args:
            level: Ladder position
            chunk_index: Chunk number

        Returns:
            Size in bytes, or -1 past the end of the table
        """
        pass
