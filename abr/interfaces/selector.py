"""Quality selector interface definition."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from abr.ladder import BitrateLadder
    from abr.selection import BufferState, SelectionResult, SelectionState


class IQualitySelector(ABC):
    """Decides which variant to fetch next."""

    @property
    @abstractmethod
    def ladder(self) -> "BitrateLadder":
        """Ladder the selector chooses from."""
        pass

    @abstractmethod
    def select(
        self, buffer_state: "BufferState", state: "SelectionState"
    ) -> "SelectionResult":
        """Make one decision at a chunk boundary.

        Args:
            buffer_state: Current playback buffer snapshot
            state: Current selection state (read only for the selector)

        Returns:
            SelectionResult with the new index and reason. Returning the
            current index and reason means "no change".
        """
        pass
