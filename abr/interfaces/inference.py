"""Policy model interface for the policy-based selector."""

from abc import ABC, abstractmethod

import numpy as np


class IPolicyModel(ABC):
    """Black-box scoring function over the state window."""

    @abstractmethod
    def infer(self, state: np.ndarray) -> np.ndarray:
        """Score every ladder position.

        Args:
            state: float32 array, shape (1, 6, history_length)

        Returns:
            float array, shape (1, ladder_size)

        Raises:
            InferenceError: If the model is missing or produces malformed output
        """
        pass
