"""TorchScript policy model used by the policy-based selector."""

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import torch

from abr.exceptions import InferenceError
from abr.interfaces.inference import IPolicyModel

logger = logging.getLogger(__name__)


class TorchScriptPolicyModel(IPolicyModel):
    """Scores the state window with a pretrained TorchScript module.

    The module is loaded on first use, so a missing file surfaces as an
    InferenceError at decision time rather than at construction.
    """

    def __init__(self, model_path: Path, device: str = "cpu"):
        """Initialize model wrapper.

        Args:
            model_path: Path to a TorchScript (.pt) file
            device: Torch device string ("cpu", "cuda", "mps")
        """
        self.model_path = Path(model_path)
        self.device = device
        self._module: Optional[torch.jit.ScriptModule] = None

    def _load(self) -> torch.jit.ScriptModule:
        if self._module is None:
            if not self.model_path.is_file():
                raise InferenceError(f"Policy model not found: {self.model_path}")
            try:
                module = torch.jit.load(str(self.model_path), map_location=self.device)
            except Exception as e:
                raise InferenceError(f"Failed to load policy model {self.model_path}: {e}") from e
            module.eval()
            self._module = module
            logger.info(f"Loaded policy model {self.model_path} on {self.device}")
        return self._module

    def infer(self, state: np.ndarray) -> np.ndarray:
        module = self._load()

        if state.ndim != 3 or state.shape[0] != 1:
            raise InferenceError(f"State window must have shape (1, R, H), got {state.shape}")

        try:
            inputs = torch.from_numpy(np.ascontiguousarray(state, dtype=np.float32)).to(self.device)
            with torch.no_grad():
                outputs = module(inputs)
        except Exception as e:
            raise InferenceError(f"Policy model forward pass failed: {e}") from e

        if not isinstance(outputs, torch.Tensor):
            raise InferenceError(f"Policy model returned {type(outputs).__name__}, expected Tensor")
        scores = outputs.detach().cpu().numpy()
        if scores.ndim != 2 or scores.shape[0] != 1:
            raise InferenceError(f"Policy model output must have shape (1, A), got {scores.shape}")
        return scores

    def is_loaded(self) -> bool:
        return self._module is not None
