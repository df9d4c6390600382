"""
TorchScript Policy Model Unit Tests

Tests model loading, forward pass and output validation.
"""

import numpy as np
import pytest
import torch

from abr.exceptions import InferenceError
from abr.policy_model import TorchScriptPolicyModel


class _TinyPolicy(torch.nn.Module):
    """Scores each level by the matching next-chunk size slot."""

    def forward(self, state: torch.Tensor) -> torch.Tensor:
        return torch.softmax(state[:, 4, :6], dim=1)


class TestTorchScriptPolicyModel:
    @pytest.fixture
    def model_path(self, tmp_path):
        path = tmp_path / "policy.pt"
        torch.jit.script(_TinyPolicy()).save(str(path))
        return path

    def test_missing_file(self, tmp_path):
        model = TorchScriptPolicyModel(tmp_path / "absent.pt")

        with pytest.raises(InferenceError):
            model.infer(np.zeros((1, 6, 8), dtype=np.float32))
        assert not model.is_loaded()

    def test_forward_pass(self, model_path):
        model = TorchScriptPolicyModel(model_path)
        state = np.zeros((1, 6, 8), dtype=np.float32)
        state[0, 4, 3] = 5.0

        scores = model.infer(state)

        assert scores.shape == (1, 6)
        assert int(np.argmax(scores[0])) == 3
        assert model.is_loaded()

    def test_rejects_bad_input_shape(self, model_path):
        model = TorchScriptPolicyModel(model_path)

        with pytest.raises(InferenceError):
            model.infer(np.zeros((6, 8), dtype=np.float32))
