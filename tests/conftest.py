"""Shared fixtures: ladders, a scripted policy model and a manual clock."""

import numpy as np
import pytest

from abr.ladder import BitrateLadder
from service.video_catalog import DEFAULT_RESOLUTIONS

ENVIVIO_BITRATES = [300.0, 750.0, 1200.0, 1850.0, 2850.0, 4300.0]


class ScriptedPolicyModel:
    """Policy model returning one-hot scores for a configurable level."""

    def __init__(self, ladder_size: int, best_level: int = 0):
        self.ladder_size = ladder_size
        self.best_level = best_level
        self.fail_with = None
        self.output_shape = None
        self.states = []

    def infer(self, state: np.ndarray) -> np.ndarray:
        self.states.append(state.copy())
        if self.fail_with is not None:
            raise self.fail_with
        shape = self.output_shape or (1, self.ladder_size)
        scores = np.zeros(shape, dtype=np.float32)
        scores.flat[self.best_level] = 1.0
        return scores


class ManualClock:
    """Millisecond clock advanced explicitly by tests."""

    def __init__(self, now_ms: float = 0.0):
        self.now_ms = now_ms

    def advance(self, delta_ms: float) -> None:
        self.now_ms += delta_ms

    def __call__(self) -> float:
        return self.now_ms


@pytest.fixture
def envivio_ladder():
    """Six-level ladder with 240p-1440p resolutions."""
    return BitrateLadder.from_bitrates(ENVIVIO_BITRATES, DEFAULT_RESOLUTIONS)


@pytest.fixture
def policy_model():
    return ScriptedPolicyModel(ladder_size=len(ENVIVIO_BITRATES), best_level=2)


@pytest.fixture
def clock():
    return ManualClock(now_ms=10_000.0)
