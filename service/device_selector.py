"""Torch device selection for policy model inference."""

import logging
from typing import Literal

import torch

logger = logging.getLogger(__name__)

DeviceType = Literal["mps", "cuda", "cpu"]


def select_device(prefer_gpu: bool = True) -> DeviceType:
    """Select the device the policy model runs on.

    Priority:
        1. mps (Apple Silicon)
        2. cuda (NVIDIA GPUs)
        3. cpu (fallback)

    Args:
        prefer_gpu: If False, always return "cpu"

    Returns:
        Torch device string
    """
    if not prefer_gpu:
        return "cpu"

    if torch.backends.mps.is_available():
        logger.info("Metal GPU detected, running policy model on mps")
        return "mps"
    if torch.cuda.is_available():
        logger.info(f"CUDA GPU detected: {torch.cuda.get_device_name(0)}")
        return "cuda"

    logger.info("No GPU detected, running policy model on cpu")
    return "cpu"

