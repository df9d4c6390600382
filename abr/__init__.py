"""ABR selection core - per-chunk quality decisions for adaptive streaming.

This package contains the bitrate ladder, bandwidth allocation planning,
the utility-based and policy-based selectors, and queue eviction.
"""

from abr.allocation import get_allocation_checkpoints
from abr.bandwidth import BandwidthAllocator, ReportedBandwidthMeter
from abr.bola import UtilityBasedSelector
from abr.eviction import QueueEvictionPolicy
from abr.exceptions import (
    ABRError,
    ChunkSizeError,
    ConfigurationError,
    InferenceError,
    SessionNotFoundError,
)
from abr.ladder import NO_VALUE, BitrateLadder, QualityVariant
from abr.pensieve import PolicyBasedSelector
from abr.qoe import QoEAccumulator, QoEType
from abr.selection import (
    BufferState,
    PendingChunk,
    SelectionReason,
    SelectionResult,
    SelectionState,
)
from abr.state_window import ModelStateWindow

__version__ = "0.1.0"

__all__ = [
    # Selectors
    "UtilityBasedSelector",
    "PolicyBasedSelector",
    "QueueEvictionPolicy",
    # Bandwidth
    "BandwidthAllocator",
    "ReportedBandwidthMeter",
    "get_allocation_checkpoints",
    # Data structures
    "BitrateLadder",
    "QualityVariant",
    "NO_VALUE",
    "BufferState",
    "PendingChunk",
    "SelectionReason",
    "SelectionResult",
    "SelectionState",
    "ModelStateWindow",
    "QoEAccumulator",
    "QoEType",
    # Errors
    "ABRError",
    "ConfigurationError",
    "InferenceError",
    "ChunkSizeError",
    "SessionNotFoundError",
]
