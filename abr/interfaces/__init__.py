"""Collaborator interfaces for the ABR selection core.

Abstract Base Classes (ABCs) defining contracts for selectors, throughput
estimation, chunk load reporting and policy inference.
"""

from abr.interfaces.bandwidth import IBandwidthMeter
from abr.interfaces.inference import IPolicyModel
from abr.interfaces.load_info import IChunkSizeSource, ILoadInfoProvider
from abr.interfaces.selector import IQualitySelector

__all__ = [
    # Decision interfaces
    "IQualitySelector",
    # Collaborator interfaces
    "IBandwidthMeter",
    "ILoadInfoProvider",
    "IChunkSizeSource",
    "IPolicyModel",
]
