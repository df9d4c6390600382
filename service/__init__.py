"""ABR selection service - configuration, session controllers and REST API.

This module contains the configuration layer, video catalog, chunk-size
store, selection controller and factory, and the FastAPI application.
"""

from service.chunk_sizes import ChunkSizeTable
from service.config import ABRConfig, get_config
from service.controller import SelectionController
from service.factory import SelectionFactory, SelectionGroup, SelectionSession
from service.load_info import ReportedLoadInfo
from service.metrics import DecisionMetrics
from service.video_catalog import VideoCatalog, VideoProfile

__version__ = "0.1.0"

__all__ = [
    # Core components
    "SelectionController",
    "SelectionFactory",
    "SelectionGroup",
    "SelectionSession",
    # Inputs
    "ChunkSizeTable",
    "ReportedLoadInfo",
    "VideoCatalog",
    "VideoProfile",
    # Configuration
    "ABRConfig",
    "get_config",
    # Metrics
    "DecisionMetrics",
]
