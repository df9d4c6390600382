"""Per-video ladder and chunk-count catalog.

Built-in profiles for the evaluation videos, optionally replaced by a JSON
file of the same shape:

    {"envivio": {"bitrates_kbps": [300, 750], "total_chunks": 48}}
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from abr.exceptions import ConfigurationError
from abr.ladder import BitrateLadder

logger = logging.getLogger(__name__)

# 240p through 1440p, matching the six-level ladders below
DEFAULT_RESOLUTIONS: list[tuple[int, int]] = [
    (426, 240),
    (640, 360),
    (854, 480),
    (1280, 720),
    (1920, 1080),
    (2560, 1440),
]


class VideoProfile(BaseModel):
    """Ladder and length of one video."""

    bitrates_kbps: list[float] = Field(min_length=1)
    total_chunks: int = Field(ge=1)
    resolutions: Optional[list[tuple[int, int]]] = None

    @model_validator(mode="after")
    def check_resolutions(self) -> "VideoProfile":
        if self.resolutions is not None and len(self.resolutions) != len(self.bitrates_kbps):
            raise ValueError(
                f"{len(self.resolutions)} resolutions for {len(self.bitrates_kbps)} bitrates"
            )
        return self

    def ladder(self) -> BitrateLadder:
        """Build the bitrate ladder for this video."""
        resolutions = self.resolutions
        if resolutions is None and len(self.bitrates_kbps) == len(DEFAULT_RESOLUTIONS):
            resolutions = DEFAULT_RESOLUTIONS
        return BitrateLadder.from_bitrates(self.bitrates_kbps, resolutions)


BUILTIN_CATALOG: Dict[str, VideoProfile] = {
    "envivio": VideoProfile(
        bitrates_kbps=[300.0, 750.0, 1200.0, 1850.0, 2850.0, 4300.0],
        total_chunks=48,
    ),
    "tears_of_steel": VideoProfile(
        bitrates_kbps=[686.685, 686.685, 1116.150, 1929.169, 2362.822, 2470.094],
        total_chunks=244,
    ),
    "redbull_2sec": VideoProfile(
        bitrates_kbps=[300.795, 700.051, 1179.845, 1993.730, 2995.671, 3992.758],
        total_chunks=199,
    ),
    "bbb_30fps": VideoProfile(
        bitrates_kbps=[507.246, 1013.310, 1254.758, 1883.700, 3134.488, 4952.892],
        total_chunks=158,
    ),
    "elephants_dream": VideoProfile(
        bitrates_kbps=[344.976, 808.384, 1273.596, 2186.563, 3127.680, 4516.590],
        total_chunks=652,
    ),
    "forest": VideoProfile(
        bitrates_kbps=[279.652, 836.887, 1282.108, 1779.588, 2568.145, 3894.863],
        total_chunks=453,
    ),
}


class VideoCatalog:
    """Validated lookup from video identifier to profile."""

    def __init__(self, profiles: Dict[str, VideoProfile]):
        if not profiles:
            raise ConfigurationError("Video catalog is empty")
        self._profiles = {name.lower(): profile for name, profile in profiles.items()}

    @classmethod
    def builtin(cls) -> "VideoCatalog":
        return cls(BUILTIN_CATALOG)

    @classmethod
    def from_json(cls, path: Path) -> "VideoCatalog":
        """Load a catalog from a JSON file.

        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read video catalog {path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigurationError(f"Video catalog {path} must be a JSON object")

        try:
            profiles = {name: VideoProfile.model_validate(entry) for name, entry in raw.items()}
        except ValidationError as e:
            raise ConfigurationError(f"Invalid video catalog {path}: {e}") from e

        logger.info(f"Loaded {len(profiles)} video profiles from {path}")
        return cls(profiles)

    def get(self, video_id: str) -> VideoProfile:
        """Get profile by video identifier.

        Raises:
            ConfigurationError: If the identifier is unknown
        """
        profile = self._profiles.get(video_id.lower())
        if profile is None:
            available = ", ".join(sorted(self._profiles))
            raise ConfigurationError(
                f"Unknown video: {video_id}. Available videos: {available}"
            )
        return profile

    def list_videos(self) -> list[Dict[str, object]]:
        """List all profiles as JSON-serializable metadata."""
        return [
            {
                "id": name,
                "levels": len(profile.bitrates_kbps),
                "bitrates_kbps": profile.bitrates_kbps,
                "total_chunks": profile.total_chunks,
            }
            for name, profile in sorted(self._profiles.items())
        ]

    def __contains__(self, video_id: str) -> bool:
        return video_id.lower() in self._profiles
