"""Configuration management for the ABR selection service.

Loads and validates environment variables using Pydantic settings.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ABRConfig(BaseSettings):
    """ABR selection configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Server settings
    env: Literal["development", "production", "test"] = Field(
        default="development", alias="ABR_ENV"
    )
    host: str = Field(default="0.0.0.0", alias="ABR_HOST")
    port: int = Field(default=8000, alias="ABR_PORT", ge=1024, le=65535)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="ABR_LOG_LEVEL"
    )

    # Strategy
    default_strategy: Literal["utility", "policy"] = Field(
        default="utility", alias="ABR_DEFAULT_STRATEGY"
    )
    ideal_index_source: Literal["selected", "bandwidth"] = Field(
        default="selected", alias="ABR_IDEAL_INDEX_SOURCE"
    )

    # Bandwidth allocation
    bandwidth_fraction: float = Field(default=0.7, gt=0.0, le=1.0)
    reserved_bandwidth_bps: int = Field(default=0, ge=0)

    # Queue eviction
    min_duration_to_retain_after_discard_ms: int = Field(default=25000, ge=0)
    utility_reevaluation_interval_ms: int = Field(default=2000, ge=0)
    policy_reevaluation_interval_ms: int = Field(default=500, ge=0)

    # Utility-based selector
    minimum_buffer_s: float = Field(default=10.0, gt=0.0)
    minimum_buffer_per_level_s: float = Field(default=2.0, ge=0.0)

    # Policy-based selector
    history_length: int = Field(default=8, ge=1, le=64, alias="ABR_HISTORY_LENGTH")
    buffer_norm_factor: float = Field(default=10.0, gt=0.0)
    rebuf_penalty: float = Field(default=4.3, ge=0.0)
    smooth_penalty: float = Field(default=1.0, ge=0.0)
    qoe_type: Literal["linear", "log"] = Field(default="linear", alias="ABR_QOE_TYPE")
    default_bitrate_level: int = Field(default=1, ge=0)
    prefer_gpu: bool = Field(default=False, alias="ABR_PREFER_GPU")

    # Assets
    chunk_size_dir: Path = Field(default=Path("assets/chunk_sizes"), alias="ABR_CHUNK_SIZE_DIR")
    model_path: Path = Field(
        default=Path("assets/pretrained_model.pt"), alias="ABR_MODEL_PATH"
    )
    video_catalog_path: Optional[Path] = Field(default=None, alias="ABR_VIDEO_CATALOG")


# Singleton configuration instance
_config: ABRConfig | None = None


def get_config() -> ABRConfig:
    """Get the global configuration instance.

    Returns:
        ABRConfig: Configuration singleton
    """
    global _config
    if _config is None:
        _config = ABRConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config
    _config = None
