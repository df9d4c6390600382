"""Chunk load reports pushed in by the media pipeline."""

import logging

from abr.interfaces.load_info import ILoadInfoProvider

logger = logging.getLogger(__name__)


class ReportedLoadInfo(ILoadInfoProvider):
    """Holds the most recent load report until the next one arrives."""

    def __init__(self) -> None:
        self._duration_ms = 0
        self._was_media = False

    def record_load(self, duration_ms: int, is_media: bool) -> None:
        """Record a completed load.

        Args:
            duration_ms: Wall-clock load duration in milliseconds
            is_media: Whether the load was a media chunk (not manifest/init data)
        """
        if duration_ms < 0:
            raise ValueError(f"Load duration must be >= 0, got {duration_ms}")
        self._duration_ms = int(duration_ms)
        self._was_media = bool(is_media)
        logger.debug(f"Load completed: {duration_ms}ms, media={is_media}")

    def last_load_duration_ms(self) -> int:
        return self._duration_ms

    def last_load_was_media(self) -> bool:
        return self._was_media
