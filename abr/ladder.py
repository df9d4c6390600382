"""Bitrate ladder and quality variant definitions."""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from abr.exceptions import ConfigurationError

# Marker for an unknown bitrate, width or height
NO_VALUE = -1


@dataclass(frozen=True)
class QualityVariant:
    """Single rung of the ladder.

    Attributes:
        index: Position in the ladder
        bitrate_kbps: Encoded bitrate in kilobits per second
        width: Frame width in pixels, None if unknown
        height: Frame height in pixels, None if unknown
    """

    index: int
    bitrate_kbps: float
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def bitrate_bps(self) -> int:
        """Bitrate in bits per second (NO_VALUE stays NO_VALUE)."""
        if self.bitrate_kbps == NO_VALUE:
            return NO_VALUE
        return int(round(self.bitrate_kbps * 1000))


def known_bitrate(bitrate: float) -> float:
    """Return the bitrate, or 0 for the NO_VALUE sentinel."""
    if bitrate == NO_VALUE or bitrate <= 0:
        return 0.0
    return bitrate


def log_utility(bitrate: float) -> float:
    """Return log(bitrate), or 0 for the NO_VALUE sentinel."""
    if known_bitrate(bitrate) == 0.0:
        return 0.0
    return math.log(bitrate)


class BitrateLadder:
    """Immutable ordered list of quality variants with log utilities.

    Variants are stored in ladder order, normally ascending bitrate. Selection indices, as
    reported to the playback system, count down from the top: index 0 names
    the last (highest) ladder position and index ``len - 1`` the first.
    """

    def __init__(self, variants: Sequence[QualityVariant]):
        """Initialize ladder.

        Args:
            variants: Variants in ladder order

        Raises:
            ConfigurationError: If the ladder is empty
        """
        if not variants:
            raise ConfigurationError("Bitrate ladder must contain at least one variant")
        for variant in variants:
            if variant.bitrate_kbps != NO_VALUE and variant.bitrate_kbps <= 0:
                raise ConfigurationError(
                    f"Invalid bitrate {variant.bitrate_kbps} at ladder position {variant.index}"
                )

        self._variants = tuple(variants)
        self._utilities = tuple(log_utility(v.bitrate_kbps) for v in self._variants)

    @classmethod
    def from_bitrates(
        cls,
        bitrates_kbps: Sequence[float],
        resolutions: Optional[Sequence[tuple[int, int]]] = None,
    ) -> "BitrateLadder":
        """Build a ladder from bitrates and optional (width, height) pairs.

        Args:
            bitrates_kbps: Bitrate of each level in kbps
            resolutions: Optional (width, height) per level

        Returns:
            BitrateLadder in the given order

        Raises:
            ConfigurationError: If empty or resolutions length mismatches
        """
        if resolutions is not None and len(resolutions) != len(bitrates_kbps):
            raise ConfigurationError(
                f"Got {len(resolutions)} resolutions for {len(bitrates_kbps)} bitrates"
            )

        variants = []
        for i, bitrate in enumerate(bitrates_kbps):
            width, height = resolutions[i] if resolutions is not None else (None, None)
            variants.append(
                QualityVariant(index=i, bitrate_kbps=float(bitrate), width=width, height=height)
            )
        return cls(variants)

    @property
    def variants(self) -> tuple[QualityVariant, ...]:
        return self._variants

    @property
    def utilities(self) -> tuple[float, ...]:
        return self._utilities

    @property
    def bitrates_kbps(self) -> tuple[float, ...]:
        return tuple(v.bitrate_kbps for v in self._variants)

    @property
    def max_bitrate_kbps(self) -> float:
        return max(self.bitrates_kbps)

    @property
    def min_known_bitrate_kbps(self) -> float:
        """Lowest bitrate other than NO_VALUE, 0 if none is known."""
        return min((b for b in self.bitrates_kbps if known_bitrate(b) > 0), default=0.0)

    def variant(self, position: int) -> QualityVariant:
        return self._variants[position]

    def position(self, index: int) -> int:
        """Ladder position named by a selection index.

        Raises:
            IndexError: If the index is outside the ladder
        """
        if not 0 <= index < len(self._variants):
            raise IndexError(f"Selection index {index} outside ladder of {len(self._variants)}")
        return len(self._variants) - 1 - index

    def selection_index(self, position: int) -> int:
        """Selection index naming a ladder position."""
        # The reversal is its own inverse
        return self.position(position)

    def variant_for_index(self, index: int) -> QualityVariant:
        """Variant played for a selection index."""
        return self._variants[self.position(index)]

    def __len__(self) -> int:
        return len(self._variants)

    def __repr__(self) -> str:
        return f"BitrateLadder(bitrates_kbps={list(self.bitrates_kbps)})"
