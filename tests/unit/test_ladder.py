"""
Bitrate Ladder Unit Tests

Tests ladder construction, log utilities and the NO_VALUE sentinel.
"""

import math

import pytest

from abr.exceptions import ConfigurationError
from abr.ladder import NO_VALUE, BitrateLadder, QualityVariant, known_bitrate, log_utility


class TestBitrateLadder:
    """Ladder construction and lookups."""

    def test_utilities_are_log_bitrates(self, envivio_ladder):
        """Each utility is the natural log of the level's bitrate."""
        for utility, bitrate in zip(envivio_ladder.utilities, envivio_ladder.bitrates_kbps):
            assert utility == pytest.approx(math.log(bitrate)), f"Wrong utility for {bitrate}"

    def test_no_value_bitrate_has_zero_utility(self):
        """Unknown bitrates map to utility 0."""
        ladder = BitrateLadder([QualityVariant(0, NO_VALUE), QualityVariant(1, 500.0)])

        assert ladder.utilities[0] == 0.0
        assert log_utility(NO_VALUE) == 0.0

    def test_empty_ladder_rejected(self):
        with pytest.raises(ConfigurationError):
            BitrateLadder([])

    def test_zero_bitrate_rejected(self):
        """Zero bitrate would make scores undefined."""
        with pytest.raises(ConfigurationError):
            BitrateLadder.from_bitrates([0.0, 300.0])

    def test_resolution_count_must_match(self):
        with pytest.raises(ConfigurationError):
            BitrateLadder.from_bitrates([300.0, 750.0], [(426, 240)])

    def test_variant_lookup(self, envivio_ladder):
        variant = envivio_ladder.variant(3)

        assert variant.index == 3
        assert variant.bitrate_kbps == 1850.0
        assert variant.bitrate_bps == 1_850_000
        assert (variant.width, variant.height) == (1280, 720)
        assert len(envivio_ladder) == 6
        assert envivio_ladder.max_bitrate_kbps == 4300.0

    def test_ladder_without_resolutions(self):
        """Resolutions default to unknown."""
        ladder = BitrateLadder.from_bitrates([300.0, 750.0])

        assert ladder.variant(1).width is None
        assert ladder.variant(1).height is None

    def test_selection_index_counts_down_from_top(self, envivio_ladder):
        """Index 0 plays the top bitrate, index 5 the lowest."""
        assert envivio_ladder.variant_for_index(0).bitrate_kbps == 4300.0
        assert envivio_ladder.variant_for_index(5).bitrate_kbps == 300.0
        assert envivio_ladder.position(4) == 1
        assert envivio_ladder.selection_index(1) == 4

    def test_selection_index_outside_ladder(self, envivio_ladder):
        with pytest.raises(IndexError):
            envivio_ladder.variant_for_index(6)

    def test_min_known_bitrate_skips_no_value(self):
        ladder = BitrateLadder.from_bitrates([NO_VALUE, 750.0, 1200.0])

        assert ladder.min_known_bitrate_kbps == 750.0
        assert known_bitrate(NO_VALUE) == 0.0
