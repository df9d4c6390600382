"""Builds selection controllers from configuration.

Wires each session's selector, eviction policy and bandwidth allocator,
and plans shared allocation checkpoints when several adaptive selections
compete for one connection.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Literal, Optional, Sequence

from abr.allocation import get_allocation_checkpoints
from abr.bandwidth import BandwidthAllocator, ReportedBandwidthMeter
from abr.bola import UtilityBasedSelector
from abr.eviction import QueueEvictionPolicy
from abr.exceptions import ConfigurationError
from abr.interfaces.bandwidth import IBandwidthMeter
from abr.interfaces.inference import IPolicyModel
from abr.interfaces.selector import IQualitySelector
from abr.ladder import NO_VALUE, BitrateLadder, QualityVariant
from abr.pensieve import PolicyBasedSelector
from abr.qoe import QoEType
from service.chunk_sizes import ChunkSizeTable
from service.config import ABRConfig
from service.controller import SelectionController
from service.load_info import ReportedLoadInfo
from service.metrics import DecisionMetrics
from service.video_catalog import VideoCatalog

logger = logging.getLogger(__name__)

Strategy = Literal["utility", "policy"]


@dataclass
class SelectionGroup:
    """Selections for concurrently played track groups.

    Attributes:
        controllers: Adaptive controller per group, None for fixed groups
        fixed_variants: Variant per fixed group, None for adaptive groups
        reserved_bandwidth_bps: Total bitrate of the fixed variants
    """

    controllers: list[Optional[SelectionController]] = field(default_factory=list)
    fixed_variants: list[Optional[QualityVariant]] = field(default_factory=list)
    reserved_bandwidth_bps: int = 0


@dataclass
class SelectionSession:
    """One playback session: its controller plus the inputs the pipeline feeds."""

    session_id: str
    video_id: str
    strategy: Strategy
    controller: SelectionController
    meter: ReportedBandwidthMeter
    load_info: ReportedLoadInfo
    group: SelectionGroup


class SelectionFactory:
    """Creates controllers for the configured strategies."""

    def __init__(
        self,
        config: ABRConfig,
        catalog: VideoCatalog,
        metrics: DecisionMetrics,
        policy_model_provider: Optional[Callable[[], IPolicyModel]] = None,
    ):
        """Initialize factory.

        Args:
            config: Service configuration
            catalog: Video ladders and lengths
            metrics: Metrics shared by every controller
            policy_model_provider: Returns the model for the policy strategy,
                None disables it
        """
        self.config = config
        self.catalog = catalog
        self.metrics = metrics
        self.policy_model_provider = policy_model_provider

    def create_session(
        self,
        session_id: str,
        video_id: str,
        strategy: Optional[Strategy] = None,
        companion_tracks: Optional[Sequence[Sequence[float]]] = None,
    ) -> SelectionSession:
        """Create a selection session for a catalog video.

        Args:
            session_id: Identifier used in log records
            video_id: Catalog key, case-insensitive
            strategy: "utility" or "policy", None for the configured default
            companion_tracks: Bitrates (kbps) of track groups played alongside
                the video. Single-variant groups reserve their bitrate;
                adaptive groups share allocation checkpoints with the video.

        Raises:
            ConfigurationError: Unknown video or strategy, or policy strategy
                requested without a model
        """
        strategy = strategy or self.config.default_strategy
        profile = self.catalog.get(video_id)
        ladder = profile.ladder()

        meter = ReportedBandwidthMeter()
        load_info = ReportedLoadInfo()

        if strategy == "utility":
            selector: IQualitySelector = self.create_utility_selector(ladder)
        elif strategy == "policy":
            selector = self.create_policy_selector(
                ladder, video_id.lower(), profile.total_chunks, load_info
            )
        else:
            raise ConfigurationError(f"Unknown strategy: {strategy}")

        ladders = [ladder]
        for bitrates in companion_tracks or ():
            ladders.append(BitrateLadder.from_bitrates(bitrates))
        group = self.create_group(ladders, meter, session_id, primary=(selector, strategy))
        controller = group.controllers[0]

        logger.info(
            f"Created {strategy} session for {video_id}",
            extra={"session_id": session_id},
        )
        return SelectionSession(
            session_id=session_id,
            video_id=video_id.lower(),
            strategy=strategy,
            controller=controller,
            meter=meter,
            load_info=load_info,
            group=group,
        )

    def create_utility_selector(self, ladder: BitrateLadder) -> UtilityBasedSelector:
        return UtilityBasedSelector(
            ladder,
            minimum_buffer_s=self.config.minimum_buffer_s,
            minimum_buffer_per_level_s=self.config.minimum_buffer_per_level_s,
        )

    def create_policy_selector(
        self,
        ladder: BitrateLadder,
        video_id: str,
        total_chunks: int,
        load_info: ReportedLoadInfo,
    ) -> PolicyBasedSelector:
        if self.policy_model_provider is None:
            raise ConfigurationError("Policy strategy requested but no policy model is configured")
        policy_model = self.policy_model_provider()

        chunk_sizes = ChunkSizeTable.load(
            self.config.chunk_size_dir, video_id, len(ladder), total_chunks
        )
        return PolicyBasedSelector(
            ladder,
            policy_model,
            load_info,
            chunk_sizes,
            total_chunks,
            history_length=self.config.history_length,
            buffer_norm_factor=self.config.buffer_norm_factor,
            rebuf_penalty=self.config.rebuf_penalty,
            smooth_penalty=self.config.smooth_penalty,
            qoe_type=QoEType(self.config.qoe_type),
            default_bitrate=self.config.default_bitrate_level,
        )

    def create_controller(
        self,
        selector: IQualitySelector,
        strategy: Strategy,
        allocator: Optional[BandwidthAllocator] = None,
        session_id: str = "default",
    ) -> SelectionController:
        if strategy == "policy":
            interval_ms = self.config.policy_reevaluation_interval_ms
        else:
            interval_ms = self.config.utility_reevaluation_interval_ms

        eviction_policy = QueueEvictionPolicy(
            min_duration_to_retain_after_discard_ms=self.config.min_duration_to_retain_after_discard_ms,
            min_time_between_buffer_reevaluation_ms=interval_ms,
        )
        ideal_source = self.config.ideal_index_source if allocator is not None else "selected"
        return SelectionController(
            selector,
            eviction_policy,
            allocator=allocator,
            metrics=self.metrics,
            ideal_index_source=ideal_source,
            session_id=session_id,
        )

    def create_group(
        self,
        ladders: Sequence[BitrateLadder],
        meter: IBandwidthMeter,
        session_id: str = "default",
        primary: Optional[tuple[IQualitySelector, Strategy]] = None,
    ) -> SelectionGroup:
        """Create selections for concurrently played track groups.

        Single-variant groups are fixed; their bitrates are reserved from
        every adaptive allocator. Other groups get utility selections. With
        more than one adaptive selection, checkpoints are planned once and
        installed on each allocator.

        Args:
            ladders: One ladder per track group
            meter: Throughput estimate shared by the group
            session_id: Identifier used in log records
            primary: Selector and strategy for the first group, which is
                then adaptive even with a single variant

        Returns:
            SelectionGroup in the order of ladders
        """
        group = SelectionGroup(
            controllers=[None] * len(ladders),
            fixed_variants=[None] * len(ladders),
        )

        for i, ladder in enumerate(ladders):
            if len(ladder) == 1 and not (i == 0 and primary is not None):
                variant = ladder.variant(0)
                group.fixed_variants[i] = variant
                if variant.bitrate_kbps != NO_VALUE:
                    group.reserved_bandwidth_bps += variant.bitrate_bps

        reserved = self.config.reserved_bandwidth_bps + group.reserved_bandwidth_bps
        adaptive: list[SelectionController] = []
        for i, ladder in enumerate(ladders):
            if group.fixed_variants[i] is not None:
                continue
            if i == 0 and primary is not None:
                selector, strategy = primary
            else:
                selector, strategy = self.create_utility_selector(ladder), "utility"

            allocator = BandwidthAllocator(
                meter,
                bandwidth_fraction=self.config.bandwidth_fraction,
                reserved_bandwidth=reserved,
            )
            controller = self.create_controller(selector, strategy, allocator, session_id)
            group.controllers[i] = controller
            adaptive.append(controller)

        if len(adaptive) > 1:
            track_bitrates = [
                [variant.bitrate_bps for variant in controller.ladder.variants]
                for controller in adaptive
            ]
            checkpoints = get_allocation_checkpoints(track_bitrates)
            for controller, table in zip(adaptive, checkpoints):
                controller.allocator.set_allocation_checkpoints(table)
            logger.info(
                f"Installed {len(checkpoints[0])} allocation checkpoints on "
                f"{len(adaptive)} adaptive selections",
                extra={"session_id": session_id},
            )

        return group
