"""Bandwidth allocation checkpoints for concurrent adaptive selections.

Builds piecewise-linear tables that split one total bandwidth budget between
several selections (for example video and audio) as the budget grows.

Algorithm:
    1. Use log bitrates so every ladder step carries equal weight.
    2. Spread each selection's switch points over the same [0.0, 1.0] range.
    3. Upgrade one selection by one level at a time, in switch point order.
"""

import logging
from typing import Sequence

from abr.ladder import log_utility

logger = logging.getLogger(__name__)

Checkpoint = tuple[int, int]  # (total bandwidth, allocated bandwidth)


def log_bitrates(track_bitrates: Sequence[Sequence[int]]) -> list[list[float]]:
    """Convert every bitrate to its natural log (NO_VALUE maps to 0)."""
    return [[log_utility(bitrate) for bitrate in track] for track in track_bitrates]


def switch_points(log_values: Sequence[Sequence[float]]) -> list[list[float]]:
    """Return normalized switch points between consecutive levels.

    Args:
        log_values: Log bitrates, [selection][level]

    Returns:
        [selection][level - 1] switch points in [0.0, 1.0]. A selection
        whose levels all share one bitrate gets 1.0 everywhere.
    """
    points: list[list[float]] = []
    for logs in log_values:
        if len(logs) < 2:
            points.append([])
            continue

        total_diff = logs[-1] - logs[0]
        track_points = []
        for j in range(len(logs) - 1):
            switch_bitrate = 0.5 * (logs[j] + logs[j + 1])
            if total_diff == 0.0:
                track_points.append(1.0)
            else:
                track_points.append((switch_bitrate - logs[0]) / total_diff)
        points.append(track_points)
    return points


def _checkpoint_row(
    track_bitrates: Sequence[Sequence[int]], selected_levels: Sequence[int]
) -> list[Checkpoint]:
    allocated = [int(track_bitrates[i][level]) for i, level in enumerate(selected_levels)]
    total = sum(allocated)
    return [(total, value) for value in allocated]


def get_allocation_checkpoints(
    track_bitrates: Sequence[Sequence[int]],
) -> list[list[Checkpoint]]:
    """Plan allocation checkpoints for concurrent selections.

    Args:
        track_bitrates: [selection][level] bitrates in ascending level order

    Returns:
        [selection][checkpoint] (total, allocated) pairs. Checkpoint k shares
        the same total across selections. There are switch point count + 3
        checkpoints: [0] all zero, [1] minimum levels, one per upgrade, and a
        final entry doubling the one before it.
    """
    logs = log_bitrates(track_bitrates)
    points = switch_points(logs)

    checkpoint_count = sum(len(p) for p in points) + 3
    selection_count = len(track_bitrates)
    current = [0] * selection_count

    rows: list[list[Checkpoint]] = [[(0, 0)] * selection_count]
    rows.append(_checkpoint_row(track_bitrates, current))

    for _ in range(2, checkpoint_count - 1):
        next_selection = 0
        next_switch_point = float("inf")
        for i in range(selection_count):
            if current[i] + 1 == len(logs[i]):
                continue
            switch_point = points[i][current[i]]
            if switch_point < next_switch_point:
                next_switch_point = switch_point
                next_selection = i
        current[next_selection] += 1
        rows.append(_checkpoint_row(track_bitrates, current))

    rows.append([(2 * total, 2 * allocated) for total, allocated in rows[-1]])

    logger.debug(
        f"Planned {checkpoint_count} allocation checkpoints for "
        f"{selection_count} selections"
    )

    # Transpose to [selection][checkpoint]
    return [[row[i] for row in rows] for i in range(selection_count)]
