"""
Time-grouping and fail-group building.

Checks of one cycle run concurrently against several targets and
protocols, so they share a timestamp but arrive in any order. Grouping by
timestamp restores the cycle structure; fail-groups are then merged runs
of failing cycles separated by no more than a tolerance window.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Sequence

from netpulse.models import CheckRecord

logger = logging.getLogger(__name__)


def group_by_time(records: Iterable[CheckRecord]) -> dict[int, list[CheckRecord]]:
    """Map each timestamp to the records that share it."""
    groups: dict[int, list[CheckRecord]] = defaultdict(list)
    for record in records:
        groups[record.timestamp].append(record)
    return dict(groups)


def is_failing(group: Sequence[CheckRecord]) -> bool:
    """A time-group fails if at least one of its records failed."""
    return any(not record.is_success() for record in group)


def fail_groups(records: Iterable[CheckRecord], tolerance: int) -> list[list[CheckRecord]]:
    """
    Merge failing time-groups into maximal outage candidates.

    Timestamps are scanned in ascending order. A failing time-group joins
    the open candidate when it is at most ``tolerance`` seconds after the
    candidate's most recent failing timestamp, otherwise it starts a new
    one. Successful time-groups are never part of a candidate and only the
    time gap decides where candidates split.
    """
    if tolerance < 0:
        raise ValueError("tolerance must not be negative")

    groups = group_by_time(records)
    result: list[list[CheckRecord]] = []
    current: list[CheckRecord] = []
    last_failing: int | None = None

    for timestamp in sorted(groups):
        group = groups[timestamp]
        if not is_failing(group):
            continue
        if last_failing is not None and timestamp - last_failing > tolerance:
            result.append(current)
            current = []
        current.extend(group)
        last_failing = timestamp

    if current:
        result.append(current)

    result.sort(key=lambda candidate: min(record.sort_key for record in candidate))
    logger.debug(
        "Built %d fail-groups from %d time-groups (tolerance=%ds)",
        len(result),
        len(groups),
        tolerance,
    )
    return result
