"""
Outage detection, ranking and filtered views over a snapshot of checks.

Everything in here is pure and synchronous: the input must be a completed
snapshot of check records that nobody mutates while it is analysed.
"""

from __future__ import annotations

import bisect
import logging
import statistics
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Iterable, Optional, Sequence

from netpulse.errors import EmptyOutageError
from netpulse.grouping import fail_groups
from netpulse.models import AccessConstraints, CheckRecord
from netpulse.outage import Outage, SeverityLevel

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Outage detection
# ---------------------------------------------------------------------------

def outages(records: Iterable[CheckRecord], tolerance: int) -> list[Outage]:
    """Detect all outages in ``records``, sorted chronologically."""
    result: list[Outage] = []
    for group in fail_groups(records, tolerance):
        try:
            result.append(Outage.build(group))
        except EmptyOutageError:
            logger.error("Fail-group builder produced an empty group, skipping it")
    result.sort(key=lambda outage: outage.first().sort_key)
    return result


def _within_outages(
    records: Sequence[CheckRecord], windows: Sequence[Outage]
) -> list[CheckRecord]:
    """Keep records whose timestamp lies inside one of ``windows``.

    ``windows`` must be sorted by start and must not overlap.
    """
    starts = [outage.start for outage in windows]
    kept = []
    for record in records:
        idx = bisect.bisect_right(starts, record.timestamp) - 1
        if idx >= 0 and windows[idx].covers(record.timestamp):
            kept.append(record)
    return kept


def get_checks(
    source: Sequence[CheckRecord],
    constraints: AccessConstraints,
    tolerance: int,
) -> list[CheckRecord]:
    """
    Filtered view over ``source``.

    Steps, in order:

    1. ``only_complete_outages`` together with ``failed_only``: detect the
       outages of the full set and keep every record inside the window of
       a complete outage. Successful checks inside such a window are kept
       and the failed-only filter is not applied a second time.
    2. ``failed_only`` otherwise drops successful checks.
    3. ``ip_filter`` keeps one IP family.
    4. ``since`` is an inclusive lower bound on the timestamp.

    The result references the records of ``source``; its order is not
    meaningful.
    """
    checks: list[CheckRecord] = list(source)

    windowed = constraints.only_complete_outages and constraints.failed_only
    if windowed:
        complete = [
            outage
            for outage in outages(checks, tolerance)
            if outage.severity().level is SeverityLevel.COMPLETE
        ]
        checks = _within_outages(checks, complete)
        logger.debug("Kept %d checks inside %d complete outages", len(checks), len(complete))
    elif constraints.failed_only:
        checks = [c for c in checks if not c.is_success()]

    checks = [c for c in checks if constraints.ip_filter.accepts(c.ip_family)]

    if constraints.since is not None:
        checks = [c for c in checks if c.timestamp >= constraints.since]

    return checks


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

def _check_count(n: Optional[int]) -> None:
    if n is not None and n < 0:
        raise ValueError("number of outages must not be negative")


def latest(all_outages: Iterable[Outage], n: Optional[int] = None) -> list[Outage]:
    """The ``n`` most recent outages by end time, newest first."""
    _check_count(n)
    ranked = sorted(all_outages, key=lambda outage: outage.last().sort_key, reverse=True)
    return ranked if n is None else ranked[:n]


def most_severe(all_outages: Iterable[Outage], n: Optional[int] = None) -> list[Outage]:
    """The ``n`` most severe outages, most severe first."""
    _check_count(n)
    ranked = sorted(all_outages, key=cmp_to_key(Outage.cmp_severity), reverse=True)
    return ranked if n is None else ranked[:n]


class OutageSet:
    """
    Outages of one snapshot, computed once.

    Both report views rank the same ``Outage`` objects so they never show
    different severities for the same period.
    """

    def __init__(self, records: Iterable[CheckRecord], tolerance: int) -> None:
        self.tolerance = tolerance
        self._outages = tuple(outages(records, tolerance))

    def all(self) -> tuple[Outage, ...]:
        return self._outages

    def __len__(self) -> int:
        return len(self._outages)

    def __iter__(self):
        return iter(self._outages)

    def latest(self, n: Optional[int] = None) -> list[Outage]:
        return latest(self._outages, n)

    def most_severe(self, n: Optional[int] = None) -> list[Outage]:
        return most_severe(self._outages, n)


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CheckStats:
    """Aggregate numbers over a set of checks."""

    total: int
    ok: int
    first_timestamp: int
    last_timestamp: int
    latency_min: Optional[int] = None
    latency_max: Optional[int] = None
    latency_mean: Optional[float] = None
    latency_median: Optional[float] = None

    @property
    def bad(self) -> int:
        return self.total - self.ok

    @property
    def success_ratio(self) -> float:
        return self.ok / self.total


def stats(records: Iterable[CheckRecord]) -> Optional[CheckStats]:
    """Summarise ``records``; ``None`` when there are none."""
    checks = list(records)
    if not checks:
        return None
    latencies = [c.latency for c in checks if c.latency is not None]
    timestamps = [c.timestamp for c in checks]
    return CheckStats(
        total=len(checks),
        ok=sum(1 for c in checks if c.is_success()),
        first_timestamp=min(timestamps),
        last_timestamp=max(timestamps),
        latency_min=min(latencies) if latencies else None,
        latency_max=max(latencies) if latencies else None,
        latency_mean=statistics.fmean(latencies) if latencies else None,
        latency_median=statistics.median(latencies) if latencies else None,
    )
