"""
Outages and their severity.

An ``Outage`` is an immutable, time-sorted bundle of the checks of one
fail-group. Its ``Severity`` is the share of failed checks in it and is
recomputed from the checks every time it is asked for.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering
from typing import Any, Iterable

from netpulse.errors import EmptyOutageError, SeverityRangeError
from netpulse.models import CheckRecord, display_group, fmt_timestamp


def key_value(title: str, content: Any) -> str:
    """One aligned ``<title>: <content>`` report line."""
    return f"{title:<24}: {content}\n"


# ---------------------------------------------------------------------------
# Severity
# ---------------------------------------------------------------------------

class SeverityLevel(str, Enum):
    NONE = "none"
    PARTIAL = "partial"
    COMPLETE = "complete"


_LEVEL_RANK: dict[SeverityLevel, int] = {
    SeverityLevel.NONE: 0,
    SeverityLevel.PARTIAL: 1,
    SeverityLevel.COMPLETE: 2,
}


@total_ordering
@dataclass(frozen=True)
class Severity:
    """
    Classification of an outage by its share of failed checks.

    Ordered Complete > Partial(p1) > Partial(p2) > None for p1 > p2.
    """

    level: SeverityLevel
    fraction: float

    def __post_init__(self) -> None:
        expected = {SeverityLevel.COMPLETE: 1.0, SeverityLevel.NONE: 0.0}
        if self.level in expected:
            if self.fraction != expected[self.level]:
                raise SeverityRangeError(self.fraction)
        elif math.isnan(self.fraction) or not 0.0 < self.fraction < 1.0:
            raise SeverityRangeError(self.fraction)

    @classmethod
    def complete(cls) -> Severity:
        return cls(SeverityLevel.COMPLETE, 1.0)

    @classmethod
    def partial(cls, fraction: float) -> Severity:
        return cls(SeverityLevel.PARTIAL, fraction)

    @classmethod
    def none(cls) -> Severity:
        return cls(SeverityLevel.NONE, 0.0)

    @classmethod
    def from_fraction(cls, fraction: float) -> Severity:
        """Classify a failure fraction; values outside [0, 1] are an error."""
        if math.isnan(fraction) or fraction < 0.0 or fraction > 1.0:
            raise SeverityRangeError(fraction)
        if fraction == 1.0:
            return cls.complete()
        if fraction == 0.0:
            return cls.none()
        return cls.partial(fraction)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return (_LEVEL_RANK[self.level], self.fraction) < (_LEVEL_RANK[other.level], other.fraction)

    def __str__(self) -> str:
        if self.level is SeverityLevel.COMPLETE:
            return "Complete"
        if self.level is SeverityLevel.NONE:
            return "No Outage"
        return f"Partial ({self.fraction * 100.0:.02f} %)"


# ---------------------------------------------------------------------------
# Outage
# ---------------------------------------------------------------------------

class Outage:
    """
    One period of failing checks.

    Holds references to the records it was built from, sorted by their
    total order, and never changes afterwards. A different set of checks
    means a new ``Outage``.
    """

    __slots__ = ("_checks",)

    def __init__(self, records: Iterable[CheckRecord]) -> None:
        checks = tuple(sorted(records, key=lambda record: record.sort_key))
        if not checks:
            raise EmptyOutageError()
        self._checks = checks

    @classmethod
    def build(cls, records: Iterable[CheckRecord]) -> Outage:
        """Build an outage, raising ``EmptyOutageError`` for no records."""
        return cls(records)

    # -- accessors -----------------------------------------------------------

    def all(self) -> tuple[CheckRecord, ...]:
        return self._checks

    def first(self) -> CheckRecord:
        return self._checks[0]

    def last(self) -> CheckRecord:
        return self._checks[-1]

    def len(self) -> int:
        return len(self._checks)

    def __len__(self) -> int:
        return len(self._checks)

    def is_empty(self) -> bool:
        return not self._checks

    @property
    def start(self) -> int:
        return self.first().timestamp

    @property
    def end(self) -> int:
        return self.last().timestamp

    @property
    def duration(self) -> int:
        """Seconds between the first and the last check."""
        return self.end - self.start

    def covers(self, timestamp: int) -> bool:
        return self.start <= timestamp <= self.end

    def failed_count(self) -> int:
        return sum(1 for record in self._checks if not record.is_success())

    # -- severity ------------------------------------------------------------

    def severity(self) -> Severity:
        return Severity.from_fraction(self.failed_count() / len(self._checks))

    def cmp_severity(self, other: Outage) -> int:
        """Compare by severity, then by number of checks. Returns -1, 0 or 1."""
        mine, theirs = self.severity(), other.severity()
        if mine != theirs:
            return 1 if mine > theirs else -1
        return (len(self) > len(other)) - (len(self) < len(other))

    # -- rendering -----------------------------------------------------------

    def short_report(self) -> str:
        """``From <start> To <end>, Total <n>, <severity>`` on one line."""
        return (
            f"From {fmt_timestamp(self.start)}"
            f" To {fmt_timestamp(self.end)}"
            f", Total {len(self):>6}"
            f", {self.severity()}"
        )

    def describe(self) -> str:
        return (
            key_value("From", fmt_timestamp(self.start))
            + key_value("To", fmt_timestamp(self.end))
            + key_value("Total", len(self))
            + key_value("Severity", self.severity())
            + f"\nFirst\n{self.first().describe()}\n"
            + f"\nLast\n{self.last().describe()}\n"
        )

    def dump(self) -> str:
        """Listing of every check in this outage."""
        return display_group(self._checks)

    # -- dunder --------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Outage):
            return NotImplemented
        return self._checks == other._checks

    def __hash__(self) -> int:
        return hash(self._checks)

    def __repr__(self) -> str:
        return f"Outage(start={self.start}, end={self.end}, checks={len(self)})"
