"""
Text reports over a snapshot of checks.

The report is a sequence of sections (General, HTTP, ICMP, IPv4, IPv6,
Outages and optionally Store Metadata). An empty section says ``None``
so a missing section is never mistaken for an empty one.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from netpulse.analyze import CheckStats, OutageSet, latest, most_severe, stats
from netpulse.config import Settings
from netpulse.errors import SeverityRangeError
from netpulse.models import CheckKind, CheckRecord, IpFamily, display_group, fmt_timestamp
from netpulse.outage import Outage, key_value
from netpulse.store import Store

logger = logging.getLogger(__name__)

NONE_LINE = "None\n"


def barrier(title: str) -> str:
    """Section divider with the title embedded."""
    return f"{'':=<10}{' ' + title + ' ':=<48}\n"


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def _stats_section(check_stats: Optional[CheckStats]) -> str:
    if check_stats is None:
        return NONE_LINE + "\n"
    out = key_value("checks", f"{check_stats.total:08}")
    out += key_value("checks ok", f"{check_stats.ok:08}")
    out += key_value("checks bad", f"{check_stats.bad:08}")
    out += key_value("success ratio", f"{check_stats.success_ratio * 100.0:03.02f}%")
    out += key_value("first check at", fmt_timestamp(check_stats.first_timestamp))
    out += key_value("last check at", fmt_timestamp(check_stats.last_timestamp))
    if check_stats.latency_mean is not None:
        out += key_value("latency avg", f"{check_stats.latency_mean:.02f} ms")
        out += key_value("latency median", f"{check_stats.latency_median:.02f} ms")
        out += key_value("latency min", f"{check_stats.latency_min} ms")
        out += key_value("latency max", f"{check_stats.latency_max} ms")
    return out + "\n"


def outage_line(idx: int, outage: Outage) -> str:
    """One numbered outage line; a broken outage does not break the report."""
    try:
        return f"{idx}: {outage.short_report()}\n"
    except SeverityRangeError as exc:
        logger.error("Could not classify outage starting at %d: %s", outage.start, exc)
        return f"{idx}: From {fmt_timestamp(outage.start)} <severity error: {exc}>\n"


def _outage_lines(selected: Sequence[Outage], dump: bool = False) -> str:
    out = ""
    for idx, outage in enumerate(selected):
        out += outage_line(idx, outage)
        if dump:
            out += "\t" + outage.dump().rstrip("\n").replace("\n", "\n\t") + "\n"
    return out


def _severity_ranking(outage_set: OutageSet, count: int) -> list[Outage]:
    """Most severe first; outages without a valid severity go last."""
    classified: list[Outage] = []
    broken: list[Outage] = []
    for outage in outage_set:
        try:
            outage.severity()
        except SeverityRangeError:
            broken.append(outage)
        else:
            classified.append(outage)
    return (most_severe(classified) + broken)[:count]


def _outages_section(outage_set: OutageSet, count: int) -> str:
    if not len(outage_set):
        return NONE_LINE + "\n"
    out = key_value("outages", len(outage_set))
    out += f"\nLatest {count}\n"
    out += _outage_lines(outage_set.latest(count))
    out += f"\nMost severe {count}\n"
    out += _outage_lines(_severity_ranking(outage_set, count))
    return out + "\n"


def _store_section(store: Store) -> str:
    out = key_value("Store Path", store.path)
    out += key_value("Store Version", store.version)
    out += key_value("Store Checks", len(store.checks()))
    try:
        out += key_value("Store Size (file)", f"{store.file_size()} B")
    except OSError as exc:
        logger.warning("Could not stat the store file: %s", exc)
        out += key_value("Store Size (file)", "unknown")
    return out


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def analyze(
    records: Sequence[CheckRecord],
    settings: Settings,
    store: Optional[Store] = None,
) -> str:
    """Full report over ``records``."""
    out = barrier("General")
    if not records:
        out += "Store has no checks yet\n\n"
    else:
        out += _stats_section(stats(records))

    for title, kind in (("HTTP", CheckKind.HTTP), ("ICMP", CheckKind.ICMP)):
        out += barrier(title)
        out += _stats_section(stats(r for r in records if r.check_kind() is kind))

    for title, family in (("IPv4", IpFamily.V4), ("IPv6", IpFamily.V6)):
        out += barrier(title)
        out += _stats_section(stats(r for r in records if r.ip_family is family))

    out += barrier("Outages")
    out += _outages_section(OutageSet(records, settings.outage_time_span), settings.report_outages)

    if store is not None:
        out += barrier("Store Metadata")
        out += _store_section(store)
    return out


def outage_listing(
    outages: Iterable[Outage],
    latest_n: Optional[int] = None,
    dump: bool = False,
) -> str:
    """The outage-only view: chronological, or the ``latest_n`` newest first."""
    selected = list(outages) if latest_n is None else latest(outages, latest_n)
    if not selected:
        return NONE_LINE
    return _outage_lines(selected, dump=dump)


def dump_checks(records: Iterable[CheckRecord]) -> str:
    """Every record, in chronological order."""
    return display_group(sorted(records, key=lambda record: record.sort_key))
