"""
netpulse command line: reports over the store and one-shot check cycles.

    netpulse                      full report
    netpulse --outages            outage listing (add --dump, --latest N)
    netpulse --dump               every stored check
    netpulse --test               run one check cycle, print it, store nothing
    netpulse --check              run one check cycle and append it to the store

Filters (--ipv4/--ipv6, --failed, --complete, --since) apply to every
report. Exit code is 0 on success and 1 on any error.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, Sequence

from pydantic import ValidationError

from netpulse import __version__
from netpulse.analyze import get_checks, outages
from netpulse.checks import run_checks
from netpulse.config import Settings, get_settings
from netpulse.console import ConsoleRenderer
from netpulse.errors import NetpulseError, QueryError
from netpulse.models import AccessConstraints, IpFilter
from netpulse.report import analyze, dump_checks, outage_listing
from netpulse.store import Store

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def configure_logging(level: str) -> None:
    """Log to stderr so reports on stdout stay clean."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )


# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netpulse",
        description="Analyze the checks collected by netpulse and report outages.",
    )
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("-o", "--outages", action="store_true", help="list outages only")
    mode.add_argument("-t", "--test", action="store_true", help="run all checks once and print them")
    mode.add_argument("--check", action="store_true", help="run all checks once and store them")

    parser.add_argument("-d", "--dump", action="store_true", help="print the checks (of each outage)")
    parser.add_argument("-n", "--latest", type=int, metavar="N", help="only the N latest outages")

    family = parser.add_mutually_exclusive_group()
    family.add_argument("-4", "--ipv4", action="store_true", help="only consider IPv4 checks")
    family.add_argument("-6", "--ipv6", action="store_true", help="only consider IPv6 checks")

    parser.add_argument("-f", "--failed", action="store_true", help="only consider failed checks")
    parser.add_argument(
        "-c", "--complete", action="store_true",
        help="with --failed: only checks inside complete outages",
    )
    parser.add_argument(
        "-s", "--since", metavar="DATETIME",
        help="only checks at or after DATETIME (ISO 8601, UTC if naive)",
    )
    parser.add_argument("--plain", action="store_true", help="no colors")
    return parser


def parse_since(value: str) -> int:
    """ISO 8601 date or datetime to epoch seconds; naive values are UTC."""
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(value)
    except ValueError as exc:
        raise QueryError(f"could not parse --since value {value!r}: {exc}") from exc
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp())


def constraints_from_args(args: argparse.Namespace) -> AccessConstraints:
    ip_filter = IpFilter.ANY
    if args.ipv4:
        ip_filter = IpFilter.V4
    elif args.ipv6:
        ip_filter = IpFilter.V6
    return AccessConstraints(
        failed_only=args.failed,
        ip_filter=ip_filter,
        since=parse_since(args.since) if args.since else None,
        only_complete_outages=args.complete,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def run_cycle(settings: Settings, persist: bool) -> str:
    records = asyncio.run(run_checks(settings))
    if persist:
        store = Store.load_or_create(settings.store_path)
        store.add_checks(records)
        store.save()
        logger.info("Stored %d checks in %s", len(records), store.path)
    return dump_checks(records)


def report(args: argparse.Namespace, settings: Settings) -> str:
    if args.latest is not None and not args.outages:
        raise QueryError("--latest only works together with --outages")
    if args.latest is not None and args.latest < 0:
        raise QueryError("--latest must not be negative")
    if args.complete and not args.failed:
        logger.warning("--complete has no effect without --failed")

    constraints = constraints_from_args(args)
    store = Store.load(settings.store_path)
    records = get_checks(store.checks(), constraints, settings.outage_time_span)

    if args.outages:
        return outage_listing(
            outages(records, settings.outage_time_span),
            latest_n=args.latest,
            dump=args.dump,
        )
    if args.dump:
        return dump_checks(records)
    return analyze(records, settings, store)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    renderer = ConsoleRenderer(plain=args.plain)
    try:
        settings = get_settings()
    except ValidationError as exc:
        print(f"netpulse: error: invalid configuration: {exc}", file=sys.stderr)
        return 1
    configure_logging(settings.log_level)

    try:
        if args.test or args.check:
            output = run_cycle(settings, persist=args.check)
        else:
            output = report(args, settings)
    except (NetpulseError, OSError) as exc:
        logger.error("%s", exc)
        print(f"netpulse: error: {exc}", file=sys.stderr)
        return 1

    renderer.print(output)
    return 0
