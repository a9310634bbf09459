"""Shared fixtures: check records and the minute 0-4 outage scenario."""

import random
from ipaddress import ip_address

import pytest

from netpulse.models import CheckKind, CheckRecord, FailureReason

# 2023-11-14 22:13:20 UTC
T0 = 1700000000
MINUTE = 60
TARGETS = ["1.1.1.1", "2606:4700:4700::1111"]


def make_check(
    timestamp,
    success=True,
    target="1.1.1.1",
    kind=CheckKind.HTTP,
    latency=20,
):
    """Build a CheckRecord with sensible defaults."""
    return CheckRecord(
        timestamp=timestamp,
        kind=kind,
        success=success,
        latency=latency if success else None,
        target=ip_address(target),
        failure=None if success else FailureReason.TIMEOUT,
    )


def make_cycle(timestamp, success=True):
    """One check cycle: every target probed with HTTP and ICMP (4 checks)."""
    return [
        make_check(timestamp, success=success, target=target, kind=kind)
        for target in TARGETS
        for kind in (CheckKind.HTTP, CheckKind.ICMP)
    ]


@pytest.fixture
def scenario_checks():
    """
    Minute 0 ok, minutes 1-2 failing, minute 3 ok, minute 4 failing.

    Shuffled, since concurrent checks reach the store in arbitrary order.
    """
    checks = (
        make_cycle(T0, success=True)
        + make_cycle(T0 + 1 * MINUTE, success=False)
        + make_cycle(T0 + 2 * MINUTE, success=False)
        + make_cycle(T0 + 3 * MINUTE, success=True)
        + make_cycle(T0 + 4 * MINUTE, success=False)
    )
    random.Random(7).shuffle(checks)
    return checks
