"""
Check execution: HTTP HEAD and ICMP echo probes.

One cycle runs every target x protocol concurrently as asyncio tasks and
returns only once all of them are done, so the caller always receives a
complete batch stamped with the cycle's timestamp. Probe failures become
failed records and never raise.
"""

from __future__ import annotations

import asyncio
import logging
import platform
import re
import time
from ipaddress import IPv4Address, IPv6Address
from math import ceil
from typing import Optional, Union

import httpx

from netpulse.config import Settings
from netpulse.models import CheckKind, CheckRecord, FailureReason

logger = logging.getLogger(__name__)

Target = Union[IPv4Address, IPv6Address]

_LESS_THAN = re.compile(r"time<(\d+)", re.IGNORECASE)
_LATENCY = re.compile(r"time\s*[=<]\s*(\d+(?:\.\d+)?)\s*ms", re.IGNORECASE)


def parse_ping_latency_ms(output: str) -> Optional[int]:
    """Latency in whole milliseconds from ``ping`` output, or ``None``.

    Windows prints ``time<1ms`` for fast replies, which counts as half the
    bound. Only the English ``time`` keyword is understood.
    """
    if not output:
        return None
    match = _LESS_THAN.search(output)
    if match:
        return round(float(match.group(1)) / 2.0)
    match = _LATENCY.search(output)
    if match:
        return round(float(match.group(1)))
    return None


def http_url(target: Target) -> str:
    if target.version == 6:
        return f"http://[{target}]"
    return f"http://{target}"


def build_ping_command(target: Target, timeout_seconds: float, system: str) -> list[str]:
    """Platform specific single-echo ``ping`` invocation."""
    if system == "Windows":
        return ["ping", "-n", "1", "-w", str(int(timeout_seconds * 1000)), str(target)]
    if system == "Linux":
        family = "-6" if target.version == 6 else "-4"
        return ["ping", family, "-c", "1", "-W", str(max(1, ceil(timeout_seconds))), str(target)]
    # macOS/BSD: -W has different semantics, rely on the subprocess timeout
    return ["ping", "-c", "1", str(target)]


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------

def _failed(kind: CheckKind, target: Target, timestamp: int, reason: FailureReason) -> CheckRecord:
    return CheckRecord(timestamp=timestamp, kind=kind, success=False, target=target, failure=reason)


async def check_http(client: httpx.AsyncClient, target: Target, timestamp: int) -> CheckRecord:
    """HEAD request against ``target``; any HTTP response is a success."""
    start = time.perf_counter()
    try:
        await client.head(http_url(target))
    except httpx.TimeoutException as exc:
        logger.info("HTTP check timed out: target=%s (%s)", target, exc)
        return _failed(CheckKind.HTTP, target, timestamp, FailureReason.TIMEOUT)
    except httpx.ConnectError as exc:
        logger.info("HTTP check unreachable: target=%s (%s)", target, exc)
        return _failed(CheckKind.HTTP, target, timestamp, FailureReason.UNREACHABLE)
    except httpx.HTTPError as exc:
        logger.error("Error while performing an HTTP check: target=%s (%s)", target, exc)
        return _failed(CheckKind.HTTP, target, timestamp, FailureReason.ERROR)

    latency = int((time.perf_counter() - start) * 1000)
    return CheckRecord(
        timestamp=timestamp, kind=CheckKind.HTTP, success=True, latency=latency, target=target
    )


async def check_icmp(target: Target, timestamp: int, timeout_seconds: float) -> CheckRecord:
    """One ICMP echo through the system ``ping`` command."""
    cmd = build_ping_command(target, timeout_seconds, platform.system())
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as exc:
        logger.warning("Ping command unavailable: target=%s (%s)", target, exc)
        return _failed(CheckKind.ICMP, target, timestamp, FailureReason.ERROR)

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout_seconds + 0.5)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.info("Ping timed out: target=%s", target)
        return _failed(CheckKind.ICMP, target, timestamp, FailureReason.TIMEOUT)

    if proc.returncode != 0:
        logger.info("Ping failed: target=%s, returncode=%d", target, proc.returncode)
        return _failed(CheckKind.ICMP, target, timestamp, FailureReason.UNREACHABLE)

    output = stdout.decode(errors="replace")
    latency = parse_ping_latency_ms(output)
    if latency is None:
        logger.debug("Could not parse ping output: target=%s, output=%s", target, output[:100])
        return _failed(CheckKind.ICMP, target, timestamp, FailureReason.ERROR)

    return CheckRecord(
        timestamp=timestamp, kind=CheckKind.ICMP, success=True, latency=latency, target=target
    )


# ---------------------------------------------------------------------------
# Cycle
# ---------------------------------------------------------------------------

async def run_checks(
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
    timestamp: Optional[int] = None,
) -> list[CheckRecord]:
    """Run one full check cycle and return the completed batch."""
    if timestamp is None:
        timestamp = int(time.time())
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.timeout_seconds),
            follow_redirects=False,
        )

    try:
        probes = [check_http(client, target, timestamp) for target in settings.http_targets]
        probes += [
            check_icmp(target, timestamp, settings.timeout_seconds)
            for target in settings.icmp_targets
        ]
        records = await asyncio.gather(*probes)
    finally:
        if owns_client:
            await client.aclose()

    logger.info(
        "Check cycle done: %d checks, %d failed",
        len(records),
        sum(1 for r in records if not r.is_success()),
    )
    return list(records)
