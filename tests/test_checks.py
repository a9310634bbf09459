"""Tests for the HTTP and ICMP probes and the check cycle."""

import asyncio
from ipaddress import ip_address

import httpx
import pytest

from conftest import T0
from netpulse import checks
from netpulse.checks import (
    build_ping_command,
    check_http,
    check_icmp,
    http_url,
    parse_ping_latency_ms,
    run_checks,
)
from netpulse.config import Settings
from netpulse.models import CheckKind, FailureReason

V4 = ip_address("1.1.1.1")
V6 = ip_address("2606:4700:4700::1111")

LINUX_PING = """PING 1.1.1.1 (1.1.1.1) 56(84) bytes of data.
64 bytes from 1.1.1.1: icmp_seq=1 ttl=57 time=12.6 ms

--- 1.1.1.1 ping statistics ---
1 packets transmitted, 1 received, 0% packet loss, time 0ms
"""

WINDOWS_PING = """Pinging 1.1.1.1 with 32 bytes of data:
Reply from 1.1.1.1: bytes=32 time=14ms TTL=57
"""


class FakeProcess:
    """Stand-in for an asyncio subprocess running ping."""

    def __init__(self, output, returncode=0):
        self._output = output
        self.returncode = returncode

    async def communicate(self):
        return self._output.encode(), None


def fake_exec(process):
    async def create_subprocess_exec(*cmd, **kwargs):
        return process
    return create_subprocess_exec


def client_with(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestParsePingLatency:
    """Test latency extraction from ping output."""

    def test_linux_output(self):
        assert parse_ping_latency_ms(LINUX_PING) == 13

    def test_windows_output(self):
        assert parse_ping_latency_ms(WINDOWS_PING) == 14

    def test_windows_less_than(self):
        """Test that time<N counts as half the bound."""
        assert parse_ping_latency_ms("Reply from 1.1.1.1: bytes=32 time<4ms TTL=57") == 2

    def test_no_latency(self):
        assert parse_ping_latency_ms("Request timed out.") is None

    def test_empty_output(self):
        assert parse_ping_latency_ms("") is None


class TestPingCommand:
    def test_linux_v4(self):
        assert build_ping_command(V4, 10.0, "Linux") == ["ping", "-4", "-c", "1", "-W", "10", "1.1.1.1"]

    def test_linux_v6_rounds_timeout_up(self):
        cmd = build_ping_command(V6, 0.5, "Linux")

        assert cmd[:2] == ["ping", "-6"]
        assert cmd[-2:] == ["1", str(V6)]

    def test_windows_uses_milliseconds(self):
        assert build_ping_command(V4, 2.5, "Windows") == ["ping", "-n", "1", "-w", "2500", "1.1.1.1"]

    def test_other_systems(self):
        assert build_ping_command(V4, 10.0, "Darwin") == ["ping", "-c", "1", "1.1.1.1"]


class TestHttpUrl:
    def test_v4(self):
        assert http_url(V4) == "http://1.1.1.1"

    def test_v6_is_bracketed(self):
        assert http_url(V6) == "http://[2606:4700:4700::1111]"


class TestCheckHttp:
    """Test the HTTP probe against a mocked transport."""

    def test_any_response_is_success(self):
        seen = []

        def handler(request):
            seen.append(request.method)
            return httpx.Response(503)

        async def run():
            async with client_with(handler) as client:
                return await check_http(client, V4, T0)

        record = asyncio.run(run())

        assert seen == ["HEAD"]
        assert record.is_success()
        assert record.kind is CheckKind.HTTP
        assert record.timestamp == T0
        assert record.latency is not None and record.latency >= 0

    @pytest.mark.parametrize(
        "error, reason",
        [
            (httpx.ConnectError, FailureReason.UNREACHABLE),
            (httpx.ReadTimeout, FailureReason.TIMEOUT),
            (httpx.RemoteProtocolError, FailureReason.ERROR),
        ],
    )
    def test_transport_errors(self, error, reason):
        """Test that transport errors become failed records, not exceptions."""

        def handler(request):
            raise error("boom", request=request)

        async def run():
            async with client_with(handler) as client:
                return await check_http(client, V6, T0)

        record = asyncio.run(run())

        assert not record.is_success()
        assert record.failure is reason
        assert record.latency is None
        assert record.target == V6


class TestCheckIcmp:
    """Test the ICMP probe with a fake ping process."""

    def test_success(self, monkeypatch):
        monkeypatch.setattr(checks.asyncio, "create_subprocess_exec", fake_exec(FakeProcess(LINUX_PING)))

        record = asyncio.run(check_icmp(V4, T0, 1.0))

        assert record.is_success()
        assert record.kind is CheckKind.ICMP
        assert record.latency == 13

    def test_nonzero_exit_is_unreachable(self, monkeypatch):
        monkeypatch.setattr(
            checks.asyncio, "create_subprocess_exec", fake_exec(FakeProcess("100% packet loss", 1))
        )

        record = asyncio.run(check_icmp(V4, T0, 1.0))

        assert record.failure is FailureReason.UNREACHABLE

    def test_unparsable_output_is_error(self, monkeypatch):
        monkeypatch.setattr(checks.asyncio, "create_subprocess_exec", fake_exec(FakeProcess("pong")))

        record = asyncio.run(check_icmp(V4, T0, 1.0))

        assert record.failure is FailureReason.ERROR

    def test_missing_ping_binary(self, monkeypatch):
        async def missing(*cmd, **kwargs):
            raise FileNotFoundError("ping")

        monkeypatch.setattr(checks.asyncio, "create_subprocess_exec", missing)

        record = asyncio.run(check_icmp(V6, T0, 1.0))

        assert not record.is_success()
        assert record.failure is FailureReason.ERROR


class TestRunChecks:
    """Test one complete check cycle."""

    def test_cycle_shares_one_timestamp(self, monkeypatch):
        monkeypatch.setattr(checks.asyncio, "create_subprocess_exec", fake_exec(FakeProcess(LINUX_PING)))
        settings = Settings(http_targets=["1.1.1.1", "2606:4700:4700::1111"], icmp_targets=["1.1.1.1"])

        async def run():
            async with client_with(lambda request: httpx.Response(200)) as client:
                return await run_checks(settings, client=client, timestamp=T0)

        records = asyncio.run(run())

        assert len(records) == 3
        assert {record.timestamp for record in records} == {T0}
        assert sorted(record.kind.value for record in records) == ["http", "http", "icmp"]
        assert all(record.is_success() for record in records)

    def test_failures_are_recorded(self):
        settings = Settings(http_targets=["1.1.1.1"], icmp_targets=[])

        def handler(request):
            raise httpx.ConnectError("no route", request=request)

        async def run():
            async with client_with(handler) as client:
                return await run_checks(settings, client=client, timestamp=T0)

        (record,) = asyncio.run(run())

        assert record.failure is FailureReason.UNREACHABLE

    def test_default_timestamp_is_now(self, monkeypatch):
        monkeypatch.setattr(checks.time, "time", lambda: T0 + 0.7)
        settings = Settings(http_targets=["1.1.1.1"], icmp_targets=[])

        async def run():
            async with client_with(lambda request: httpx.Response(200)) as client:
                return await run_checks(settings, client=client)

        (record,) = asyncio.run(run())

        assert record.timestamp == T0
