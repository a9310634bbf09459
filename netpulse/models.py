"""
Domain models for network checks and report queries.

All models use Pydantic v2 for validation and serialization. A
``CheckRecord`` is immutable once built; its IP family is derived from
the target address and cannot disagree with it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum, IntFlag
from ipaddress import IPv4Address, IPv6Address
from typing import Any, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from netpulse.errors import FormattingError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def fmt_timestamp(timestamp: int) -> str:
    """Format seconds since the epoch for humans (always UTC).

    Raises ``FormattingError`` for timestamps no calendar date can show.
    """
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(TIMESTAMP_FORMAT)
    except (ValueError, OverflowError, OSError) as exc:
        raise FormattingError(f"could not format timestamp {timestamp}: {exc}") from exc


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class CheckKind(str, Enum):
    """Protocol used by a check."""
    HTTP = "http"
    ICMP = "icmp"
    DNS = "dns"
    UNKNOWN = "unknown"

    @property
    def label(self) -> str:
        return _KIND_LABELS[self]


_KIND_LABELS: dict[CheckKind, str] = {
    CheckKind.HTTP: "HTTP(S)",
    CheckKind.ICMP: "ICMP",
    CheckKind.DNS: "DNS",
    CheckKind.UNKNOWN: "Unknown",
}

_KIND_ORDER: dict[CheckKind, int] = {kind: idx for idx, kind in enumerate(CheckKind)}


class IpFamily(str, Enum):
    """IP version of a check target."""
    V4 = "v4"
    V6 = "v6"


class IpFilter(str, Enum):
    """IP version restriction of a report query."""
    ANY = "any"
    V4 = "v4"
    V6 = "v6"

    def accepts(self, family: IpFamily) -> bool:
        if self is IpFilter.ANY:
            return True
        return self.value == family.value


class FailureReason(str, Enum):
    """Why a check failed."""
    TIMEOUT = "timeout"
    UNREACHABLE = "unreachable"
    ERROR = "error"


class CheckFlag(IntFlag):
    """Bit layout of legacy check rows, kept only to decode them."""
    SUCCESS = 0x0001
    TIMEOUT = 0x0002
    UNREACHABLE = 0x0004
    TYPE_HTTP = 0x1000
    TYPE_ICMP = 0x4000
    TYPE_DNS = 0x8000


_TYPE_FLAGS: dict[CheckFlag, CheckKind] = {
    CheckFlag.TYPE_HTTP: CheckKind.HTTP,
    CheckFlag.TYPE_ICMP: CheckKind.ICMP,
    CheckFlag.TYPE_DNS: CheckKind.DNS,
}


def classify_flags(flags: int) -> CheckKind:
    """Map legacy flag bits to exactly one ``CheckKind``.

    Zero or several type bits cannot be classified; those rows are logged
    and reported as ``CheckKind.UNKNOWN`` instead of aborting the analysis.
    """
    flags = CheckFlag(flags)
    kinds = [kind for flag, kind in _TYPE_FLAGS.items() if flag in flags]
    if len(kinds) == 1:
        return kinds[0]
    if kinds:
        logger.warning("Check has ambiguous type flags %#06x, using unknown", int(flags))
    else:
        logger.warning("Check is missing a type flag (%#06x), using unknown", int(flags))
    return CheckKind.UNKNOWN


def _failure_from_flags(flags: CheckFlag) -> Optional[FailureReason]:
    if CheckFlag.SUCCESS in flags:
        return None
    if CheckFlag.TIMEOUT in flags:
        return FailureReason.TIMEOUT
    if CheckFlag.UNREACHABLE in flags:
        return FailureReason.UNREACHABLE
    return FailureReason.ERROR


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

class CheckRecord(BaseModel):
    """The result of one connectivity probe against one target."""

    model_config = ConfigDict(frozen=True)

    timestamp: int
    kind: CheckKind = CheckKind.UNKNOWN
    success: bool
    latency: Optional[int] = Field(default=None, ge=0)
    target: Union[IPv4Address, IPv6Address]
    failure: Optional[FailureReason] = None

    @model_validator(mode="before")
    @classmethod
    def _decode_legacy_flags(cls, data: Any) -> Any:
        """Accept ``{"flags": int, ...}`` rows written by older daemons."""
        if not isinstance(data, dict) or "flags" not in data:
            return data
        data = dict(data)
        flags = CheckFlag(int(data.pop("flags")))
        if "kind" not in data:
            data["kind"] = classify_flags(flags)
        data.setdefault("success", CheckFlag.SUCCESS in flags)
        data.setdefault("failure", _failure_from_flags(flags))
        return data

    @field_validator("latency")
    @classmethod
    def _latency_only_when_successful(cls, value: Optional[int], info) -> Optional[int]:
        if not info.data.get("success", False):
            return None
        return value

    @field_validator("failure")
    @classmethod
    def _failure_only_when_failed(cls, value: Optional[FailureReason], info) -> Optional[FailureReason]:
        if info.data.get("success", False):
            return None
        return value

    # -- accessors -----------------------------------------------------------

    def is_success(self) -> bool:
        return self.success

    def check_kind(self) -> CheckKind:
        return self.kind

    @property
    def ip_family(self) -> IpFamily:
        return IpFamily.V4 if self.target.version == 4 else IpFamily.V6

    @property
    def sort_key(self) -> tuple[int, int, int, int]:
        """Total order: timestamp, then target, then kind."""
        return (self.timestamp, self.target.version, int(self.target), _KIND_ORDER[self.kind])

    def describe(self) -> str:
        """Multi-line human readable rendering of this record."""
        latency = f"{self.latency} ms" if self.latency is not None else "(Error)"
        lines = [
            f"Time: {fmt_timestamp(self.timestamp)}",
            f"Type: {self.kind.label}",
            f"Ok: {str(self.success).lower()}",
            f"Target: {self.target}",
            f"Latency: {latency}",
        ]
        if self.failure is not None:
            lines.append(f"Failure: {self.failure.value}")
        return "\n".join(lines)


def display_group(records: Sequence[CheckRecord]) -> str:
    """Numbered, indented listing of ``records``."""
    if not records:
        return "\t<Empty>\n"
    lines = []
    for idx, record in enumerate(records):
        lines.append(f"{idx}:")
        lines.append("\t" + record.describe().replace("\n", "\n\t"))
    return "\n".join(lines) + "\n"


class AccessConstraints(BaseModel):
    """Parameters of a filtered view over the checks. Not persisted."""

    model_config = ConfigDict(frozen=True)

    failed_only: bool = False
    ip_filter: IpFilter = IpFilter.ANY
    since: Optional[int] = None
    only_complete_outages: bool = False
