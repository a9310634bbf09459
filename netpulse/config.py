"""
Application configuration via Pydantic Settings.

Every field can be overridden with a ``NETPULSE_`` environment variable,
e.g. ``NETPULSE_STORE_PATH=/tmp/netpulse.json``. List fields take JSON
(``NETPULSE_HTTP_TARGETS='["1.1.1.1"]'``).
"""

from __future__ import annotations

from ipaddress import IPv4Address, IPv6Address, ip_address
from pathlib import Path
from typing import Union

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Default targets, one per IP family
# ---------------------------------------------------------------------------

DEFAULT_TARGETS: list[str] = ["1.1.1.1", "2606:4700:4700::1111"]


class Settings(BaseSettings):
    """Application-wide settings, overridable via environment variables."""

    store_path: Path = Path("/var/lib/netpulse/netpulse.store.json")
    log_level: str = "INFO"

    # Seconds between two check cycles of the producer
    period_seconds: int = Field(default=60, gt=0)
    # Largest gap between two failing cycles that still counts as one outage
    outage_time_span: int = Field(default=60, ge=0)
    timeout_seconds: float = Field(default=10.0, gt=0)

    http_targets: list[Union[IPv4Address, IPv6Address]] = Field(
        default_factory=lambda: [ip_address(t) for t in DEFAULT_TARGETS]
    )
    icmp_targets: list[Union[IPv4Address, IPv6Address]] = Field(
        default_factory=lambda: [ip_address(t) for t in DEFAULT_TARGETS]
    )

    # Outages shown per ranking in the full report
    report_outages: int = Field(default=10, ge=0)

    model_config = SettingsConfigDict(env_prefix="NETPULSE_")


def get_settings() -> Settings:
    """Fresh settings, re-reading the environment."""
    return Settings()