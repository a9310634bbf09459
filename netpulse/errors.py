"""
Exception hierarchy for netpulse.

Analysis errors are raised where the invariant breaks and handled at the
report boundary; store errors bubble up to the CLI, which exits with 1.
"""

from __future__ import annotations


class NetpulseError(Exception):
    """Base class for every error netpulse raises on purpose."""


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

class AnalysisError(NetpulseError):
    """Something went wrong while analysing a set of checks."""


class EmptyOutageError(AnalysisError):
    """An outage was requested from zero check records."""

    def __init__(self) -> None:
        super().__init__("tried to build an outage from an empty group of checks")


class SeverityRangeError(AnalysisError):
    """A failure fraction outside of [0, 1] was computed or requested."""

    def __init__(self, fraction: float) -> None:
        self.fraction = fraction
        super().__init__(f"severity fraction out of range [0, 1]: {fraction!r}")


class FormattingError(AnalysisError):
    """Rendering an outage or report to text failed."""


class QueryError(NetpulseError):
    """A report query could not be understood (e.g. a bad --since value)."""


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class StoreError(NetpulseError):
    """Base class for store loading and saving problems."""


class StoreDoesNotExistError(StoreError):
    def __init__(self, path: object) -> None:
        self.path = path
        super().__init__(f"the store does not exist: {path}")


class StoreLoadError(StoreError):
    """The store file exists but could not be parsed."""


class UnsupportedVersionError(StoreError):
    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"tried to load a store with an unsupported version: {version}")
