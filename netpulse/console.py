"""
ConsoleRenderer: prints netpulse reports to the terminal using Rich.
"""

from __future__ import annotations

import re
from typing import Optional

from rich.console import Console
from rich.text import Text

from netpulse.outage import SeverityLevel

# Color mapping for severity labels
SEVERITY_COLORS: dict[SeverityLevel, str] = {
    SeverityLevel.COMPLETE: "bold red",
    SeverityLevel.PARTIAL: "yellow",
    SeverityLevel.NONE: "green",
}

_SEVERITY_PATTERNS: dict[SeverityLevel, re.Pattern[str]] = {
    SeverityLevel.COMPLETE: re.compile(r"\bComplete\b"),
    SeverityLevel.PARTIAL: re.compile(r"Partial \([\d.]+ %\)"),
    SeverityLevel.NONE: re.compile(r"No Outage"),
}

_BARRIER = re.compile(r"^=+ .+ =+$", re.MULTILINE)
_NONE = re.compile(r"^None$", re.MULTILINE)
_ERROR = re.compile(r"<[^>\n]*error[^>\n]*>")


class ConsoleRenderer:
    """Renders report text, coloring section headers and severities."""

    def __init__(self, console: Optional[Console] = None, plain: bool = False) -> None:
        self.console = console if console is not None else Console(highlight=False)
        self.plain = plain

    def render(self, report: str) -> Text:
        text = Text(report.rstrip("\n"))
        text.highlight_regex(_BARRIER, "bold cyan")
        text.highlight_regex(_NONE, "dim")
        for level, pattern in _SEVERITY_PATTERNS.items():
            text.highlight_regex(pattern, SEVERITY_COLORS[level])
        text.highlight_regex(_ERROR, "bold magenta")
        return text

    def print(self, report: str) -> None:
        if self.plain:
            # Standard format for non-rich terminals and pipes
            self.console.out(report.rstrip("\n"), highlight=False)
            return
        self.console.print(self.render(report), soft_wrap=True)
