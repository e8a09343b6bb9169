"""Plain-text rendering of the diagnostic report."""

from __future__ import annotations

import sys
from datetime import datetime

from cudadiag.core.result import CheckResult, SectionReport

RULE = "=" * 38

# Static hints; not derived from the results above them
SUMMARY = (
    "If keyring exists but signature verification fails: "
    "Key may be corrupted or mismatched",
    "If key is expired: NVIDIA needs to update the key",
    "If signed-by directive missing: APT sources may need updating",
    "If network issues: Repository may be temporarily unavailable",
)


def render_entry(entry: CheckResult | str) -> list[str]:
    if isinstance(entry, str):
        return [entry]
    return [
        f"{entry.status.mark} {entry.message}",
        *(f"    {detail}" for detail in entry.details),
    ]


def render_section(section: SectionReport) -> list[str]:
    lines = [f"=== {section.number}. {section.title} ==="]
    for entry in section.entries:
        lines.extend(render_entry(entry))
    lines.append("")
    return lines


class ReportWriter:
    """Writes the report to a stream as sections complete."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout

    def _write(self, lines):
        for line in lines:
            print(line, file=self.stream)
        self.stream.flush()

    def header(self, now: datetime):
        self._write([
            RULE,
            "CUDA GPG Key Diagnostics Report",
            RULE,
            "",
            f"{now:%a %b %d %H:%M:%S %Y}",
            "",
        ])

    def section(self, section: SectionReport):
        self._write(render_section(section))

    def footer(self):
        self._write([
            RULE,
            "Diagnostic Report Complete",
            RULE,
            "",
            "Summary:",
            *(f"- {hint}" for hint in SUMMARY),
            "",
        ])
