"""Check registry plumbing and the never-short-circuiting runner."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property

from cudadiag.core import osinfo
from cudadiag.core.log import logger
from cudadiag.core.result import CheckResult, SectionReport

Entry = CheckResult | str


@dataclass
class CheckContext:
    """Everything a check may look at.

    Checks never touch module-level constants: paths, ids and URLs
    come from config, external tools from tools, and time from now(),
    so tests can point all of them at fixtures.
    """

    config: object
    tools: object
    clock: Callable[[], datetime] = datetime.now
    machine: str = field(default_factory=osinfo.machine)

    def now(self) -> datetime:
        return self.clock()

    @cached_property
    def os_release(self) -> dict[str, str]:
        return osinfo.read_os_release(self.config.system.os_release)

    @cached_property
    def repo_url(self) -> str:
        return self.config.repo.resolve_url(self.os_release, self.machine)

    @property
    def release_url(self) -> str:
        return f"{self.repo_url}/{self.config.repo.release_file}"


@dataclass(frozen=True)
class Check:
    """One numbered section of the report."""

    title: str
    func: Callable[[CheckContext], Iterator[Entry]]


class Checklist:
    """Runs every check in order, unconditionally.

    A check that raises still gets its partial output plus a FAIL
    entry, and the next check runs regardless.
    """

    def __init__(self, checks: list[Check]):
        self.checks = list(checks)

    def run(
        self,
        ctx: CheckContext,
        on_section: Callable[[SectionReport], None] | None = None,
    ) -> list[SectionReport]:
        sections = []
        for number, check in enumerate(self.checks, start=1):
            section = SectionReport(number=number, title=check.title)
            with logger.span("Check {title}", title=check.title):
                try:
                    for entry in check.func(ctx):
                        section.add(entry)
                except Exception as e:
                    logger.error(
                        "Check raised", title=check.title, error=repr(e)
                    )
                    section.add(CheckResult.failed(
                        f"Check aborted by unexpected error: {e}"
                    ))
            logger.debug(
                "Check finished",
                title=check.title,
                statuses=[s.value for s in section.statuses],
            )
            sections.append(section)
            if on_section:
                on_section(section)
        return sections
