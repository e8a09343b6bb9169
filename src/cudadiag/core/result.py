"""Result types for checks and builds."""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class CheckStatus(str, Enum):
    """Outcome of a single diagnostic assertion."""

    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"

    @property
    def mark(self) -> str:
        return _MARKS[self]


_MARKS = {
    CheckStatus.PASS: "[✓]",
    CheckStatus.FAIL: "[✗]",
    CheckStatus.WARN: "[!]",
}


class CheckResult(BaseModel):
    """A marked line in the report, with optional indented detail."""

    status: CheckStatus
    message: str
    details: list[str] = Field(default_factory=list)

    @classmethod
    def passed(cls, message: str, *details: str) -> "CheckResult":
        return cls(status=CheckStatus.PASS, message=message, details=list(details))

    @classmethod
    def failed(cls, message: str, *details: str) -> "CheckResult":
        return cls(status=CheckStatus.FAIL, message=message, details=list(details))

    @classmethod
    def warned(cls, message: str, *details: str) -> "CheckResult":
        return cls(status=CheckStatus.WARN, message=message, details=list(details))


class SectionReport(BaseModel):
    """Everything one check printed, in order.

    Entries are either CheckResults (rendered with a mark) or plain
    strings (pass-through output such as a key listing).
    """

    number: int
    title: str
    entries: list[CheckResult | str] = Field(default_factory=list)

    def add(self, entry: "CheckResult | str") -> None:
        self.entries.append(entry)

    @property
    def results(self) -> list[CheckResult]:
        return [e for e in self.entries if isinstance(e, CheckResult)]

    @property
    def statuses(self) -> list[CheckStatus]:
        return [r.status for r in self.results]


class BuildResult(BaseModel):
    """Result of a container image build."""

    image_tag: str
    success: bool
    log_file: Path
    returncode: int
    timestamp: datetime
