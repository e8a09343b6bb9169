"""APT checks: source configuration and the legacy apt-key keyring."""

from __future__ import annotations

import re
from collections.abc import Iterator
from pathlib import Path

from pydantic import BaseModel

from cudadiag.checks.base import CheckContext, Entry
from cudadiag.checks.keyring import find_named
from cudadiag.core.errors import MissingResource
from cudadiag.core.result import CheckResult


class RepoSourceFile(BaseModel):
    """An APT source file that mentions the CUDA repository."""

    path: Path
    contents: str
    signed_by: bool

    @classmethod
    def read(cls, path: Path, directive: str) -> RepoSourceFile:
        """Read a source file, noting whether it pins a keyring.

        The directive is matched case-insensitively: one-line
        sources write `[signed-by=...]`, deb822 files `Signed-By:`.
        """
        contents = path.read_text(encoding="utf-8", errors="replace")
        return cls(
            path=path,
            contents=contents,
            signed_by=directive.lower() in contents.lower(),
        )


def grep_after(lines: list[str], pattern: str, after: int) -> list[str]:
    """Lines matching pattern plus `after` trailing lines each.

    Same output as `grep -i -A N`: overlapping windows merge and
    non-adjacent groups are separated by `--`.
    """
    regex = re.compile(pattern, re.IGNORECASE)
    keep: list[int] = []
    last = -1
    for i, line in enumerate(lines):
        if regex.search(line):
            start = max(i, last + 1)
            end = min(len(lines) - 1, i + after)
            keep.extend(range(start, end + 1))
            last = max(last, end)

    out = []
    previous = None
    for i in keep:
        if previous is not None and i != previous + 1:
            out.append("--")
        out.append(lines[i])
        previous = i
    return out


def _terms_pattern(terms: list[str]) -> str:
    return "|".join(re.escape(t) for t in terms)


def apt_sources(ctx: CheckContext) -> Iterator[Entry]:
    apt = ctx.config.apt
    terms = ctx.config.keyring.search_terms

    yield "Checking CUDA repository configuration in APT sources..."
    if not apt.sources_dir.is_dir():
        yield CheckResult.failed(f"{apt.sources_dir}/ directory not found")
        return

    paths = [p for p in find_named(apt.sources_dir, terms) if p.is_file()]
    for path in paths:
        yield f"Found: {path}"
        try:
            source = RepoSourceFile.read(path, apt.signed_by_directive)
        except OSError as e:
            yield CheckResult.warned(f"Cannot read {path}: {e}")
            continue
        yield from source.contents.splitlines()
        yield ""
        if source.signed_by:
            yield CheckResult.passed(
                f"Uses '{apt.signed_by_directive}' directive "
                f"(modern APT method)"
            )
        else:
            yield CheckResult.warned(
                f"No '{apt.signed_by_directive}' directive "
                f"(legacy APT method)",
                "This may cause verification issues on newer systems",
            )
        yield ""

    if paths:
        return

    yield CheckResult.warned(
        f"No CUDA/NVIDIA sources found in {apt.sources_dir}/",
        "Checking main sources.list...",
    )
    try:
        legacy = apt.sources_list.read_text(encoding="utf-8", errors="replace")
    except OSError:
        legacy = ""
    regex = re.compile(apt.sources_list_pattern, re.IGNORECASE)
    matches = [line for line in legacy.splitlines() if regex.search(line)]
    if matches:
        yield f"Found CUDA repo in {apt.sources_list}:"
        yield from matches
    else:
        yield CheckResult.failed("No CUDA repository configured in APT")


def legacy_keys(ctx: CheckContext) -> Iterator[Entry]:
    yield "Checking for keys in legacy apt-key location..."
    try:
        listing = ctx.tools.list_legacy_keys()
    except MissingResource:
        yield CheckResult.warned(
            "apt-key command not available (expected on modern systems)"
        )
        return

    yield "Legacy apt-key list:"
    matches = grep_after(
        listing.splitlines(),
        _terms_pattern(ctx.config.keyring.search_terms),
        ctx.config.apt.legacy_context_lines,
    )
    if matches:
        yield from matches
    else:
        yield "    No CUDA/NVIDIA keys in legacy keyring"
