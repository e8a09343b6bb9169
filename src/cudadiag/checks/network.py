"""Repository checks: reachability and release signature."""

from __future__ import annotations

import tempfile
from collections.abc import Iterator
from itertools import islice
from pathlib import Path

from cudadiag.checks.base import CheckContext, Entry
from cudadiag.core.errors import MissingResource, NetworkFailure
from cudadiag.core.result import CheckResult


def head(path: Path, count: int) -> list[str]:
    with open(path, encoding="utf-8", errors="replace") as f:
        return [line.rstrip("\n") for line in islice(f, count)]


def reachability(ctx: CheckContext) -> Iterator[Entry]:
    yield "Testing connection to CUDA repository..."
    try:
        reachable = ctx.tools.probe_url(ctx.release_url)
    except MissingResource as e:
        yield CheckResult.warned(f"{e.message}, skipping network test")
        return

    if reachable:
        yield CheckResult.passed(
            f"CUDA repository is accessible: {ctx.repo_url}"
        )
    else:
        yield CheckResult.failed(
            f"Cannot reach CUDA repository: {ctx.repo_url}",
            "This may be a network issue or repository availability problem",
        )


def release_signature(ctx: CheckContext) -> Iterator[Entry]:
    name = ctx.config.repo.release_file
    keyring = ctx.config.keyring.path

    yield f"Downloading and checking {name} file signature..."
    with tempfile.TemporaryDirectory(prefix="cudadiag-") as tmp:
        release = Path(tmp) / name
        try:
            ctx.tools.fetch_url(ctx.release_url, release)
        except MissingResource as e:
            yield CheckResult.warned(f"{e.message}, skipping {name} download")
            return
        except NetworkFailure as e:
            details = e.detail.splitlines() if e.detail else []
            yield CheckResult.failed(f"Failed to download {name} file", *details)
            return

        yield CheckResult.passed(f"Downloaded {name} file")
        yield ""
        yield f"{name} signature info:"
        yield from head(release, ctx.config.repo.preview_lines)
        yield ""

        if not keyring.is_file():
            yield CheckResult.warned(
                "Cannot verify signature - keyring file missing"
            )
            return

        yield "Attempting to verify signature with keyring..."
        try:
            outcome = ctx.tools.verify_signature(keyring, release)
        except MissingResource as e:
            yield CheckResult.failed(f"Cannot verify signature - {e.message}")
            return

        yield from outcome.text.splitlines()
        if outcome.ok:
            yield CheckResult.passed("Signature verification SUCCESSFUL")
        else:
            yield CheckResult.failed(
                "Signature verification FAILED",
                "This indicates the key cannot verify the repository",
            )
