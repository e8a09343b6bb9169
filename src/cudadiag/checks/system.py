"""Host information, displayed without judgment."""

from collections.abc import Iterator

from cudadiag.checks.base import CheckContext, Entry


def system_info(ctx: CheckContext) -> Iterator[Entry]:
    yield f"OS: {ctx.os_release.get('PRETTY_NAME', '')}"
    yield f"Architecture: {ctx.machine}"
    yield f"Repository: {ctx.repo_url}"
    yield f"Date: {ctx.now():%a %b %d %H:%M:%S %Y}"
