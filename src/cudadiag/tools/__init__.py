"""Adapters around the external tools the checks depend on.

Checks only see the Toolset protocol, so tests can hand them a fake
instead of real binaries and network access.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel

from cudadiag.core.errors import MissingResource


class ToolOutput(BaseModel):
    """Captured result of one external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def text(self) -> str:
        """stdout and stderr combined, like `2>&1`."""
        return self.stdout + self.stderr


class Toolset(Protocol):
    """Capabilities the diagnostic checks need."""

    def list_keys(self, keyring: Path) -> ToolOutput: ...

    def list_keys_colons(self, keyring: Path) -> ToolOutput: ...

    def verify_signature(self, keyring: Path, signed_file: Path) -> ToolOutput: ...

    def probe_url(self, url: str) -> bool: ...

    def fetch_url(self, url: str, dest: Path) -> None: ...

    def list_legacy_keys(self) -> str: ...


def require_binary(name: str) -> str:
    """Return the path of an executable on PATH.

    Raises:
        MissingResource: If it is not installed
    """
    path = shutil.which(name)
    if path is None:
        raise MissingResource(f"{name} not available")
    return path


class SystemToolset:
    """Toolset backed by the real binaries on this machine."""

    def __init__(self, config, runner=None):
        from cudadiag.core.runner import Runner
        from cudadiag.tools.gpg import GpgTool
        from cudadiag.tools.http import HttpTool
        from cudadiag.tools.legacy import LegacyKeyTool

        runner = runner or Runner()
        self.gpg = GpgTool(config, runner)
        self.http = HttpTool(config, runner)
        self.legacy = LegacyKeyTool(config, runner)

    def list_keys(self, keyring: Path) -> ToolOutput:
        return self.gpg.list_keys(keyring)

    def list_keys_colons(self, keyring: Path) -> ToolOutput:
        return self.gpg.list_keys_colons(keyring)

    def verify_signature(self, keyring: Path, signed_file: Path) -> ToolOutput:
        return self.gpg.verify(keyring, signed_file)

    def probe_url(self, url: str) -> bool:
        return self.http.probe(url)

    def fetch_url(self, url: str, dest: Path) -> None:
        self.http.fetch(url, dest)

    def list_legacy_keys(self) -> str:
        return self.legacy.list_keys()


__all__ = [
    "MissingResource",
    "SystemToolset",
    "ToolOutput",
    "Toolset",
    "require_binary",
]
