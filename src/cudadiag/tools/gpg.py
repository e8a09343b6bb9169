"""GnuPG adapter: key listings and signature verification."""

from pathlib import Path

from cudadiag.core.log import logger
from cudadiag.tools import ToolOutput, require_binary


class GpgTool:
    """Runs gpg against a single keyring, ignoring the user's own.

    Command lines come from the commands.gpg templates so a
    different gpg invocation can be configured without code changes.
    """

    binary = "gpg"

    def __init__(self, config, runner):
        self.config = config
        self.runner = runner

    def _run(self, name: str, **params) -> ToolOutput:
        require_binary(self.binary)
        command = self.config.command("gpg", name, **params)
        result = self.runner.execute(command, check=False)
        logger.debug(
            "gpg finished", operation=name, returncode=result.exited
        )
        return ToolOutput(
            returncode=result.exited,
            stdout=result.stdout,
            stderr=result.stderr,
        )

    def list_keys(self, keyring: Path) -> ToolOutput:
        """Human-readable listing with long key ids."""
        return self._run("list_keys", keyring=keyring)

    def list_keys_colons(self, keyring: Path) -> ToolOutput:
        """Machine-readable listing (--with-colons)."""
        return self._run("list_keys_colons", keyring=keyring)

    def verify(self, keyring: Path, signed_file: Path) -> ToolOutput:
        """Verify a clearsigned file such as InRelease."""
        return self._run("verify", keyring=keyring, file=signed_file)
