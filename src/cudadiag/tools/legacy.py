"""Adapter for the deprecated apt-key command."""

from cudadiag.core.log import logger
from cudadiag.tools import require_binary


class LegacyKeyTool:
    """Lists keys in APT's system-wide trusted keyring."""

    binary = "apt-key"

    def __init__(self, config, runner):
        self.config = config
        self.runner = runner

    def list_keys(self) -> str:
        """Return `apt-key list` stdout; stderr (deprecation noise)
        is dropped.

        Raises:
            MissingResource: If apt-key is not installed
        """
        require_binary(self.binary)
        result = self.runner.execute(
            self.config.command("legacy", "list"), check=False
        )
        logger.debug("apt-key list finished", returncode=result.exited)
        return result.stdout
