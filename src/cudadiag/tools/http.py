"""HTTP client adapter over curl or wget."""

import shutil
from pathlib import Path

from cudadiag.core.errors import MissingResource, NetworkFailure
from cudadiag.core.log import logger


class HttpTool:
    """Reachability probes and downloads through an external client.

    The first client in repo.http_clients found on PATH is used.
    Each client needs commands.http.<client>_probe and
    <client>_fetch templates.
    """

    def __init__(self, config, runner):
        self.config = config
        self.runner = runner

    def client(self) -> str:
        """Name of the preferred installed client.

        Raises:
            MissingResource: If none of the clients is installed
        """
        for name in self.config.repo.http_clients:
            if shutil.which(name):
                return name
        raise MissingResource(
            f"No HTTP client available "
            f"({', '.join(self.config.repo.http_clients)})"
        )

    def _command(self, client: str, operation: str, **params) -> str:
        return self.config.command("http", f"{client}_{operation}", **params)

    def probe(self, url: str) -> bool:
        """HEAD-style request; True if the server answered."""
        client = self.client()
        command = self._command(
            client, "probe",
            url=url, timeout=self.config.repo.connect_timeout,
        )
        result = self.runner.execute(command, check=False)
        logger.debug(
            "Probe finished", client=client, url=url,
            returncode=result.exited,
        )
        return result.exited == 0

    def fetch(self, url: str, dest: Path) -> None:
        """Download url to dest.

        Raises:
            MissingResource: If no client is installed
            NetworkFailure: If the download fails or times out
        """
        client = self.client()
        command = self._command(
            client, "fetch",
            url=url, dest=dest, timeout=self.config.repo.connect_timeout,
        )
        result = self.runner.execute(
            command,
            check=False,
            timeout=self.config.repo.download_timeout,
        )
        if result.exited == -1:
            raise NetworkFailure(
                f"Download timed out after "
                f"{self.config.repo.download_timeout}s: {url}"
            )
        if result.exited != 0 or not dest.is_file():
            raise NetworkFailure(
                f"Download failed: {url}",
                detail=(result.stdout + result.stderr).strip() or None,
            )
        logger.debug("Downloaded", client=client, url=url, dest=str(dest))
