"""Container engine adapter used by the build driver."""

import shutil
from datetime import datetime

from cudadiag.core.log import logger
from cudadiag.core.result import BuildResult
from cudadiag.core.runner import Runner

# Shell convention for "command not found"
EXIT_NOT_FOUND = 127


class ContainerEngine:
    """Builds the diagnostic image with docker (or a compatible
    engine), teeing the build output to the configured log file."""

    def __init__(self, config, runner: Runner | None = None):
        self.config = config
        self.runner = runner or Runner()

    @property
    def build_config(self):
        return self.config.build

    def build_command(self, base_image: str, keyring_version: str) -> str:
        b = self.build_config
        return self.config.command(
            "container", "build",
            engine=b.engine,
            base_image=base_image,
            keyring_version=keyring_version,
            image_tag=b.image_tag,
            dockerfile=b.dockerfile,
            context=b.context,
        )

    def rerun_command(self) -> str:
        """Command an operator can paste to run the checklist again."""
        b = self.build_config
        return self.config.command(
            "container", "run",
            engine=b.engine,
            image_tag=b.image_tag,
        ) + f" {b.diagnose_command}"

    def build(self, base_image: str, keyring_version: str) -> BuildResult:
        """Build the image, streaming output live and to the log.

        A missing engine or failing build is reported through the
        result, never raised.
        """
        b = self.build_config
        timestamp = datetime.now()

        if shutil.which(b.engine) is None:
            logger.error("Container engine not found", engine=b.engine)
            b.log_file.parent.mkdir(parents=True, exist_ok=True)
            b.log_file.write_text(f"{b.engine}: command not found\n")
            returncode = EXIT_NOT_FOUND
        else:
            command = self.build_command(base_image, keyring_version)
            logger.info("Building image", command=command)
            result = self.runner.execute(
                command,
                timeout=b.timeout,
                log_file=b.log_file,
                stream=True,
                check=False,
            )
            returncode = result.exited

        return BuildResult(
            image_tag=b.image_tag,
            success=(returncode == 0),
            log_file=b.log_file,
            returncode=returncode,
            timestamp=timestamp,
        )
