"""Build command - the driver that builds the diagnostic image."""

from __future__ import annotations

import sys

from pydantic import BaseModel, Field
from pydantic_settings import CliPositionalArg

from cudadiag.core.log import logger

USAGE = """\
Usage: cudadiag build <base_image> [keyring_version]

Runs comprehensive CUDA GPG key diagnostics to identify:
  - Key presence and validity
  - Key expiration status
  - Repository signature verification
  - APT configuration issues

Examples:
  cudadiag build ubuntu:24.04
  cudadiag build ubuntu:22.04 1.1-1

The base image needs python3 3.10 or newer (ubuntu:22.04 and later).
"""


class BuildCommand(BaseModel):
    """Build a container image from a base image, install the CUDA
    keyring in it and run the diagnostics at each stage.

    Build output is shown live and saved to config.build.log_file.
    A failed build is reported, not treated as an error: the exit
    code stays 0 unless config.build.propagate_exit_code is set.
    """

    base_image: CliPositionalArg[str] = Field(
        default="",
        description="Image to build on (e.g. ubuntu:24.04)",
    )
    keyring_version: CliPositionalArg[str | None] = Field(
        default=None,
        description=(
            "cuda-keyring package version "
            "(default: config.keyring.version)"
        ),
    )

    async def run_workflow(self, state: "State", stream=None, engine=None) -> int:
        """Run the build workflow.

        Args:
            state: State instance
            stream: Output stream for banner and summary (stdout)
            engine: ContainerEngine override, for tests

        Returns:
            Exit code: 1 on usage error, otherwise 0 (or the build's
            code with propagate_exit_code)
        """
        if not self.base_image.strip():
            print(USAGE, file=stream or sys.stdout)
            return 1

        build = state.runtime.build
        build.base_image = self.base_image.strip()
        build.keyring_version = (
            self.keyring_version or state.config.keyring.version
        )

        from cudadiag.workflow.graph import create_build_workflow
        from cudadiag.workflow.nodes.build import BuildImage

        workflow = create_build_workflow()
        async with workflow.iter(
            BuildImage(engine=engine, stream=stream), state=state
        ) as run:
            async for _node in run:
                pass

        logger.info("Build workflow complete", exit_code=build.exit_code)
        return build.exit_code
