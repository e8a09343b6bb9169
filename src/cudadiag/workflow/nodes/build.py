"""Build node - build the diagnostic container image."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any

from pydantic_graph import BaseNode, GraphRunContext

from cudadiag.core.config import State
from cudadiag.core.log import logger
from cudadiag.tools.container import ContainerEngine
from cudadiag.workflow.nodes.summarize import RULE, Summarize


@dataclass
class BuildImage(BaseNode[State]):
    """Build an image that installs the CUDA keyring on the base
    image and runs the checklist at each stage."""

    engine: Any = None
    stream: Any = None

    async def run(self, ctx: GraphRunContext[State]) -> Summarize:
        config = ctx.state.config
        build = ctx.state.runtime.build
        build.status = "running"
        out = self.stream or sys.stdout

        for line in (
            RULE,
            "CUDA GPG Key Debug Tool",
            RULE,
            f"Base Image:      {build.base_image}",
            f"Keyring Version: {build.keyring_version}",
            "",
            "This will:",
            "1. Build a container from your base image",
            "2. Install the CUDA keyring package",
            "3. Run diagnostics at each stage",
            "4. Identify where the GPG error occurs",
            "",
            "Building...",
            "",
        ):
            print(line, file=out)
        out.flush()

        engine = self.engine or ContainerEngine(config)
        build.result = engine.build(build.base_image, build.keyring_version)
        logger.info(
            "Build finished",
            image=build.result.image_tag,
            returncode=build.result.returncode,
        )
        return Summarize(stream=self.stream)
