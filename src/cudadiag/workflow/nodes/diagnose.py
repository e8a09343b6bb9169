"""Diagnose node - run the checklist and print the report."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic_graph import BaseNode, End, GraphRunContext

from cudadiag.checks import CheckContext, default_checklist
from cudadiag.checks.report import ReportWriter
from cudadiag.core.config import State
from cudadiag.core.log import logger
from cudadiag.tools import SystemToolset


@dataclass
class Diagnose(BaseNode[State]):
    """Run all eight checks and print each section as it finishes.

    tools and stream default to the real toolset and stdout.
    """

    tools: Any = None
    stream: Any = None

    async def run(self, ctx: GraphRunContext[State]) -> End[None]:
        config = ctx.state.config
        runtime = ctx.state.runtime.diagnose
        runtime.status = "running"

        check_ctx = CheckContext(
            config=config,
            tools=self.tools or SystemToolset(config),
        )
        logger.info(
            "Starting diagnostics",
            keyring=str(config.keyring.path),
            repo=check_ctx.repo_url,
        )

        writer = ReportWriter(self.stream)
        writer.header(check_ctx.now())
        runtime.sections = default_checklist().run(
            check_ctx, on_section=writer.section
        )
        writer.footer()

        runtime.status = "complete"
        logger.info("Diagnostics complete", sections=len(runtime.sections))
        return End(None)
