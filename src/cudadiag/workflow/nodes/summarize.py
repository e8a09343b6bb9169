"""Summarize node - report the build outcome and next steps."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any

from pydantic_graph import BaseNode, End, GraphRunContext

from cudadiag.core.config import State
from cudadiag.core.log import logger
from cudadiag.tools.container import ContainerEngine

RULE = "=" * 38


@dataclass
class Summarize(BaseNode[State]):
    """Print SUCCESS or FAILED and decide the driver's exit code.

    A failed build is the expected way to reproduce the keyring
    problem, so it exits 0 unless build.propagate_exit_code is set.
    """

    stream: Any = None

    async def run(self, ctx: GraphRunContext[State]) -> End[int]:
        config = ctx.state.config
        build = ctx.state.runtime.build
        result = build.result
        out = self.stream or sys.stdout

        lines = ["", RULE, "Build Complete", RULE]
        if result.success:
            rerun = ContainerEngine(config).rerun_command()
            lines += [
                "Status: SUCCESS",
                "",
                "The build completed successfully. This means:",
                "- CUDA keyring installed correctly",
                "- GPG keys are valid",
                "- apt-get update succeeded",
                "",
                "You can review the diagnostic output above.",
                "To run diagnostics again:",
                f"  {rerun}",
            ]
            build.exit_code = 0
        else:
            lines += [
                "Status: FAILED",
                "",
                "The build failed (this reproduces the keyring error).",
                "Review the diagnostic output above to identify:",
                "  - Which stage failed",
                "  - Key expiration status",
                "  - Repository verification errors",
                "  - APT configuration issues",
                "",
                f"Full build log saved to: {result.log_file}",
            ]
            build.exit_code = (
                result.returncode
                if config.build.propagate_exit_code else 0
            )
        lines.append("")

        for line in lines:
            print(line, file=out)
        out.flush()

        build.status = "complete"
        logger.info(
            "Build summarized",
            success=result.success,
            returncode=result.returncode,
            exit_code=build.exit_code,
        )
        return End(build.exit_code)
