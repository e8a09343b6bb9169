"""Diagnose command - runs the keyring checklist."""

from pydantic import BaseModel

from cudadiag.core.log import logger


class DiagnoseCommand(BaseModel):
    """Inspect the CUDA keyring, APT sources and repository
    signature on this machine and print a checklist report.

    Every check runs even when earlier ones fail.
    """

    async def run_workflow(self, state: "State", tools=None, stream=None) -> int:
        """Run the diagnose workflow.

        Args:
            state: State instance
            tools: Toolset override, for tests
            stream: Report output stream (stdout)

        Returns:
            Exit code (always 0 once the report is printed)
        """
        from cudadiag.workflow.graph import create_diagnose_workflow
        from cudadiag.workflow.nodes.diagnose import Diagnose

        workflow = create_diagnose_workflow()
        async with workflow.iter(
            Diagnose(tools=tools, stream=stream), state=state
        ) as run:
            async for _node in run:
                pass

        logger.info("Diagnose complete")
        return 0
