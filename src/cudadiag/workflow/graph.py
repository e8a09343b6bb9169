"""Graph workflow definitions."""

from pydantic_graph import Graph

from cudadiag.core.config import State
from cudadiag.core.log import logger


def create_diagnose_workflow():
    """Single node: Diagnose → End."""
    from cudadiag.workflow.nodes.diagnose import Diagnose

    logger.debug("Building diagnose workflow graph")
    return Graph(nodes=(Diagnose,), state_type=State)


def create_build_workflow():
    """BuildImage → Summarize → End(exit code)."""
    from cudadiag.workflow.nodes.build import BuildImage
    from cudadiag.workflow.nodes.summarize import Summarize

    logger.debug("Building build workflow graph")
    return Graph(nodes=(BuildImage, Summarize), state_type=State)
