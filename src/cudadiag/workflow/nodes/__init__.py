"""Workflow nodes."""

from cudadiag.workflow.nodes.build import BuildImage
from cudadiag.workflow.nodes.diagnose import Diagnose
from cudadiag.workflow.nodes.summarize import Summarize

__all__ = ["BuildImage", "Diagnose", "Summarize"]
