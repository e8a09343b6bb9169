"""CLI command modules for cudadiag."""

from cudadiag.command.build import BuildCommand
from cudadiag.command.diagnose import DiagnoseCommand

__all__ = ["BuildCommand", "DiagnoseCommand"]
