#!/usr/bin/env python3
"""cudadiag CLI - CUDA APT keyring diagnostics."""

import asyncio
import contextlib
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from cudadiag.command.build import BuildCommand
from cudadiag.command.diagnose import DiagnoseCommand
from cudadiag.core.config import State
from cudadiag.core.log import logger


class CliState(State):
    """Diagnose GPG signature failures of the NVIDIA CUDA APT
    repository.

    `diagnose` inspects the keyring, APT sources and repository
    signature on this machine. `build` builds a container from a
    base image with the CUDA keyring installed and runs `diagnose`
    inside it.

    Configuration sources (in priority order):
    1. Command-line arguments, given before the subcommand
       (cudadiag --config.keyring.path value diagnose)
    2. --include files, ./cudadiag.yaml, user config, defaults
    3. .env file
    4. Environment variables
       (CUDADIAG_CONFIG__KEYRING__PATH=value)
    """

    build: CliSubCommand[BuildCommand]
    diagnose: CliSubCommand[DiagnoseCommand]

    def cli_cmd(self):
        """Dispatch to the active subcommand, or show help."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            # argparse exits 0 after printing help
            with contextlib.suppress(SystemExit):
                CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Closes log sinks on the way out, whatever happens
        with logger:
            exit_code = asyncio.run(subcommand.run_workflow(self))
            raise SystemExit(exit_code)


def main():
    """Console script entry point."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
