"""Command execution using invoke, with logging and tee support."""

import sys
from pathlib import Path

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from cudadiag.core.log import logger


class _Tee:
    """Minimal writable stream that duplicates writes."""

    def __init__(self, *streams):
        self.streams = streams

    def write(self, data):
        for stream in self.streams:
            stream.write(data)
        return len(data)

    def flush(self):
        for stream in self.streams:
            stream.flush()


class Runner(Context):
    """invoke.Context with a single execute() entry point.

    All external tools (gpg, curl, wget, apt-key, the container
    engine) go through execute() so they share timeout handling,
    logging and log-file capture.
    """

    def execute(
        self,
        command: str,
        timeout: int | None = None,
        log_file: Path | None = None,
        check: bool = True,
        stream: bool = False,
    ) -> Result:
        """Execute a shell command.

        Args:
            command: Command string to execute
            timeout: Maximum execution time in seconds
            log_file: Path to write combined stdout/stderr output
            check: If True, raise on non-zero exit code
            stream: If True, echo output live to stdout while it
                runs (and into log_file as it arrives)

        Returns:
            invoke.Result with stdout, stderr, exited (return code).
            A timed-out command returns exited == -1.

        Raises:
            invoke.UnexpectedExit: If check=True and command
                returns non-zero
        """
        kwargs = {
            "hide": True,
            "warn": not check,
            "in_stream": False,
        }
        if timeout:
            kwargs["timeout"] = timeout

        logger.debug("Executing command", command=command)

        handle = None
        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)

        try:
            if stream:
                # Combined stdout/stderr, like `2>&1 | tee log_file`
                streams = [sys.stdout]
                if log_file:
                    handle = open(log_file, "w", encoding="utf-8")  # noqa: SIM115
                    streams.append(handle)
                tee = _Tee(*streams)
                kwargs.update(hide=False, out_stream=tee, err_stream=tee)

            try:
                result = self.run(command, **kwargs)
            except CommandTimedOut as e:
                logger.warn(
                    "Command timed out", command=command, timeout=timeout
                )
                result = e.result
                result.exited = -1
        finally:
            if handle is not None:
                handle.close()

        if log_file and not stream:
            log_file.write_text(result.stdout + result.stderr)

        logger.spew(
            "Command finished", command=command, exited=result.exited
        )
        return result
