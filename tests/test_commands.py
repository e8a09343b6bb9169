"""End-to-end tests for the diagnose and build commands, with fake
tools and a fake container engine."""

import asyncio
import io
from datetime import datetime
from pathlib import Path

import pytest
from pydantic_settings import CliApp

from cudadiag.cli import CliState
from cudadiag.command.build import BuildCommand
from cudadiag.command.diagnose import DiagnoseCommand
from cudadiag.core.errors import MissingResource
from cudadiag.core.result import BuildResult, CheckStatus
from cudadiag.tools import ToolOutput


class OfflineTools:
    """A host with no tools at all: every capability is missing."""

    def _missing(self, *args):
        raise MissingResource("tool not available")

    list_keys = list_keys_colons = verify_signature = _missing
    probe_url = fetch_url = list_legacy_keys = _missing


class BrokenTools(OfflineTools):
    """gpg itself blows up unexpectedly."""

    def list_keys(self, keyring):
        raise RuntimeError("gpg crashed")

    def list_keys_colons(self, keyring):
        return ToolOutput(returncode=0, stdout="")


class FakeEngine:
    def __init__(self, returncode=0, log_file=Path("/tmp/cuda-debug-build.log")):
        self.returncode = returncode
        self.log_file = log_file
        self.calls = []

    def build(self, base_image, keyring_version):
        self.calls.append((base_image, keyring_version))
        return BuildResult(
            image_tag="cuda-debug-temp",
            success=self.returncode == 0,
            log_file=self.log_file,
            returncode=self.returncode,
            timestamp=datetime.now(),
        )


def _diagnose(state, tools):
    out = io.StringIO()
    code = asyncio.run(
        DiagnoseCommand().run_workflow(state, tools=tools, stream=out)
    )
    return code, out.getvalue()


def _build(state, engine, **args):
    out = io.StringIO()
    code = asyncio.run(
        BuildCommand(**args).run_workflow(state, stream=out, engine=engine)
    )
    return code, out.getvalue()


def test_diagnose_prints_every_section(make_state, tmp_path):
    state = make_state()
    state.config.keyring.path = tmp_path / "absent.gpg"
    state.config.apt.sources_dir = tmp_path / "absent.d"
    state.config.system.os_release = tmp_path / "absent-os-release"

    code, report = _diagnose(state, OfflineTools())

    assert code == 0
    for number, title in enumerate([
        "Keyring File Check",
        "GPG Key Content",
        "Key Expiration Check",
        "APT Sources Configuration",
        "Network Connectivity",
        "Repository InRelease Signature",
        "Legacy APT Key Check",
        "System Information",
    ], start=1):
        assert f"=== {number}. {title} ===" in report
    assert "[!] tool not available, skipping network test" in report
    assert report.rstrip().splitlines()[-1].startswith("- If network issues")
    assert state.runtime.diagnose.status == "complete"
    assert len(state.runtime.diagnose.sections) == 8


def test_diagnose_survives_unexpected_errors(make_state, tmp_path):
    keyring = tmp_path / "cuda-archive-keyring.gpg"
    keyring.write_bytes(b"\x99")
    state = make_state()
    state.config.keyring.path = keyring

    code, report = _diagnose(state, BrokenTools())

    assert code == 0
    assert "[✗] Check aborted by unexpected error: gpg crashed" in report
    assert "Diagnostic Report Complete" in report
    sections = state.runtime.diagnose.sections
    assert sections[2].statuses == [CheckStatus.WARN]


def test_build_requires_base_image(make_state):
    engine = FakeEngine()

    code, output = _build(make_state(), engine)

    assert code == 1
    assert output.startswith("Usage: cudadiag build <base_image>")
    assert engine.calls == []


def test_build_success(make_state):
    engine = FakeEngine()
    state = make_state()

    code, output = _build(state, engine, base_image="ubuntu:24.04")

    assert code == 0
    assert engine.calls == [("ubuntu:24.04", "1.1-1")]
    assert "Base Image:      ubuntu:24.04" in output
    assert "Keyring Version: 1.1-1" in output
    assert "Status: SUCCESS" in output
    assert "docker run --rm cuda-debug-temp cudadiag diagnose" in output
    assert state.runtime.build.status == "complete"


def test_build_failure_exits_zero(make_state, tmp_path):
    log_file = tmp_path / "build.log"
    engine = FakeEngine(returncode=100, log_file=log_file)

    code, output = _build(
        make_state(), engine,
        base_image="ubuntu:22.04", keyring_version="1.0-1",
    )

    assert code == 0
    assert engine.calls == [("ubuntu:22.04", "1.0-1")]
    assert "Status: FAILED" in output
    assert f"Full build log saved to: {log_file}" in output


def test_build_failure_propagated(make_state):
    state = make_state()
    state.config.build.propagate_exit_code = True

    code, _ = _build(state, FakeEngine(returncode=100), base_image="ubuntu:22.04")

    assert code == 100
    assert state.runtime.build.exit_code == 100



class ParsedState(CliState):
    """CliState that stops after argument parsing."""

    def cli_cmd(self):
        pass


def _parse(*argv):
    return CliApp.run(ParsedState, cli_args=list(argv))


def test_build_positionals_parsed():
    command = _parse("build", "ubuntu:22.04", "1.0-1").build

    assert command.base_image == "ubuntu:22.04"
    assert command.keyring_version == "1.0-1"


def test_build_keyring_version_optional():
    command = _parse("build", "ubuntu:24.04").build

    assert command.base_image == "ubuntu:24.04"
    assert command.keyring_version is None


def test_build_without_arguments_prints_usage(capsys):
    with pytest.raises(SystemExit) as exc_info:
        CliApp.run(CliState, cli_args=["build"])

    assert exc_info.value.code == 1
    assert capsys.readouterr().out.startswith("Usage: cudadiag build")


def test_config_override_before_subcommand():
    state = _parse("--config.logger.level", "debug", "diagnose")

    assert state.config.logger.level == "debug"
    assert state.diagnose is not None
