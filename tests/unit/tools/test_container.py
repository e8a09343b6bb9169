"""Tests for the container engine adapter."""

from types import SimpleNamespace
from unittest.mock import Mock

from cudadiag.core.config import BuildConfig
from cudadiag.tools.container import EXIT_NOT_FOUND, ContainerEngine


def _config(test_config, **build):
    """Defaults from test_config with build settings replaced."""
    return SimpleNamespace(
        build=BuildConfig(**build),
        command=test_config.command,
    )


def test_rerun_command(test_config):
    engine = ContainerEngine(test_config, runner=Mock())

    assert engine.rerun_command() == (
        "docker run --rm cuda-debug-temp cudadiag diagnose"
    )


def test_build_streams_to_log(test_config, tmp_path):
    log_file = tmp_path / "build.log"
    runner = Mock()
    runner.execute.return_value = SimpleNamespace(
        exited=0, stdout="", stderr=""
    )
    # `sh` is always on PATH; the runner is fake anyway
    engine = ContainerEngine(
        _config(test_config, engine="sh", log_file=log_file, timeout=600),
        runner=runner,
    )

    result = engine.build("ubuntu:24.04", "1.1-1")

    assert result.success
    assert result.returncode == 0
    assert result.log_file == log_file
    command = runner.execute.call_args.args[0]
    assert command.startswith("sh build --build-arg BASE_IMAGE=ubuntu:24.04")
    kwargs = runner.execute.call_args.kwargs
    assert kwargs["stream"] is True
    assert kwargs["log_file"] == log_file
    assert kwargs["timeout"] == 600


def test_build_failure_reported(test_config, tmp_path):
    runner = Mock()
    runner.execute.return_value = SimpleNamespace(
        exited=100, stdout="", stderr=""
    )
    engine = ContainerEngine(
        _config(test_config, engine="sh", log_file=tmp_path / "b.log"),
        runner=runner,
    )

    result = engine.build("ubuntu:22.04", "1.0-1")

    assert not result.success
    assert result.returncode == 100


def test_missing_engine(test_config, tmp_path):
    log_file = tmp_path / "build.log"
    runner = Mock()
    engine = ContainerEngine(
        _config(
            test_config,
            engine="no-such-container-engine",
            log_file=log_file,
        ),
        runner=runner,
    )

    result = engine.build("ubuntu:24.04", "1.1-1")

    assert not result.success
    assert result.returncode == EXIT_NOT_FOUND
    assert "command not found" in log_file.read_text()
    runner.execute.assert_not_called()
