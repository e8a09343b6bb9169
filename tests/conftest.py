"""Pytest configuration and fixtures for cudadiag tests."""

import sys
import tempfile
from pathlib import Path

import pytest

from cudadiag.core.log import ConsoleSink, setup_logger


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Configure logging for console-only mode during tests.

    This enables debug output during test runs without requiring
    authentication or sending logs to logfire.dev.
    """
    test_log_root = Path(tempfile.gettempdir()) / "cudadiag-tests"
    setup_logger(
        log_root=test_log_root,
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


def load_state():
    """Build a State from the packaged defaults.

    sys.argv is swapped out so pydantic-settings does not try to
    parse pytest's own command line.
    """
    from cudadiag.core.config import State

    old_argv = sys.argv
    sys.argv = ['cudadiag']
    try:
        return State()
    finally:
        sys.argv = old_argv


@pytest.fixture(scope="session")
def test_config():
    """Configuration loaded from defaults, shared by read-only tests.

    Returns:
        Config object with all settings loaded from defaults
    """
    return load_state().config


@pytest.fixture
def make_state():
    """Factory for a fresh State, optionally with a replacement
    Config (e.g. one pointing at tmp_path fixtures)."""
    def _make(config=None):
        state = load_state()
        if config is not None:
            state.config = config
        return state
    return _make
