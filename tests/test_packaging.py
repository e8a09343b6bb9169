"""Checks on the install metadata the diagnostic image depends on."""

import re
from pathlib import Path

ROOT = Path(__file__).parent.parent
PYPROJECT = (ROOT / "pyproject.toml").read_text()
DOCKERFILE = (ROOT / "docker" / "Dockerfile.debug-cuda").read_text()


def test_installs_on_default_base_image_python():
    """ubuntu:22.04, the default base image, ships python3 3.10."""
    assert 'ARG BASE_IMAGE=ubuntu:22.04' in DOCKERFILE
    assert 'requires-python = ">=3.10"' in PYPROJECT


def test_sources_avoid_newer_stdlib_names():
    pattern = re.compile(r"from datetime import .*\bUTC\b|import tomllib")
    offenders = [
        path.name
        for path in (ROOT / "src").rglob("*.py")
        if pattern.search(path.read_text())
    ]

    assert offenders == []


def test_graph_api_pinned_below_1():
    assert '"pydantic-graph>=0.4,<1"' in PYPROJECT
