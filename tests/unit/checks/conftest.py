"""Fixtures for checklist tests: a host laid out under tmp_path."""

import pytest
from fakes import NOW, FakeToolset

from cudadiag.checks import CheckContext
from cudadiag.core.config import (
    AptConfig,
    Config,
    KeyringConfig,
    SystemConfig,
)


@pytest.fixture
def host(tmp_path):
    """Directory tree standing in for /usr/share/keyrings, /etc/apt
    and /etc/os-release."""
    keyrings = tmp_path / "keyrings"
    keyrings.mkdir()
    (keyrings / "cuda-archive-keyring.gpg").write_bytes(b"\x99" * 2048)

    sources = tmp_path / "sources.list.d"
    sources.mkdir()
    (tmp_path / "sources.list").write_text(
        "deb http://archive.ubuntu.com/ubuntu jammy main\n"
    )
    (tmp_path / "os-release").write_text(
        'PRETTY_NAME="Ubuntu 22.04.4 LTS"\nID=ubuntu\nVERSION_ID="22.04"\n'
    )
    return tmp_path


@pytest.fixture
def config(host):
    return Config(
        keyring=KeyringConfig(
            path=host / "keyrings" / "cuda-archive-keyring.gpg"
        ),
        apt=AptConfig(
            sources_dir=host / "sources.list.d",
            sources_list=host / "sources.list",
        ),
        system=SystemConfig(os_release=host / "os-release"),
    )


@pytest.fixture
def make_ctx(config):
    def _make(tools=None, machine="x86_64"):
        return CheckContext(
            config=config,
            tools=tools or FakeToolset(),
            clock=lambda: NOW,
            machine=machine,
        )
    return _make
