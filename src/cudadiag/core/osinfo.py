"""Operating system facts: os-release parsing and repo naming."""

import platform
import shlex
from pathlib import Path

# NVIDIA publishes arm64 server packages under "sbsa"
_REPO_ARCH = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "sbsa",
    "arm64": "sbsa",
}


def read_os_release(path: Path) -> dict[str, str]:
    """Parse an os-release file into a dict.

    Missing or unreadable files yield an empty dict. Values are
    unquoted with shell rules, as os-release(5) specifies.
    """
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return {}

    fields = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value.strip("\"'")]
        fields[key.strip()] = parts[0] if parts else ""
    return fields


def machine() -> str:
    return platform.machine()


def repo_distro(os_release: dict[str, str]) -> str | None:
    """Return NVIDIA's distro directory name, e.g. ``ubuntu2204``."""
    distro_id = os_release.get("ID", "").lower()
    version = os_release.get("VERSION_ID", "")
    if not distro_id or not version:
        return None
    return distro_id + version.replace(".", "")


def repo_arch(arch: str) -> str | None:
    return _REPO_ARCH.get(arch.lower())
