"""The diagnostic checklist, in report order."""

from cudadiag.checks.apt import apt_sources, legacy_keys
from cudadiag.checks.base import Check, CheckContext, Checklist
from cudadiag.checks.keyring import key_content, key_expiration, keyring_file
from cudadiag.checks.network import reachability, release_signature
from cudadiag.checks.system import system_info

CHECKS = [
    Check("Keyring File Check", keyring_file),
    Check("GPG Key Content", key_content),
    Check("Key Expiration Check", key_expiration),
    Check("APT Sources Configuration", apt_sources),
    Check("Network Connectivity", reachability),
    Check("Repository InRelease Signature", release_signature),
    Check("Legacy APT Key Check", legacy_keys),
    Check("System Information", system_info),
]


def default_checklist() -> Checklist:
    return Checklist(CHECKS)


__all__ = ["CHECKS", "Check", "CheckContext", "Checklist", "default_checklist"]
