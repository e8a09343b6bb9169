"""CUDA APT keyring diagnostics."""

__version__ = "0.1.0"
