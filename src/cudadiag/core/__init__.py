"""Core configuration, logging and command execution."""
