"""Graph workflows for the CLI commands."""
