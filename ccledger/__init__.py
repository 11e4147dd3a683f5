"""Usage and cost accounting for Claude Code session logs."""

__version__ = "0.1.0"
