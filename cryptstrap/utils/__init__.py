"""Shared helpers: command execution, formatting, settings and types."""
