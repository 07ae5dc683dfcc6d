"""Shared utilities for API access, logging and terminal formatting."""

__all__ = [
    "api",
    "formatting",
    "logging",
]
