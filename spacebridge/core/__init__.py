"""Core migration logic: manifest, space hierarchy, filtering and state transfer."""

__all__ = [
    "config",
    "context",
    "filtering",
    "hierarchy",
    "manifest",
    "migrator",
    "planner",
    "state",
]
