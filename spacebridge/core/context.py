"""Immutable run context.

RunContext carries the per-invocation flags (verbosity, API debugging,
dry run) from the CLI down to the API client and the migration pipeline.
It is created once per command and never modified.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RunContext:
    """Flags for a single command invocation."""

    verbose: bool = False
    debug_api: bool = False
    dry_run: bool = False

    @property
    def log_prefix(self) -> str:
        """Returns ``"[DRY RUN] "`` in dry-run mode, otherwise an empty string."""
        return "[DRY RUN] " if self.dry_run else ""

    @property
    def show_progress(self) -> bool:
        """Progress bars are hidden when verbose logging would interleave with them."""
        return not self.verbose
