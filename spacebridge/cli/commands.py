"""
Command-line entry point for spacebridge.

Importing the command modules registers their subcommands on the ``cli``
group.
"""

from __future__ import annotations

from spacebridge.cli import (  # noqa: F401
    discover_cmd,
    export_cmd,
    generate_cmd,
    stacks_cmd,
    state_cmd,
)
from spacebridge.cli.common import cli, handle_exception

__all__ = ["cli", "handle_exception", "main"]


def main() -> None:
    """Run the spacebridge CLI."""
    cli()


if __name__ == "__main__":
    main()
