"""CLI command handler for exporting the source account to a manifest file."""

from __future__ import annotations

import logging
import sys

import click

from spacebridge.cli.common import (
    cli,
    common_options,
    connect,
    discover_scoped,
    handle_exception,
    space_option,
    start_command,
)
from spacebridge.cli.report import print_summary
from spacebridge.constants import DEFAULT_MANIFEST_FILE
from spacebridge.core.config import load_settings
from spacebridge.core.manifest import save_manifest
from spacebridge.utils.logging import log_with_context


@cli.command()
@common_options
@space_option
@click.option(
    "--output",
    "-o",
    default=DEFAULT_MANIFEST_FILE,
    show_default=True,
    help="Output file path",
)
def export(
    output: str,
    space: str | None,
    env_file: str | None,
    verbose: bool,
    debug_api: bool,
) -> None:
    """Export all resources to a JSON manifest file.

    Args:
        output: Path of the manifest file to write.
        space: Optional space filter token.
        env_file: Optional dotenv file with credentials.
        verbose: Enable verbose console logging.
        debug_api: Log GraphQL requests and responses.
    """
    try:
        context = start_command(verbose, debug_api)
        adapter = connect(load_settings(env_file).require_source(), context)
        log_with_context(logging.INFO, "Discovering all resources for export...")
        manifest = discover_scoped(adapter, space)

        path = save_manifest(manifest, output)
        click.echo(f"Manifest exported to: {path}")
        print_summary(manifest)
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)
