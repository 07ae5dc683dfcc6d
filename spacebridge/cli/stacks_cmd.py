"""CLI command handlers for stacks in the destination account."""

from __future__ import annotations

import logging
import sys

import click

from spacebridge.cli.common import (
    cli,
    common_options,
    connect,
    discover_stacks_in_space,
    dry_run_option,
    handle_exception,
    stack_space_option,
    start_command,
)
from spacebridge.cli.report import print_batch_report
from spacebridge.core.config import load_settings
from spacebridge.core.migrator import enable_stacks
from spacebridge.utils.logging import log_with_context


@cli.group()
def stacks() -> None:
    """Manage stacks in the destination account."""


@stacks.command()
@common_options
@stack_space_option
@dry_run_option
def enable(
    dry_run: bool,
    space: str | None,
    env_file: str | None,
    verbose: bool,
    debug_api: bool,
) -> None:
    """Enable all disabled stacks in the destination account.

    Run this after state has been migrated into stacks that were generated
    with --disabled.
    """
    try:
        context = start_command(verbose, debug_api, dry_run=dry_run)
        adapter = connect(load_settings(env_file).require_destination(), context)
        log_with_context(logging.INFO, "Discovering disabled stacks...")
        candidates = discover_stacks_in_space(adapter, space)

        disabled = [s for s in candidates if s.is_disabled]
        if not disabled:
            click.echo("\n✓ No disabled stacks found!")
            return

        click.echo(f"\nFound {len(disabled)} disabled stacks:")
        for stack in disabled:
            click.echo(f"    • {stack.name}")

        report = enable_stacks(adapter, disabled, context)
        print_batch_report(report)
        report.raise_for_failures()
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)
