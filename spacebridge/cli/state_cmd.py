"""CLI command handlers for Terraform state migration."""

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
from spacebridge.cli.report import (
    create_output_directory,
    print_batch_report,
    print_migration_report,
    print_plan,
    write_yaml_report,
)
from spacebridge.constants import DEFAULT_REPORT_DIR, STATE_REPORT_FILE
from spacebridge.core.config import load_settings
from spacebridge.core.migrator import (
    StateMigrator,
    enable_external_state_access,
    stacks_needing_access,
)
from spacebridge.core.planner import build_plan
from spacebridge.services.discovery import ManifestBuilder
from spacebridge.utils.logging import attach_run_log, log_with_context


# ---------------------------------------------------------------------------
# state group
# ---------------------------------------------------------------------------


@cli.group()
def state() -> None:
    """Migrate Terraform state between accounts."""


@state.command()
@common_options
@stack_space_option
def plan(space: str | None, env_file: str | None, verbose: bool, debug_api: bool) -> None:
    """Preview which stacks can have their state migrated.

    Stacks are matched to destination stacks by name when the destination
    account is configured; otherwise that check is skipped.
    """
    try:
        context = start_command(verbose, debug_api)
        settings = load_settings(env_file)
        source = connect(settings.require_source(), context)
        log_with_context(logging.INFO, "Analyzing stacks for state migration...")
        stacks = discover_stacks_in_space(source, space)

        destination_stacks = None
        if settings.has_destination:
            destination = connect(settings.require_destination(), context)
            destination_stacks = ManifestBuilder(destination).discover_stacks()
        else:
            log_with_context(
                logging.INFO,
                "Destination account not configured; skipping destination matching",
            )

        print_plan(build_plan(stacks, destination_stacks))
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)


@state.command(name="enable-access")
@common_options
@stack_space_option
@dry_run_option
def enable_access(
    dry_run: bool,
    space: str | None,
    env_file: str | None,
    verbose: bool,
    debug_api: bool,
) -> None:
    """Enable external state access on managed-state stacks that lack it.

    State can only be downloaded from a stack with external state access.
    """
    try:
        context = start_command(verbose, debug_api, dry_run=dry_run)
        adapter = connect(load_settings(env_file).require_source(), context)
        log_with_context(
            logging.INFO, "Finding stacks that need external state access enabled..."
        )
        blocked = stacks_needing_access(discover_stacks_in_space(adapter, space))
        if not blocked:
            click.echo("\n✓ All managed-state stacks already have external access enabled!")
            return

        click.echo(f"\nEnabling external state access on {len(blocked)} stacks:")
        for stack in blocked:
            click.echo(f"    • {stack.name}")

        report = enable_external_state_access(adapter, blocked, context)
        print_batch_report(report)
        report.raise_for_failures()
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)


@state.command()
@common_options
@stack_space_option
@dry_run_option
@click.option(
    "--report-dir",
    default=DEFAULT_REPORT_DIR,
    show_default=True,
    help="Directory for the run's report and log",
)
def migrate(
    report_dir: str,
    dry_run: bool,
    space: str | None,
    env_file: str | None,
    verbose: bool,
    debug_api: bool,
) -> None:
    """Migrate managed Terraform state from source to destination stacks.

    Destination stacks are matched by name and must already exist.  State
    is streamed between accounts without touching local disk.
    """
    try:
        context = start_command(verbose, debug_api, dry_run=dry_run)
        settings = load_settings(env_file)
        source_account = settings.require_source()
        destination_account = settings.require_destination()

        output_dir = create_output_directory(report_dir)
        attach_run_log(output_dir, debug_api)
        log_with_context(logging.INFO, f"Output directory: {output_dir}")

        source = connect(source_account, context)
        destination = connect(destination_account, context)

        log_with_context(logging.INFO, "Discovering stacks...")
        stacks = discover_stacks_in_space(source, space)
        destination_stacks = ManifestBuilder(destination).discover_stacks()

        migration_plan = build_plan(stacks, destination_stacks)
        print_plan(migration_plan, title="STATE MIGRATION")

        report = StateMigrator(source, destination, context).migrate(migration_plan)
        print_migration_report(report)
        write_yaml_report(report.to_dict(), output_dir, STATE_REPORT_FILE)
        report.raise_for_failures()
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)
