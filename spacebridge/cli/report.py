"""
Console and file reports for the spacebridge commands
"""

from __future__ import annotations

import datetime
import logging
import os
from typing import Any, Iterable

import click
import yaml

from spacebridge.constants import DEFAULT_REPORT_DIR
from spacebridge.core.hierarchy import SpaceHierarchy
from spacebridge.core.manifest import Manifest
from spacebridge.core.planner import Disposition, MigrationPlan
from spacebridge.core.state import BatchReport, MigrationReport
from spacebridge.models import Context, Policy, Stack
from spacebridge.utils.formatting import (
    friendly_vendor_type,
    render_space_tree,
    render_table,
)
from spacebridge.utils.logging import log_with_context

RULE = "─" * 61


def _banner(title: str) -> None:
    click.echo("\n┌" + "─" * 61 + "┐")
    click.echo("│" + title.center(61) + "│")
    click.echo("└" + "─" * 61 + "┘")


def _bullets(names: Iterable[str]) -> None:
    for name in names:
        click.echo(f"    • {name}")


# ---------------------------------------------------------------------------
# Output directory and YAML reports
# ---------------------------------------------------------------------------


def create_output_directory(base_dir: str = DEFAULT_REPORT_DIR) -> str:
    """Create a timestamped directory for this run's report and log."""
    timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    run_output_dir = os.path.join(base_dir, f"run_{timestamp}")
    os.makedirs(run_output_dir, exist_ok=True)
    return run_output_dir


def write_yaml_report(data: dict[str, Any], output_dir: str, filename: str) -> str:
    """Write ``data`` as YAML into ``output_dir`` and return the path."""
    report_path = os.path.join(output_dir, filename)
    with open(report_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    log_with_context(logging.INFO, f"Report saved to {report_path}")
    return report_path


# ---------------------------------------------------------------------------
# Discovery output
# ---------------------------------------------------------------------------


def print_space_tree(hierarchy: SpaceHierarchy) -> None:
    click.echo(f"\nSpaces ({len(hierarchy)}):\n")
    for line in render_space_tree(hierarchy.tree()):
        click.echo(line)


def print_stacks(stacks: Iterable[Stack]) -> None:
    stacks = list(stacks)
    click.echo(f"\nStacks ({len(stacks)}):\n")
    rows = [
        (
            s.name,
            s.space,
            friendly_vendor_type(s.vendor_type),
            f"{s.repository}@{s.branch}" if s.repository else "",
            "managed" if s.manages_state_file else "self-managed",
        )
        for s in stacks
    ]
    for line in render_table(("NAME", "SPACE", "VENDOR", "REPOSITORY", "STATE"), rows):
        click.echo(line)


def print_contexts(contexts: Iterable[Context]) -> None:
    contexts = list(contexts)
    click.echo(f"\nContexts ({len(contexts)}):\n")
    rows = [
        (c.name, c.space, len(c.plain_config), len(c.secrets)) for c in contexts
    ]
    for line in render_table(("NAME", "SPACE", "CONFIG", "SECRETS"), rows):
        click.echo(line)


def print_policies(policies: Iterable[Policy]) -> None:
    policies = list(policies)
    click.echo(f"\nPolicies ({len(policies)}):\n")
    rows = [(p.name, p.space, p.type) for p in policies]
    for line in render_table(("NAME", "SPACE", "TYPE"), rows):
        click.echo(line)


def print_secrets_warning(contexts: Iterable[Context]) -> None:
    """List write-only config elements, whose values cannot be exported."""
    secrets = [(c.name, e.id) for c in contexts for e in c.secrets]
    if not secrets:
        return
    click.echo(
        f"\n⚠️  {len(secrets)} secret values are write-only and cannot be exported:"
    )
    _bullets(f"{context}: {element}" for context, element in secrets)


_SUMMARY_LABELS = {
    "spaces": "Spaces",
    "stacks": "Stacks",
    "contexts": "Contexts",
    "policies": "Policies",
    "awsIntegrations": "AWS Integrations",
    "azureIntegrations": "Azure Integrations",
}


def print_summary(manifest: Manifest) -> None:
    click.echo("\nDiscovery summary:")
    for kind, count in manifest.summary().items():
        label = _SUMMARY_LABELS.get(kind, kind) + ":"
        click.echo(f"  - {label:<20}{count}")
    secrets = manifest.secrets_count()
    if secrets:
        click.echo(f"\n⚠️  {secrets} secret values require manual entry after generation.")


# ---------------------------------------------------------------------------
# State migration output
# ---------------------------------------------------------------------------

_PLAN_SECTIONS = (
    (
        Disposition.BLOCKED_NO_ACCESS,
        "⚠ BLOCKED - External State Access Disabled",
        "Run: spacebridge state enable-access",
    ),
    (
        Disposition.BLOCKED_NOT_IN_DESTINATION,
        "⚠ BLOCKED - Not In Destination",
        "Apply the generated code to create destination stacks first",
    ),
    (
        Disposition.SKIPPED_SELF_MANAGED,
        "○ SKIPPED - Self-Managed State",
        "Migrate state via your external backend directly",
    ),
    (
        Disposition.SKIPPED_NON_APPLICABLE,
        "○ N/A - Non-Terraform Stacks",
        None,
    ),
)


def print_plan(plan: MigrationPlan, title: str = "STATE MIGRATION PLAN") -> None:
    _banner(title)
    candidates = plan.candidates
    click.echo(f"\n✓ READY TO MIGRATE ({len(candidates)} stacks)")
    if candidates:
        _bullets(c.name for c in candidates)
    else:
        click.echo("  No stacks ready for migration")

    for disposition, heading, hint in _PLAN_SECTIONS:
        entries = plan.by_disposition(disposition)
        if not entries:
            continue
        click.echo(f"\n{heading} ({len(entries)} stacks)")
        if disposition is Disposition.SKIPPED_NON_APPLICABLE:
            _bullets(
                f"{c.name} ({friendly_vendor_type(c.source.vendor_type)})"
                for c in entries
            )
        else:
            _bullets(c.name for c in entries)
        if hint:
            click.echo(f"\n  {hint}")

    counts = plan.counts()
    click.echo("\n" + RULE)
    click.echo(
        f"Total: {len(plan)} stacks | "
        f"Ready: {counts[Disposition.CANDIDATE.value]} | "
        f"Blocked: {len(plan.blocked)} | Skipped: {len(plan.skipped)}"
    )


def print_migration_report(report: MigrationReport) -> None:
    click.echo("\n" + RULE)
    if report.dry_run:
        click.echo("DRY RUN - No changes made")
        click.echo("Remove --dry-run to perform the migration")
        return
    for result in report.results:
        if result.succeeded:
            size = (
                f" ({result.bytes_transferred} bytes)"
                if result.bytes_transferred is not None
                else ""
            )
            click.echo(f"  ✓ {result.stack_name}{size}")
        else:
            click.echo(
                f"  ✗ {result.stack_name}: {result.failed_step or 'failed'}: {result.error}"
            )
        if result.unlock_error:
            click.echo(f"    ⚠ unlock failed: {result.unlock_error}")
    click.echo(
        f"\nMigration complete: {report.succeeded} succeeded, {report.failed} failed"
    )


def print_batch_report(report: BatchReport, done: str = "enabled") -> None:
    click.echo("\n" + RULE)
    if report.dry_run:
        click.echo(f"DRY RUN - No changes made ({len(report.results)} stacks)")
        return
    for result in report.results:
        if result.ok:
            click.echo(f"  • {result.stack_name} ... ✓ {done.capitalize()}")
        else:
            click.echo(f"  • {result.stack_name} ... ✗ Failed: {result.error}")
    click.echo(f"\nResults: {report.succeeded} {done}, {report.failed} failed")
