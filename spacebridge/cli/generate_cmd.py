"""CLI command handler for generating Terraform code for the destination account."""

from __future__ import annotations

import logging
import sys

import click

from spacebridge.cli.common import (
    cli,
    common_options,
    connect,
    handle_exception,
    scope_manifest,
    space_option,
    start_command,
)
from spacebridge.constants import DEFAULT_GENERATE_DIR
from spacebridge.core.config import load_migration_config, load_settings
from spacebridge.core.manifest import Manifest, load_manifest
from spacebridge.core.migrator import stacks_needing_access
from spacebridge.exceptions import GenerationError
from spacebridge.services.discovery import ManifestBuilder
from spacebridge.services.generator import AUTODEPLOY_FILE, TerraformGenerator
from spacebridge.utils.logging import log_with_context


def print_next_steps(manifest: Manifest, output_dir: str, disabled: bool) -> None:
    """Echo what was generated and what to do next."""
    click.echo("\n✓ Terraform code generated successfully!")
    click.echo("\nGenerated resources:")
    click.echo(f"  - Spaces:             {sum(1 for s in manifest.spaces if not s.is_root)}")
    click.echo(f"  - Contexts:           {len(manifest.contexts)}")
    click.echo(f"  - Policies:           {len(manifest.policies)}")
    click.echo(f"  - Stacks:             {len(manifest.stacks)}")
    click.echo(f"  - AWS Integrations:   {len(manifest.aws_integrations)}")
    click.echo(f"  - Azure Integrations: {len(manifest.azure_integrations)}")

    managed = [s for s in manifest.stacks if s.has_managed_state]
    needs_access = stacks_needing_access(manifest.stacks)
    autodeploy = [s for s in manifest.stacks if s.autodeploy]
    if disabled:
        click.echo("\n🔒 Safe migration mode enabled:")
        click.echo("   - All stacks created disabled with autodeploy = false")
        if autodeploy:
            click.echo(
                f"   - {len(autodeploy)} stacks need autodeploy re-enabled after "
                f"migration (see {AUTODEPLOY_FILE})"
            )
        click.echo(f"   - {len(managed)} stacks with Spacelift-managed state can be migrated")
        if needs_access:
            click.echo(
                f"\n⚠️  {len(needs_access)} stacks need external state access "
                "enabled before migration:"
            )
            for stack in needs_access:
                click.echo(f"   - {stack.name}")
            click.echo("   Run: spacebridge state enable-access")

    secrets = manifest.secrets_count()
    if secrets:
        click.echo(f"\n⚠️  {secrets} secret values require manual entry.")
        click.echo(
            "   Edit secrets.auto.tfvars.template and rename it to secrets.auto.tfvars"
        )

    steps = [f"cd {output_dir}", "Review the generated code"]
    if secrets:
        steps.append("Fill in secret values in secrets.auto.tfvars")
    steps.append("terraform init && terraform plan && terraform apply")
    if disabled and managed:
        steps += [
            "spacebridge state enable-access",
            "spacebridge state plan",
            "spacebridge state migrate",
            "spacebridge stacks enable",
        ]
        if autodeploy:
            steps.append(
                f"Rename {AUTODEPLOY_FILE} to autodeploy_re_enable_override.tf "
                "and apply"
            )
    click.echo("\nNext steps:")
    for number, step in enumerate(steps, start=1):
        click.echo(f"  {number}. {step}")


@cli.command()
@common_options
@space_option
@click.option(
    "--output",
    "-o",
    default=DEFAULT_GENERATE_DIR,
    show_default=True,
    help="Output directory for the generated files",
)
@click.option(
    "--manifest",
    "-m",
    "manifest_path",
    default=None,
    help="Input manifest file (discovers from the source account if omitted)",
)
@click.option(
    "--disabled",
    "-d",
    is_flag=True,
    default=False,
    help="Create stacks disabled with autodeploy off, for safe state migration",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    default=None,
    help="Migration config YAML with VCS overrides",
)
def generate(
    output: str,
    manifest_path: str | None,
    disabled: bool,
    config_path: str | None,
    space: str | None,
    env_file: str | None,
    verbose: bool,
    debug_api: bool,
) -> None:
    """Generate Terraform code for the destination account.

    Args:
        output: Output directory.
        manifest_path: Optional manifest file to generate from.
        disabled: Generate stacks disabled with autodeploy off.
        config_path: Optional migration config YAML.
        space: Optional space filter token.
        env_file: Optional dotenv file with credentials.
        verbose: Enable verbose console logging.
        debug_api: Log GraphQL requests and responses.
    """
    try:
        context = start_command(verbose, debug_api)
        settings = load_settings(env_file)

        if manifest_path:
            log_with_context(logging.INFO, f"Loading manifest from: {manifest_path}")
            manifest = load_manifest(manifest_path)
        else:
            adapter = connect(settings.require_source(), context)
            log_with_context(logging.INFO, "Discovering resources for code generation...")
            manifest = ManifestBuilder(adapter).build()

        if space:
            manifest = scope_manifest(manifest, space)
            if manifest.is_empty:
                raise GenerationError(f"no resources found in space '{space}'")

        migration_config = load_migration_config(config_path) if config_path else None

        generator = TerraformGenerator(
            manifest,
            output,
            disabled=disabled,
            destination=settings.destination if settings.has_destination else None,
            migration_config=migration_config,
        )
        log_with_context(logging.INFO, f"Generating Terraform code to: {output}")
        generator.generate()
        print_next_steps(manifest, output, disabled)
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)
