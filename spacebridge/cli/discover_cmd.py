"""CLI command handlers for read-only discovery of the source account."""

from __future__ import annotations

import sys

from spacebridge.cli.common import (
    cli,
    common_options,
    connect,
    handle_exception,
    start_command,
)
from spacebridge.cli.report import (
    print_contexts,
    print_policies,
    print_secrets_warning,
    print_space_tree,
    print_stacks,
    print_summary,
)
from spacebridge.core.config import load_settings
from spacebridge.core.hierarchy import SpaceHierarchy
from spacebridge.services.discovery import ManifestBuilder

# ---------------------------------------------------------------------------
# discover group
# ---------------------------------------------------------------------------


@cli.group()
def discover() -> None:
    """Discover resources in the source Spacelift account."""


def _builder(env_file: str | None, verbose: bool, debug_api: bool) -> ManifestBuilder:
    context = start_command(verbose, debug_api)
    source = load_settings(env_file).require_source()
    return ManifestBuilder(connect(source, context))


@discover.command()
@common_options
def spaces(env_file: str | None, verbose: bool, debug_api: bool) -> None:
    """Show all spaces as a tree."""
    try:
        builder = _builder(env_file, verbose, debug_api)
        print_space_tree(SpaceHierarchy(builder.discover_spaces()))
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)


@discover.command()
@common_options
def stacks(env_file: str | None, verbose: bool, debug_api: bool) -> None:
    """List all stacks."""
    try:
        builder = _builder(env_file, verbose, debug_api)
        print_stacks(builder.discover_stacks())
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)


@discover.command()
@common_options
def contexts(env_file: str | None, verbose: bool, debug_api: bool) -> None:
    """List all contexts and flag write-only secrets."""
    try:
        builder = _builder(env_file, verbose, debug_api)
        found = builder.discover_contexts()
        print_contexts(found)
        print_secrets_warning(found)
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)


@discover.command()
@common_options
def policies(env_file: str | None, verbose: bool, debug_api: bool) -> None:
    """List all policies."""
    try:
        builder = _builder(env_file, verbose, debug_api)
        print_policies(builder.discover_policies())
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)


@discover.command(name="all")
@common_options
def discover_all(env_file: str | None, verbose: bool, debug_api: bool) -> None:
    """Discover everything and print a summary."""
    try:
        builder = _builder(env_file, verbose, debug_api)
        manifest = builder.build()
        print_space_tree(SpaceHierarchy(manifest.spaces))
        print_stacks(manifest.stacks)
        print_contexts(manifest.contexts)
        print_policies(manifest.policies)
        print_secrets_warning(manifest.contexts)
        print_summary(manifest)
    except (Exception, KeyboardInterrupt) as e:
        handle_exception(e)
        sys.exit(1)
