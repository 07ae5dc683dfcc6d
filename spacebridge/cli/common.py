"""Shared CLI infrastructure: option decorators, error handlers, and the CLI group."""

from __future__ import annotations

import logging
from typing import Callable

import click

import spacebridge
from spacebridge.constants import (
    DESTINATION_ENV_PREFIX,
    HTTP_FORBIDDEN,
    HTTP_SERVER_ERROR_MIN,
    HTTP_UNAUTHORIZED,
    SOURCE_ENV_PREFIX,
)
from spacebridge.core.config import AccountConfig
from spacebridge.core.context import RunContext
from spacebridge.core.filtering import filter_manifest_by_space, stacks_in_space
from spacebridge.core.hierarchy import SpaceHierarchy
from spacebridge.core.manifest import Manifest
from spacebridge.exceptions import (
    AggregateFailure,
    APIError,
    ConfigurationError,
    ResolutionError,
    SpacebridgeError,
)
from spacebridge.models import Stack
from spacebridge.services.discovery import ManifestBuilder
from spacebridge.services.spacelift_adapter import SpaceliftAdapter
from spacebridge.utils.api import create_client
from spacebridge.utils.logging import log_with_context, setup_logger

# Create logger instance
logger = logging.getLogger("spacebridge")


# ---------------------------------------------------------------------------
# Shared option decorators
# ---------------------------------------------------------------------------


def common_options(f: Callable[..., None]) -> Callable[..., None]:
    """Decorator that adds options shared across all subcommands.

    Args:
        f: The Click command function to decorate.

    Returns:
        The decorated function with common options attached.
    """
    f = click.option(
        "--env-file",
        default=None,
        help="Path to a .env file with account credentials "
        "(default: search upwards from the current directory)",
    )(f)
    f = click.option(
        "--verbose",
        "-v",
        is_flag=True,
        default=False,
        help="Enable verbose console logging (shows DEBUG level messages)",
    )(f)
    f = click.option(
        "--debug_api",
        is_flag=True,
        default=False,
        help="Log GraphQL requests and responses (credentials are redacted)",
    )(f)
    return f


def space_option(f: Callable[..., None]) -> Callable[..., None]:
    """Adds ``-s/--space`` for limiting a command to one space subtree."""
    return click.option(
        "--space",
        "-s",
        default=None,
        help="Only include this space, its children, and the parent spaces "
        "and attached resources they need (space ID, name, or name-ID)",
    )(f)


def stack_space_option(f: Callable[..., None]) -> Callable[..., None]:
    """Adds ``-s/--space`` for commands that act on stacks in one space."""
    return click.option(
        "--space",
        "-s",
        default=None,
        help="Only include stacks in this space, not its parents or children "
        "(space ID, name, or name-ID)",
    )(f)


def dry_run_option(f: Callable[..., None]) -> Callable[..., None]:
    return click.option(
        "--dry-run",
        is_flag=True,
        default=False,
        help="Show what would change without making any changes",
    )(f)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=spacebridge.__version__, prog_name="spacebridge")
def cli() -> None:
    """Migrate Spacelift resources and Terraform state between accounts."""


# ---------------------------------------------------------------------------
# Command helpers
# ---------------------------------------------------------------------------


def start_command(
    verbose: bool,
    debug_api: bool,
    dry_run: bool = False,
) -> RunContext:
    """Configure console logging and build the run context for one invocation."""
    setup_logger(verbose, debug_api)
    return RunContext(verbose=verbose, debug_api=debug_api, dry_run=dry_run)


def connect(account: AccountConfig, context: RunContext) -> SpaceliftAdapter:
    """Validate ``account`` and return an adapter for it.

    Raises:
        ConfigurationError: If the account's variables are incomplete.
    """
    client = create_client(account, context)
    log_with_context(logging.INFO, f"Connecting to {account.label}: {account.url}")
    if context.verbose:
        log_with_context(logging.DEBUG, f"API key ID: {account.key_id}")
    return SpaceliftAdapter(client)


def resolve_space(hierarchy: SpaceHierarchy, token: str) -> str:
    """Resolve a ``-s`` token and log which space was picked."""
    space_id = hierarchy.resolve_filter_token(token)
    space = hierarchy.get(space_id)
    log_with_context(
        logging.INFO,
        f"Filtering to space: {space.name if space else space_id} (ID: {space_id})",
    )
    return space_id


def scope_manifest(manifest: Manifest, token: str | None) -> Manifest:
    """Apply the space filter for ``-s`` to a full manifest.

    Returns the manifest unchanged when ``token`` is empty.

    Raises:
        ResolutionError: If ``token`` matches no space.
    """
    if not token:
        return manifest
    hierarchy = SpaceHierarchy(manifest.spaces)
    space_id = resolve_space(hierarchy, token)
    return filter_manifest_by_space(manifest, space_id, hierarchy)


def discover_scoped(adapter: SpaceliftAdapter, token: str | None) -> Manifest:
    """Discover a full manifest and scope it to ``token``'s subtree."""
    return scope_manifest(ManifestBuilder(adapter).build(), token)


def discover_stacks_in_space(adapter: SpaceliftAdapter, token: str | None) -> list[Stack]:
    """Discover stacks, keeping only those directly in ``token``'s space.

    Stacks in ancestor or child spaces are left out.  Without a token every
    stack is returned.

    Raises:
        ResolutionError: If ``token`` matches no space.
    """
    builder = ManifestBuilder(adapter)
    stacks = builder.discover_stacks()
    if not token:
        return stacks
    hierarchy = SpaceHierarchy(builder.discover_spaces())
    return stacks_in_space(stacks, resolve_space(hierarchy, token))


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


def handle_api_error(e: APIError) -> None:
    """Handle API errors with specific messages.

    Args:
        e: The API error to handle.
    """
    if e.status_code in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
        log_with_context(logging.ERROR, f"Authentication failed: {e}")
        log_with_context(
            logging.INFO,
            "Check that the API key ID and secret are correct and that the key "
            "has admin access to the account.",
        )
    elif e.status_code is not None and e.status_code >= HTTP_SERVER_ERROR_MIN:
        log_with_context(logging.ERROR, f"Server error from Spacelift API: {e}")
        log_with_context(
            logging.INFO, "This is likely a temporary issue. Please try again later."
        )
    else:
        log_with_context(logging.ERROR, f"API error: {e}")


def handle_exception(e: BaseException) -> None:
    """Handle different types of exceptions.

    Args:
        e: The exception to handle.
    """
    if isinstance(e, ConfigurationError):
        log_with_context(logging.ERROR, str(e))
        log_with_context(
            logging.INFO,
            f"Set {SOURCE_ENV_PREFIX}URL, {SOURCE_ENV_PREFIX}KEY_ID and "
            f"{SOURCE_ENV_PREFIX}SECRET_KEY (and the {DESTINATION_ENV_PREFIX}* "
            "equivalents for commands that use the destination account), "
            "in the environment or a .env file.",
        )
    elif isinstance(e, APIError):
        handle_api_error(e)
    elif isinstance(e, ResolutionError):
        log_with_context(logging.ERROR, str(e))
        log_with_context(
            logging.INFO,
            "Run 'spacebridge discover spaces' to list the available spaces.",
        )
    elif isinstance(e, AggregateFailure):
        log_with_context(logging.ERROR, str(e))
    elif isinstance(e, SpacebridgeError):
        log_with_context(logging.ERROR, str(e))
    elif isinstance(e, FileNotFoundError):
        log_with_context(logging.ERROR, f"File not found: {e}")
    elif isinstance(e, KeyboardInterrupt):
        log_with_context(logging.WARNING, "Interrupted by user.")
        log_with_context(
            logging.INFO,
            "Stacks that were being migrated may still be locked in the "
            "destination account.",
        )
    else:
        log_with_context(logging.ERROR, f"Command failed: {e}", exc_info=True)
