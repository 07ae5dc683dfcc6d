"""The manifest: an immutable snapshot of one Spacelift account.

A manifest is produced by a single discovery pass (or loaded from a JSON
file written by ``export``).  Filtering never mutates a manifest; it builds
a new one.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from spacebridge.exceptions import ManifestError
from spacebridge.models import (
    AWSIntegration,
    AzureIntegration,
    Context,
    Policy,
    Space,
    Stack,
)
from spacebridge.types import ManifestSummary
from spacebridge.utils.logging import log_with_context


@dataclass(frozen=True)
class Manifest:
    """All resources discovered from one account."""

    source_url: str = ""
    spaces: tuple[Space, ...] = ()
    stacks: tuple[Stack, ...] = ()
    contexts: tuple[Context, ...] = ()
    policies: tuple[Policy, ...] = ()
    aws_integrations: tuple[AWSIntegration, ...] = ()
    azure_integrations: tuple[AzureIntegration, ...] = ()

    @property
    def is_empty(self) -> bool:
        """True when there is nothing worth generating code for."""
        return not (self.stacks or self.contexts or self.policies)

    def summary(self) -> ManifestSummary:
        """Return resource counts per collection."""
        return {
            "spaces": len(self.spaces),
            "stacks": len(self.stacks),
            "contexts": len(self.contexts),
            "policies": len(self.policies),
            "awsIntegrations": len(self.aws_integrations),
            "azureIntegrations": len(self.azure_integrations),
        }

    def secrets_count(self) -> int:
        """Number of write-only config elements that need manual values."""
        return sum(len(context.secrets) for context in self.contexts)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Manifest:
        return cls(
            source_url=data.get("sourceUrl", ""),
            spaces=tuple(Space.from_dict(s) for s in data.get("spaces") or []),
            stacks=tuple(Stack.from_dict(s) for s in data.get("stacks") or []),
            contexts=tuple(Context.from_dict(c) for c in data.get("contexts") or []),
            policies=tuple(Policy.from_dict(p) for p in data.get("policies") or []),
            aws_integrations=tuple(
                AWSIntegration.from_dict(i) for i in data.get("awsIntegrations") or []
            ),
            azure_integrations=tuple(
                AzureIntegration.from_dict(i)
                for i in data.get("azureIntegrations") or []
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceUrl": self.source_url,
            "spaces": [s.to_dict() for s in self.spaces],
            "stacks": [s.to_dict() for s in self.stacks],
            "contexts": [c.to_dict() for c in self.contexts],
            "policies": [p.to_dict() for p in self.policies],
            "awsIntegrations": [i.to_dict() for i in self.aws_integrations],
            "azureIntegrations": [i.to_dict() for i in self.azure_integrations],
        }


def save_manifest(manifest: Manifest, path: str | Path) -> Path:
    """Write a manifest as indented JSON.

    Args:
        manifest: The manifest to write.
        path: Destination file path.

    Returns:
        The path written.

    Raises:
        ManifestError: If the file cannot be written.
    """
    path = Path(path)
    try:
        if path.parent and not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(manifest.to_dict(), f, indent=2)
            f.write("\n")
    except OSError as e:
        raise ManifestError(f"failed to write manifest file {path}: {e}") from e

    log_with_context(logging.DEBUG, f"Manifest written to {path}")
    return path


def load_manifest(path: str | Path) -> Manifest:
    """Read a manifest previously written by :func:`save_manifest`.

    Args:
        path: Path to the manifest JSON file.

    Returns:
        The loaded Manifest.

    Raises:
        ManifestError: If the file is missing, unreadable or malformed.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ManifestError(f"failed to read manifest file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"failed to parse manifest file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(f"manifest file {path} does not contain a JSON object")

    try:
        manifest = Manifest.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ManifestError(f"invalid manifest file {path}: {e}") from e

    log_with_context(
        logging.DEBUG,
        f"Loaded manifest from {path}",
        source_url=manifest.source_url or None,
    )
    return manifest
