"""
Configuration module for the Spacelift account migration tool.

Account credentials come from the environment (optionally pre-loaded from a
``.env`` file).  Code generation overrides come from a YAML migration
config.  Both are validated before any network call is made.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import find_dotenv, load_dotenv

from spacebridge.constants import DESTINATION_ENV_PREFIX, SOURCE_ENV_PREFIX
from spacebridge.exceptions import ConfigurationError
from spacebridge.utils.logging import log_with_context

# ---------------------------------------------------------------------------
# Account credentials
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountConfig:
    """Credentials for one Spacelift account."""

    label: str
    env_prefix: str
    url: str = ""
    key_id: str = ""
    secret_key: str = field(default="", repr=False)

    @property
    def is_configured(self) -> bool:
        """True when all three values are present."""
        return bool(self.url and self.key_id and self.secret_key)

    def validate(self) -> None:
        """Raise ConfigurationError naming the first missing variable."""
        for suffix, value in (
            ("URL", self.url),
            ("KEY_ID", self.key_id),
            ("SECRET_KEY", self.secret_key),
        ):
            if not value:
                raise ConfigurationError(
                    f"{self.label} configuration error: "
                    f"{self.env_prefix}{suffix} is required"
                )
        if not self.url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"{self.label} configuration error: {self.env_prefix}URL must "
                f"start with http:// or https:// (got '{self.url}')"
            )

    @classmethod
    def from_env(
        cls, label: str, prefix: str, environ: Mapping[str, str]
    ) -> AccountConfig:
        return cls(
            label=label,
            env_prefix=prefix,
            url=environ.get(f"{prefix}URL", "").strip().rstrip("/"),
            key_id=environ.get(f"{prefix}KEY_ID", "").strip(),
            secret_key=environ.get(f"{prefix}SECRET_KEY", "").strip(),
        )


@dataclass(frozen=True)
class Settings:
    """Source and destination account credentials."""

    source: AccountConfig
    destination: AccountConfig

    @property
    def has_destination(self) -> bool:
        return self.destination.is_configured

    def require_source(self) -> AccountConfig:
        self.source.validate()
        return self.source

    def require_destination(self) -> AccountConfig:
        self.destination.validate()
        return self.destination


def load_settings(
    env_file: str | None = None, environ: Mapping[str, str] | None = None
) -> Settings:
    """
    Load account credentials from the environment.

    A ``.env`` file is loaded first if one is found (or ``env_file`` is
    given); variables already set in the environment take precedence.
    Nothing is validated here: commands call ``require_source`` /
    ``require_destination`` for the accounts they actually use.

    Args:
        env_file: Optional explicit path to a dotenv file
        environ: Environment mapping to read; defaults to ``os.environ``

    Returns:
        Settings for both accounts

    Raises:
        ConfigurationError: If ``env_file`` is given but does not exist
    """
    if environ is None:
        if env_file:
            if not Path(env_file).is_file():
                raise ConfigurationError(f"env file not found: {env_file}")
            load_dotenv(env_file, override=False)
            log_with_context(logging.DEBUG, f"Loaded environment from {env_file}")
        else:
            found = find_dotenv(usecwd=True)
            if found:
                load_dotenv(found, override=False)
                log_with_context(logging.DEBUG, f"Loaded environment from {found}")
        environ = os.environ

    return Settings(
        source=AccountConfig.from_env("source", SOURCE_ENV_PREFIX, environ),
        destination=AccountConfig.from_env(
            "destination", DESTINATION_ENV_PREFIX, environ
        ),
    )


# ---------------------------------------------------------------------------
# Migration config (code generation overrides)
# ---------------------------------------------------------------------------

# provider key -> key holding the namespace or project
VCS_PROVIDERS: dict[str, str] = {
    "github_enterprise": "namespace",
    "gitlab": "namespace",
    "bitbucket_datacenter": "namespace",
    "bitbucket_cloud": "namespace",
    "azure_devops": "project",
}


@dataclass(frozen=True)
class VCSOverride:
    """VCS integration to use for every stack in the destination account.

    ``scope`` is the namespace (GitHub org, GitLab group, Bitbucket
    workspace or project key) or, for Azure DevOps, the project name.
    """

    provider: str
    id: str
    scope: str

    @property
    def scope_key(self) -> str:
        return VCS_PROVIDERS[self.provider]


@dataclass(frozen=True)
class MigrationConfig:
    """Typed migration config; every field is optional."""

    vcs: VCSOverride | None = None

    @property
    def has_vcs_override(self) -> bool:
        return self.vcs is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> MigrationConfig:
        """Build and validate a MigrationConfig from parsed YAML.

        Raises:
            ConfigurationError: If a provider block is incomplete, unknown,
                or more than one provider is configured.
        """
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError("migration config must be a mapping")

        destination = data.get("destination") or {}
        vcs = destination.get("vcs") or {}
        if not isinstance(vcs, dict):
            raise ConfigurationError("destination.vcs must be a mapping")

        unknown = sorted(set(vcs) - set(VCS_PROVIDERS))
        if unknown:
            raise ConfigurationError(
                f"unknown VCS provider(s) in destination.vcs: {', '.join(unknown)}"
            )

        overrides: list[VCSOverride] = []
        for provider, scope_key in VCS_PROVIDERS.items():
            block = vcs.get(provider)
            if block is None:
                continue
            if not isinstance(block, dict):
                raise ConfigurationError(f"{provider} must be a mapping")
            for key in ("id", scope_key):
                if not block.get(key):
                    raise ConfigurationError(f"{provider}.{key} is required")
            overrides.append(
                VCSOverride(
                    provider=provider, id=str(block["id"]), scope=str(block[scope_key])
                )
            )

        if len(overrides) > 1:
            raise ConfigurationError("only one VCS integration type can be configured")

        return cls(vcs=overrides[0] if overrides else None)


def load_migration_config(config_path: str | Path) -> MigrationConfig:
    """
    Load the migration config from a YAML file.

    Unlike credentials, a migration config is only read when the user asks
    for one, so a missing or unparsable file is an error.

    Args:
        config_path: Path to the config YAML file

    Returns:
        Validated MigrationConfig

    Raises:
        ConfigurationError: If the file cannot be read, parsed or validated
    """
    try:
        with open(config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(
            f"failed to read config file {config_path}: {e}"
        ) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"failed to parse config file {config_path}: {e}"
        ) from e

    config = MigrationConfig.from_dict(raw)
    log_with_context(logging.INFO, f"Loaded migration config from {config_path}")
    if config.vcs:
        log_with_context(
            logging.INFO,
            f"VCS override: {config.vcs.provider} ({config.vcs.scope})",
        )
    return config
