"""Domain model for discovered Spacelift resources.

Every entity is an immutable dataclass.  ``from_dict`` reads the manifest
JSON shape (camelCase keys) and ``to_dict`` writes it back, so a manifest
round-trips through ``export`` and ``generate -m`` without loss.  Optional
fields absent from the input become ``None`` (scalars) or an empty tuple
(lists).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from spacebridge.constants import (
    CONFIG_TYPE_ENVIRONMENT_VARIABLE,
    CONFIG_TYPE_FILE_MOUNT,
    HOOK_PHASES,
    ROOT_SPACE_ID,
    TERRAFORM_VENDOR_TYPES,
)


def _strings(values: Any) -> tuple[str, ...]:
    """Normalize an optional list of strings into a tuple."""
    if not values:
        return ()
    return tuple(str(v) for v in values)


def _optional(value: Any) -> str | None:
    """Treat empty strings as unset."""
    if value is None or value == "":
        return None
    return str(value)


def _put_optional(data: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


# ---------------------------------------------------------------------------
# Spaces
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Space:
    """An organizational space.  ``parent_space`` is None for roots."""

    id: str
    name: str
    description: str = ""
    parent_space: str | None = None
    inherit_entities: bool = False
    labels: tuple[str, ...] = ()

    @property
    def is_root(self) -> bool:
        return self.id == ROOT_SPACE_ID

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Space:
        # Older manifests used ``parentSpaceId``
        parent = data.get("parentSpace", data.get("parentSpaceId"))
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description") or "",
            parent_space=_optional(parent),
            inherit_entities=bool(data.get("inheritEntities", False)),
            labels=_strings(data.get("labels")),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
        }
        _put_optional(data, "parentSpace", self.parent_space)
        data["inheritEntities"] = self.inherit_entities
        data["labels"] = list(self.labels)
        return data


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Hooks:
    """Lifecycle hook commands for a stack or context."""

    after_apply: tuple[str, ...] = ()
    before_apply: tuple[str, ...] = ()
    after_init: tuple[str, ...] = ()
    before_init: tuple[str, ...] = ()
    after_plan: tuple[str, ...] = ()
    before_plan: tuple[str, ...] = ()
    after_perform: tuple[str, ...] = ()
    before_perform: tuple[str, ...] = ()
    after_destroy: tuple[str, ...] = ()
    before_destroy: tuple[str, ...] = ()
    after_run: tuple[str, ...] = ()

    @staticmethod
    def _attribute(phase: str) -> str:
        # afterApply -> after_apply
        return "".join("_" + c.lower() if c.isupper() else c for c in phase)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Hooks:
        if not data:
            return cls()
        return cls(
            **{
                cls._attribute(phase): _strings(data.get(phase))
                for phase in HOOK_PHASES
            }
        )

    def to_dict(self) -> dict[str, list[str]]:
        return {phase: list(commands) for phase, commands in self.phases()}

    def phases(self) -> Iterator[tuple[str, tuple[str, ...]]]:
        """Yield ``(phase, commands)`` for every phase, in wire order."""
        for phase in HOOK_PHASES:
            yield phase, getattr(self, self._attribute(phase))

    @property
    def is_empty(self) -> bool:
        return not any(commands for _, commands in self.phases())


# ---------------------------------------------------------------------------
# Stack attachments
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContextAttachment:
    id: str
    context_id: str
    priority: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContextAttachment:
        return cls(
            id=data.get("id", ""),
            context_id=data["contextId"],
            priority=int(data.get("priority", 0)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "contextId": self.context_id, "priority": self.priority}


@dataclass(frozen=True)
class PolicyAttachment:
    id: str
    policy_id: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PolicyAttachment:
        return cls(id=data.get("id", ""), policy_id=data["policyId"])

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "policyId": self.policy_id}


@dataclass(frozen=True)
class StackDependency:
    id: str
    depends_on_stack_id: str

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> StackDependency:
        # A bare stack id is accepted as shorthand
        if isinstance(data, str):
            return cls(id="", depends_on_stack_id=data)
        stack_id = data.get("dependsOnStackId")
        if stack_id is None:
            stack_id = (data.get("dependsOnStack") or {}).get("id", "")
        return cls(id=data.get("id", ""), depends_on_stack_id=stack_id)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "dependsOnStackId": self.depends_on_stack_id}


@dataclass(frozen=True)
class IntegrationAttachment:
    """A cloud integration attached to a stack."""

    id: str
    integration_id: str
    read: bool = False
    write: bool = False
    subscription_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IntegrationAttachment:
        return cls(
            id=data.get("id", ""),
            integration_id=data["integrationId"],
            read=bool(data.get("read", False)),
            write=bool(data.get("write", False)),
            subscription_id=_optional(data.get("subscriptionId")),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "integrationId": self.integration_id,
            "read": self.read,
            "write": self.write,
        }
        _put_optional(data, "subscriptionId", self.subscription_id)
        return data


# ---------------------------------------------------------------------------
# Stacks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Stack:
    """A Spacelift stack and everything attached to it."""

    id: str
    name: str
    space: str
    description: str | None = None
    branch: str = ""
    repository: str = ""
    namespace: str = ""
    project_root: str | None = None
    provider: str = ""
    vendor_type: str = ""
    repository_url: str | None = None
    runner_image: str | None = None
    terraform_version: str | None = None
    administrative: bool = False
    autodeploy: bool = False
    autoretry: bool = False
    local_preview_enabled: bool = False
    protect_from_deletion: bool = False
    is_disabled: bool = False
    manages_state_file: bool = False
    external_state_access_enabled: bool = False
    labels: tuple[str, ...] = ()
    additional_project_globs: tuple[str, ...] = ()
    hooks: Hooks = field(default_factory=Hooks)
    attached_contexts: tuple[ContextAttachment, ...] = ()
    attached_policies: tuple[PolicyAttachment, ...] = ()
    depends_on: tuple[StackDependency, ...] = ()
    attached_aws_integrations: tuple[IntegrationAttachment, ...] = ()
    attached_azure_integrations: tuple[IntegrationAttachment, ...] = ()

    @property
    def is_terraform(self) -> bool:
        """True for Terraform-family vendors (Terraform/OpenTofu, Terragrunt)."""
        return self.vendor_type in TERRAFORM_VENDOR_TYPES

    @property
    def has_managed_state(self) -> bool:
        """True when Spacelift holds a state file that can be transferred."""
        return self.manages_state_file and self.is_terraform

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Stack:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            space=data.get("space", ""),
            description=_optional(data.get("description")),
            branch=data.get("branch", ""),
            repository=data.get("repository", ""),
            namespace=data.get("namespace", ""),
            project_root=_optional(data.get("projectRoot")),
            provider=data.get("provider", ""),
            vendor_type=data.get("vendorType", ""),
            repository_url=_optional(data.get("repositoryURL")),
            runner_image=_optional(data.get("runnerImage")),
            terraform_version=_optional(data.get("terraformVersion")),
            administrative=bool(data.get("administrative", False)),
            autodeploy=bool(data.get("autodeploy", False)),
            autoretry=bool(data.get("autoretry", False)),
            local_preview_enabled=bool(data.get("localPreviewEnabled", False)),
            protect_from_deletion=bool(data.get("protectFromDeletion", False)),
            is_disabled=bool(data.get("isDisabled", False)),
            manages_state_file=bool(data.get("managesStateFile", False)),
            external_state_access_enabled=bool(
                data.get("externalStateAccessEnabled", False)
            ),
            labels=_strings(data.get("labels")),
            additional_project_globs=_strings(data.get("additionalProjectGlobs")),
            hooks=Hooks.from_dict(data.get("hooks")),
            attached_contexts=tuple(
                ContextAttachment.from_dict(a)
                for a in data.get("attachedContexts") or []
            ),
            attached_policies=tuple(
                PolicyAttachment.from_dict(a)
                for a in data.get("attachedPolicies") or []
            ),
            depends_on=tuple(
                StackDependency.from_dict(d) for d in data.get("dependsOn") or []
            ),
            attached_aws_integrations=tuple(
                IntegrationAttachment.from_dict(a)
                for a in data.get("attachedAwsIntegrations") or []
            ),
            attached_azure_integrations=tuple(
                IntegrationAttachment.from_dict(a)
                for a in data.get("attachedAzureIntegrations") or []
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        _put_optional(data, "description", self.description)
        data.update(
            {
                "space": self.space,
                "branch": self.branch,
                "repository": self.repository,
                "namespace": self.namespace,
            }
        )
        _put_optional(data, "projectRoot", self.project_root)
        data["provider"] = self.provider
        data["vendorType"] = self.vendor_type
        _put_optional(data, "repositoryURL", self.repository_url)
        _put_optional(data, "runnerImage", self.runner_image)
        _put_optional(data, "terraformVersion", self.terraform_version)
        data.update(
            {
                "administrative": self.administrative,
                "autodeploy": self.autodeploy,
                "autoretry": self.autoretry,
                "localPreviewEnabled": self.local_preview_enabled,
                "protectFromDeletion": self.protect_from_deletion,
                "isDisabled": self.is_disabled,
                "managesStateFile": self.manages_state_file,
                "externalStateAccessEnabled": self.external_state_access_enabled,
                "labels": list(self.labels),
                "additionalProjectGlobs": list(self.additional_project_globs),
                "hooks": self.hooks.to_dict(),
                "attachedContexts": [a.to_dict() for a in self.attached_contexts],
                "attachedPolicies": [a.to_dict() for a in self.attached_policies],
                "dependsOn": [d.to_dict() for d in self.depends_on],
                "attachedAwsIntegrations": [
                    a.to_dict() for a in self.attached_aws_integrations
                ],
                "attachedAzureIntegrations": [
                    a.to_dict() for a in self.attached_azure_integrations
                ],
            }
        )
        return data


# ---------------------------------------------------------------------------
# Contexts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConfigElement:
    """An environment variable or mounted file inside a context.

    Write-only elements are secrets; discovery never sees their value.
    """

    id: str
    type: str
    value: str | None = None
    write_only: bool = False
    description: str | None = None

    @property
    def is_secret(self) -> bool:
        return self.write_only

    @property
    def is_environment_variable(self) -> bool:
        return self.type == CONFIG_TYPE_ENVIRONMENT_VARIABLE

    @property
    def is_file_mount(self) -> bool:
        return self.type == CONFIG_TYPE_FILE_MOUNT

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConfigElement:
        write_only = bool(data.get("writeOnly", False))
        return cls(
            id=data["id"],
            type=data.get("type", CONFIG_TYPE_ENVIRONMENT_VARIABLE),
            value=None if write_only else data.get("value"),
            write_only=write_only,
            description=_optional(data.get("description")),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "type": self.type}
        _put_optional(data, "value", self.value)
        data["writeOnly"] = self.write_only
        _put_optional(data, "description", self.description)
        return data


@dataclass(frozen=True)
class Context:
    id: str
    name: str
    space: str
    description: str | None = None
    labels: tuple[str, ...] = ()
    hooks: Hooks = field(default_factory=Hooks)
    config: tuple[ConfigElement, ...] = ()
    created_at: int = 0
    updated_at: int = 0

    @property
    def secrets(self) -> list[ConfigElement]:
        return [c for c in self.config if c.is_secret]

    @property
    def plain_config(self) -> list[ConfigElement]:
        return [c for c in self.config if not c.is_secret]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Context:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            space=data.get("space", ""),
            description=_optional(data.get("description")),
            labels=_strings(data.get("labels")),
            hooks=Hooks.from_dict(data.get("hooks")),
            config=tuple(ConfigElement.from_dict(c) for c in data.get("config") or []),
            created_at=int(data.get("createdAt") or 0),
            updated_at=int(data.get("updatedAt") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        _put_optional(data, "description", self.description)
        data.update(
            {
                "space": self.space,
                "labels": list(self.labels),
                "hooks": self.hooks.to_dict(),
                "config": [c.to_dict() for c in self.config],
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
            }
        )
        return data


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Policy:
    id: str
    name: str
    space: str
    type: str
    body: str
    description: str | None = None
    labels: tuple[str, ...] = ()
    created_at: int = 0
    updated_at: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Policy:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            space=data.get("space", ""),
            type=data.get("type", ""),
            body=data.get("body", ""),
            description=_optional(data.get("description")),
            labels=_strings(data.get("labels")),
            created_at=int(data.get("createdAt") or 0),
            updated_at=int(data.get("updatedAt") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "name": self.name}
        _put_optional(data, "description", self.description)
        data.update(
            {
                "space": self.space,
                "type": self.type,
                "body": self.body,
                "labels": list(self.labels),
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
            }
        )
        return data


# ---------------------------------------------------------------------------
# Cloud integrations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AWSIntegration:
    id: str
    name: str
    space: str
    role_arn: str = ""
    duration_seconds: int = 0
    generate_credentials_in_worker: bool = False
    external_id: str | None = None
    labels: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AWSIntegration:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            space=data.get("space", ""),
            role_arn=data.get("roleArn", ""),
            duration_seconds=int(data.get("durationSeconds") or 0),
            generate_credentials_in_worker=bool(
                data.get("generateCredentialsInWorker", False)
            ),
            external_id=_optional(data.get("externalId")),
            labels=_strings(data.get("labels")),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "roleArn": self.role_arn,
            "durationSeconds": self.duration_seconds,
            "generateCredentialsInWorker": self.generate_credentials_in_worker,
        }
        _put_optional(data, "externalId", self.external_id)
        data["space"] = self.space
        data["labels"] = list(self.labels)
        return data


@dataclass(frozen=True)
class AzureIntegration:
    id: str
    name: str
    space: str
    tenant_id: str = ""
    application_id: str = ""
    display_name: str = ""
    default_subscription_id: str | None = None
    labels: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AzureIntegration:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            space=data.get("space", ""),
            tenant_id=data.get("tenantId", ""),
            application_id=data.get("applicationId", ""),
            display_name=data.get("displayName", ""),
            default_subscription_id=_optional(data.get("defaultSubscriptionId")),
            labels=_strings(data.get("labels")),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "tenantId": self.tenant_id,
        }
        _put_optional(data, "defaultSubscriptionId", self.default_subscription_id)
        data.update(
            {
                "applicationId": self.application_id,
                "displayName": self.display_name,
                "space": self.space,
                "labels": list(self.labels),
            }
        )
        return data
