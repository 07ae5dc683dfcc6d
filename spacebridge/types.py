"""Shared type definitions for the Spacelift account migration tool.

Provides TypedDicts for the GraphQL response shapes returned by the
Spacelift API and for the manifest JSON document written by ``export``.
"""

from __future__ import annotations

from typing import TypedDict

# ---------------------------------------------------------------------------
# GraphQL wire types
# ---------------------------------------------------------------------------


class WireHooks(TypedDict, total=False):
    """Lifecycle hook commands keyed by phase."""

    afterApply: list[str]
    beforeApply: list[str]
    afterInit: list[str]
    beforeInit: list[str]
    afterPlan: list[str]
    beforePlan: list[str]
    afterPerform: list[str]
    beforePerform: list[str]
    afterDestroy: list[str]
    beforeDestroy: list[str]
    afterRun: list[str]


class WireSpace(TypedDict, total=False):
    """A space record from the ``spaces`` query."""

    id: str
    name: str
    description: str
    parentSpace: str | None
    inheritEntities: bool
    labels: list[str]


class WireVendorConfig(TypedDict, total=False):
    """The vendor discriminator block of a stack."""

    __typename: str
    externalStateAccessEnabled: bool


class WireContextAttachment(TypedDict, total=False):
    id: str
    contextId: str
    priority: int


class WirePolicyAttachment(TypedDict, total=False):
    id: str
    policyId: str


class WireDependsOnStack(TypedDict, total=False):
    id: str


class WireStackDependency(TypedDict, total=False):
    id: str
    dependsOnStack: WireDependsOnStack


class WireStack(TypedDict, total=False):
    """A stack record from the ``stacks`` query."""

    id: str
    name: str
    description: str | None
    space: str
    branch: str
    repository: str
    namespace: str
    projectRoot: str | None
    provider: str
    repositoryURL: str | None
    runnerImage: str | None
    terraformVersion: str | None
    administrative: bool
    autodeploy: bool
    autoretry: bool
    localPreviewEnabled: bool
    protectFromDeletion: bool
    isDisabled: bool
    managesStateFile: bool
    labels: list[str]
    additionalProjectGlobs: list[str]
    vendorConfig: WireVendorConfig | None
    hooks: WireHooks | None
    attachedContexts: list[WireContextAttachment]
    attachedPolicies: list[WirePolicyAttachment]
    dependsOn: list[WireStackDependency]


class WireConfigElement(TypedDict, total=False):
    id: str
    type: str
    value: str | None
    writeOnly: bool
    description: str | None


class WireContext(TypedDict, total=False):
    """A context record from the ``contexts`` query."""

    id: str
    name: str
    description: str | None
    space: str
    labels: list[str]
    createdAt: int
    updatedAt: int
    hooks: WireHooks | None
    config: list[WireConfigElement]


class WirePolicy(TypedDict, total=False):
    """A policy record from the ``policies`` query."""

    id: str
    name: str
    description: str | None
    space: str
    type: str
    body: str
    labels: list[str]
    createdAt: int
    updatedAt: int


class WireAWSIntegration(TypedDict, total=False):
    id: str
    name: str
    roleArn: str
    durationSeconds: int
    generateCredentialsInWorker: bool
    externalId: str | None
    space: str
    labels: list[str]


class WireAzureIntegration(TypedDict, total=False):
    id: str
    name: str
    tenantId: str
    defaultSubscriptionId: str | None
    applicationId: str
    displayName: str
    space: str
    labels: list[str]


class WireIntegrationAttachment(TypedDict, total=False):
    """A stack attachment of an AWS or Azure integration."""

    id: str
    stackId: str
    isModule: bool
    read: bool
    write: bool
    subscriptionId: str | None


class StateUploadTarget(TypedDict):
    """Pre-signed upload location and the object id to import from."""

    url: str
    objectId: str


# ---------------------------------------------------------------------------
# Manifest document
# ---------------------------------------------------------------------------


class ManifestSummary(TypedDict):
    """Resource counts per manifest collection."""

    spaces: int
    stacks: int
    contexts: int
    policies: int
    awsIntegrations: int
    azureIntegrations: int
