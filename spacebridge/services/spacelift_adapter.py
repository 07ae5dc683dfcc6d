"""Typed adapter for the Spacelift GraphQL API.

Wraps a :class:`~spacebridge.utils.api.GraphQLClient` with one method per
operation, so callers never handle GraphQL documents or response nesting
directly and tests can mock a single object.

The adapter returns raw wire dicts for discovery queries; mapping into the
domain model happens in :mod:`spacebridge.services.discovery`.  It adds no
retry logic: every failure surfaces as :class:`~spacebridge.exceptions.APIError`.
"""

from __future__ import annotations

from typing import Any

from spacebridge.exceptions import APIError
from spacebridge.models import Stack
from spacebridge.services import queries
from spacebridge.types import (
    StateUploadTarget,
    WireAWSIntegration,
    WireAzureIntegration,
    WireContext,
    WireIntegrationAttachment,
    WirePolicy,
    WireSpace,
    WireStack,
)
from spacebridge.utils.api import GraphQLClient


def _stack_update_variables(stack: Stack) -> dict[str, Any]:
    # stackUpdate requires the identifying fields to be re-sent
    return {
        "id": stack.id,
        "administrative": stack.administrative,
        "branch": stack.branch,
        "name": stack.name,
        "repository": stack.repository,
    }


class SpaceliftAdapter:
    """Thin typed wrapper around one Spacelift account."""

    def __init__(self, client: GraphQLClient) -> None:
        self._client = client

    @property
    def url(self) -> str:
        """Base URL of the account this adapter talks to."""
        return self._client.url

    # -- Discovery ------------------------------------------------------------

    def list_spaces(self) -> list[WireSpace]:
        return self._client.query(queries.SPACES_QUERY).get("spaces") or []

    def list_stacks(self) -> list[WireStack]:
        return self._client.query(queries.STACKS_QUERY).get("stacks") or []

    def list_contexts(self) -> list[WireContext]:
        return self._client.query(queries.CONTEXTS_QUERY).get("contexts") or []

    def list_policies(self) -> list[WirePolicy]:
        return self._client.query(queries.POLICIES_QUERY).get("policies") or []

    def list_aws_integrations(self) -> list[WireAWSIntegration]:
        data = self._client.query(queries.AWS_INTEGRATIONS_QUERY)
        return data.get("awsIntegrations") or []

    def list_azure_integrations(self) -> list[WireAzureIntegration]:
        data = self._client.query(queries.AZURE_INTEGRATIONS_QUERY)
        return data.get("azureIntegrations") or []

    def list_aws_integration_attachments(
        self, integration_id: str
    ) -> list[WireIntegrationAttachment]:
        """List the stacks (and modules) an AWS integration is attached to.

        Args:
            integration_id: The integration id.

        Returns:
            Attachment records; ``isModule`` marks module attachments.
        """
        data = self._client.query(
            queries.AWS_INTEGRATION_ATTACHMENTS_QUERY, {"id": integration_id}
        )
        return (data.get("awsIntegration") or {}).get("attachedStacks") or []

    def list_azure_integration_attachments(
        self, integration_id: str
    ) -> list[WireIntegrationAttachment]:
        """List the stacks (and modules) an Azure integration is attached to.

        Args:
            integration_id: The integration id.

        Returns:
            Attachment records, including the per-stack ``subscriptionId``.
        """
        data = self._client.query(
            queries.AZURE_INTEGRATION_ATTACHMENTS_QUERY, {"id": integration_id}
        )
        return (data.get("azureIntegration") or {}).get("attachedStacks") or []

    # -- Stack updates --------------------------------------------------------

    def enable_external_state_access(self, stack: Stack) -> None:
        """Turn on external state access so the state can be downloaded."""
        self._client.mutate(
            queries.ENABLE_EXTERNAL_STATE_ACCESS_MUTATION,
            _stack_update_variables(stack),
        )

    def enable_stack(self, stack: Stack) -> None:
        """Clear the disabled flag on a stack."""
        self._client.mutate(queries.ENABLE_STACK_MUTATION, _stack_update_variables(stack))

    # -- State transfer -------------------------------------------------------

    def get_state_download_url(self, stack_id: str) -> str:
        """Get a pre-signed URL for downloading a stack's current state.

        Args:
            stack_id: Source stack id.

        Returns:
            The pre-signed URL.

        Raises:
            APIError: If the request fails or no URL is returned.
        """
        data = self._client.mutate(
            queries.STATE_DOWNLOAD_URL_MUTATION, {"stackId": stack_id}
        )
        url = (data.get("stateDownloadUrl") or {}).get("url")
        if not url:
            raise APIError(f"no state download URL returned for stack {stack_id}")
        return url

    def get_state_upload_url(self, stack_id: str) -> StateUploadTarget:
        """Get a pre-signed upload URL and the object id to import from.

        The upload URL is not bound to a stack; ``stack_id`` is only used in
        error messages.

        Args:
            stack_id: Destination stack id.

        Returns:
            ``{"url": ..., "objectId": ...}``

        Raises:
            APIError: If the request fails or either value is missing.
        """
        data = self._client.mutate(queries.STATE_UPLOAD_URL_MUTATION)
        target = data.get("stateUploadUrl") or {}
        if not target.get("url") or not target.get("objectId"):
            raise APIError(f"no state upload URL returned for stack {stack_id}")
        return {"url": target["url"], "objectId": target["objectId"]}

    def lock_stack(self, stack_id: str) -> None:
        self._client.mutate(queries.STACK_LOCK_MUTATION, {"id": stack_id})

    def unlock_stack(self, stack_id: str) -> None:
        self._client.mutate(queries.STACK_UNLOCK_MUTATION, {"id": stack_id})

    def import_managed_state(self, stack_id: str, object_id: str) -> None:
        """Import an uploaded state object into a stack's managed state.

        The stack must be locked by the caller.
        """
        self._client.mutate(
            queries.IMPORT_MANAGED_STATE_MUTATION,
            {"stackId": stack_id, "state": object_id},
        )
