"""
Discovery of every migratable resource in one Spacelift account
"""

from __future__ import annotations

import dataclasses
import functools
import logging
from typing import Any, Callable, TypeVar

from spacebridge.core.manifest import Manifest
from spacebridge.exceptions import DiscoveryError, SpacebridgeError
from spacebridge.models import (
    AWSIntegration,
    AzureIntegration,
    Context,
    IntegrationAttachment,
    Policy,
    Space,
    Stack,
)
from spacebridge.services.spacelift_adapter import SpaceliftAdapter
from spacebridge.types import WireIntegrationAttachment, WireStack
from spacebridge.utils.logging import log_with_context

T = TypeVar("T")


def _stack_from_wire(wire: WireStack) -> Stack:
    """Map a stack record, lifting the vendor block to top-level fields."""
    vendor = wire.get("vendorConfig") or {}
    data: dict[str, Any] = dict(wire)
    data["vendorType"] = vendor.get("__typename", "")
    data["externalStateAccessEnabled"] = bool(
        vendor.get("externalStateAccessEnabled", False)
    )
    return Stack.from_dict(data)


def _attachment_from_wire(
    wire: WireIntegrationAttachment, integration_id: str
) -> IntegrationAttachment:
    return IntegrationAttachment(
        id=wire.get("id", ""),
        integration_id=integration_id,
        read=bool(wire.get("read", False)),
        write=bool(wire.get("write", False)),
        subscription_id=wire.get("subscriptionId") or None,
    )


class ManifestBuilder:
    """Builds a :class:`Manifest` from one account.

    Each ``discover_*`` method issues a single query and maps the result.
    :meth:`build` runs all of them and is all-or-nothing: the first failure
    is raised as :class:`DiscoveryError` naming the failing step, and no
    partial manifest is returned.
    """

    def __init__(self, adapter: SpaceliftAdapter) -> None:
        self.adapter = adapter

    # -- Individual collections ----------------------------------------------

    def discover_spaces(self) -> list[Space]:
        return [Space.from_dict(s) for s in self.adapter.list_spaces()]

    def discover_stacks(self) -> list[Stack]:
        return [_stack_from_wire(s) for s in self.adapter.list_stacks()]

    def discover_contexts(self) -> list[Context]:
        return [Context.from_dict(c) for c in self.adapter.list_contexts()]

    def discover_policies(self) -> list[Policy]:
        return [Policy.from_dict(p) for p in self.adapter.list_policies()]

    def discover_aws_integrations(self) -> list[AWSIntegration]:
        return [AWSIntegration.from_dict(i) for i in self.adapter.list_aws_integrations()]

    def discover_azure_integrations(self) -> list[AzureIntegration]:
        return [
            AzureIntegration.from_dict(i)
            for i in self.adapter.list_azure_integrations()
        ]

    def discover_aws_attachments(
        self, integration_id: str
    ) -> dict[str, list[IntegrationAttachment]]:
        """Stack attachments of one AWS integration, keyed by stack id."""
        return self._group_attachments(
            self.adapter.list_aws_integration_attachments(integration_id),
            integration_id,
        )

    def discover_azure_attachments(
        self, integration_id: str
    ) -> dict[str, list[IntegrationAttachment]]:
        """Stack attachments of one Azure integration, keyed by stack id."""
        return self._group_attachments(
            self.adapter.list_azure_integration_attachments(integration_id),
            integration_id,
        )

    @staticmethod
    def _group_attachments(
        records: list[WireIntegrationAttachment], integration_id: str
    ) -> dict[str, list[IntegrationAttachment]]:
        grouped: dict[str, list[IntegrationAttachment]] = {}
        for record in records:
            # Modules are not stacks and are not migrated
            if record.get("isModule"):
                continue
            stack_id = record.get("stackId")
            if not stack_id:
                continue
            grouped.setdefault(stack_id, []).append(
                _attachment_from_wire(record, integration_id)
            )
        return grouped

    # -- Full build -----------------------------------------------------------

    def _step(self, what: str, fetch: Callable[[], T]) -> T:
        log_with_context(logging.DEBUG, f"Discovering {what}...")
        try:
            return fetch()
        except (SpacebridgeError, KeyError, TypeError, ValueError) as e:
            raise DiscoveryError(f"failed to discover {what}: {e}") from e

    def build(self) -> Manifest:
        """Discover every collection and join integration attachments.

        Returns:
            A complete Manifest.

        Raises:
            DiscoveryError: If any query fails.
        """
        spaces = self._step("spaces", self.discover_spaces)
        contexts = self._step("contexts", self.discover_contexts)
        policies = self._step("policies", self.discover_policies)
        stacks = self._step("stacks", self.discover_stacks)
        aws_integrations = self._step(
            "AWS integrations", self.discover_aws_integrations
        )
        azure_integrations = self._step(
            "Azure integrations", self.discover_azure_integrations
        )

        # One index for the whole pass keeps each merge O(1)
        stack_index = {stack.id: i for i, stack in enumerate(stacks)}
        aws_attached: dict[int, list[IntegrationAttachment]] = {}
        azure_attached: dict[int, list[IntegrationAttachment]] = {}

        for integration in aws_integrations:
            grouped = self._step(
                f"AWS integration attachments for {integration.name}",
                functools.partial(self.discover_aws_attachments, integration.id),
            )
            self._merge(grouped, stack_index, aws_attached)

        for integration in azure_integrations:
            grouped = self._step(
                f"Azure integration attachments for {integration.name}",
                functools.partial(self.discover_azure_attachments, integration.id),
            )
            self._merge(grouped, stack_index, azure_attached)

        for i in set(aws_attached) | set(azure_attached):
            stacks[i] = dataclasses.replace(
                stacks[i],
                attached_aws_integrations=stacks[i].attached_aws_integrations
                + tuple(aws_attached.get(i, [])),
                attached_azure_integrations=stacks[i].attached_azure_integrations
                + tuple(azure_attached.get(i, [])),
            )

        manifest = Manifest(
            source_url=self.adapter.url,
            spaces=tuple(spaces),
            stacks=tuple(stacks),
            contexts=tuple(contexts),
            policies=tuple(policies),
            aws_integrations=tuple(aws_integrations),
            azure_integrations=tuple(azure_integrations),
        )
        summary = manifest.summary()
        log_with_context(
            logging.INFO,
            "Discovered "
            + ", ".join(f"{count} {kind}" for kind, count in summary.items()),
        )
        return manifest

    @staticmethod
    def _merge(
        grouped: dict[str, list[IntegrationAttachment]],
        stack_index: dict[str, int],
        into: dict[int, list[IntegrationAttachment]],
    ) -> None:
        for stack_id, attachments in grouped.items():
            index = stack_index.get(stack_id)
            if index is None:
                log_with_context(
                    logging.DEBUG,
                    f"Integration attached to unknown stack {stack_id}; ignoring",
                )
                continue
            into.setdefault(index, []).extend(attachments)
