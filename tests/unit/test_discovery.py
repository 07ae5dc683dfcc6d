"""Unit tests for the ManifestBuilder discovery pass."""

from unittest.mock import MagicMock

import pytest

from spacebridge.exceptions import APIError, DiscoveryError
from spacebridge.services.discovery import ManifestBuilder


def _make_adapter():
    adapter = MagicMock()
    adapter.url = "https://old.app.spacelift.io"
    adapter.list_spaces.return_value = [
        {"id": "root", "name": "root"},
        {"id": "prod", "name": "prod", "parentSpace": "root"},
    ]
    adapter.list_stacks.return_value = [
        {
            "id": "net",
            "name": "network",
            "space": "prod",
            "managesStateFile": True,
            "vendorConfig": {
                "__typename": "StackConfigVendorTerraform",
                "externalStateAccessEnabled": True,
            },
        },
        {
            "id": "k8s",
            "name": "k8s",
            "space": "prod",
            "vendorConfig": {"__typename": "StackConfigVendorKubernetes"},
        },
    ]
    adapter.list_contexts.return_value = [{"id": "ctx", "name": "ctx", "space": "root"}]
    adapter.list_policies.return_value = [
        {"id": "pol", "name": "pol", "space": "root", "type": "PLAN", "body": "package x"}
    ]
    adapter.list_aws_integrations.return_value = [
        {"id": "aws", "name": "aws", "space": "root", "roleArn": "arn"}
    ]
    adapter.list_azure_integrations.return_value = [
        {"id": "az", "name": "az", "space": "root", "tenantId": "t"}
    ]
    adapter.list_aws_integration_attachments.return_value = [
        {"id": "a1", "stackId": "net", "isModule": False, "read": True, "write": False},
        {"id": "a2", "stackId": "mod", "isModule": True, "read": True, "write": True},
    ]
    adapter.list_azure_integration_attachments.return_value = [
        {"id": "z1", "stackId": "net", "read": True, "write": True, "subscriptionId": "sub"},
        {"id": "z2", "stackId": "unknown-stack", "read": True},
    ]
    return adapter


class TestDiscoverCollections:
    def test_vendor_block_is_lifted(self):
        stacks = ManifestBuilder(_make_adapter()).discover_stacks()

        network, k8s = stacks
        assert network.vendor_type == "StackConfigVendorTerraform"
        assert network.external_state_access_enabled is True
        assert network.has_managed_state
        assert k8s.vendor_type == "StackConfigVendorKubernetes"
        assert k8s.external_state_access_enabled is False

    def test_missing_vendor_block(self):
        adapter = _make_adapter()
        adapter.list_stacks.return_value = [{"id": "s", "name": "s", "vendorConfig": None}]

        (stack,) = ManifestBuilder(adapter).discover_stacks()
        assert stack.vendor_type == ""

    def test_spaces(self):
        spaces = ManifestBuilder(_make_adapter()).discover_spaces()
        assert [s.parent_space for s in spaces] == [None, "root"]

    def test_module_attachments_are_skipped(self):
        grouped = ManifestBuilder(_make_adapter()).discover_aws_attachments("aws")

        assert list(grouped) == ["net"]
        assert grouped["net"][0].integration_id == "aws"
        assert grouped["net"][0].read is True


class TestBuild:
    def test_builds_complete_manifest(self):
        manifest = ManifestBuilder(_make_adapter()).build()

        assert manifest.source_url == "https://old.app.spacelift.io"
        assert manifest.summary() == {
            "spaces": 2,
            "stacks": 2,
            "contexts": 1,
            "policies": 1,
            "awsIntegrations": 1,
            "azureIntegrations": 1,
        }

    def test_attachments_are_merged_into_stacks(self):
        manifest = ManifestBuilder(_make_adapter()).build()

        network = manifest.stacks[0]
        assert [a.id for a in network.attached_aws_integrations] == ["a1"]
        assert [a.subscription_id for a in network.attached_azure_integrations] == ["sub"]
        assert manifest.stacks[1].attached_aws_integrations == ()

    def test_each_attachment_query_runs_once_per_integration(self):
        adapter = _make_adapter()
        ManifestBuilder(adapter).build()

        adapter.list_aws_integration_attachments.assert_called_once_with("aws")
        adapter.list_azure_integration_attachments.assert_called_once_with("az")

    def test_failure_is_all_or_nothing(self):
        adapter = _make_adapter()
        adapter.list_policies.side_effect = APIError("GraphQL error: forbidden")

        with pytest.raises(DiscoveryError, match="failed to discover policies"):
            ManifestBuilder(adapter).build()
        adapter.list_stacks.assert_not_called()

    def test_malformed_record_is_a_discovery_error(self):
        adapter = _make_adapter()
        adapter.list_contexts.return_value = [{"name": "no id"}]

        with pytest.raises(DiscoveryError, match="contexts"):
            ManifestBuilder(adapter).build()

    def test_attachment_failure_names_integration(self):
        adapter = _make_adapter()
        adapter.list_azure_integration_attachments.side_effect = APIError("boom")

        with pytest.raises(DiscoveryError, match="Azure integration attachments for az"):
            ManifestBuilder(adapter).build()
