"""Unit tests for the domain model dataclasses."""

import pytest

from spacebridge.models import (
    AWSIntegration,
    AzureIntegration,
    ConfigElement,
    Context,
    Hooks,
    IntegrationAttachment,
    Space,
    Stack,
    StackDependency,
)


class TestSpace:
    def test_from_dict(self):
        space = Space.from_dict(
            {
                "id": "prod-01",
                "name": "prod",
                "parentSpace": "root",
                "inheritEntities": True,
                "labels": ["a", "b"],
            }
        )
        assert space.parent_space == "root"
        assert space.inherit_entities is True
        assert space.labels == ("a", "b")
        assert space.description == ""

    def test_legacy_parent_key(self):
        assert Space.from_dict({"id": "x", "parentSpaceId": "root"}).parent_space == "root"

    def test_empty_parent_is_none(self):
        assert Space.from_dict({"id": "x", "parentSpace": ""}).parent_space is None

    def test_to_dict_omits_missing_parent(self):
        assert "parentSpace" not in Space(id="root", name="root").to_dict()

    def test_is_root(self):
        assert Space(id="root", name="root").is_root
        assert not Space(id="other", name="root").is_root


class TestHooks:
    def test_from_dict_maps_phases(self):
        hooks = Hooks.from_dict({"beforeInit": ["echo hi"], "afterRun": ["cleanup"]})

        assert hooks.before_init == ("echo hi",)
        assert hooks.after_run == ("cleanup",)
        assert not hooks.is_empty

    def test_none_is_empty(self):
        assert Hooks.from_dict(None).is_empty

    def test_to_dict_lists_every_phase(self):
        data = Hooks(after_apply=("x",)).to_dict()

        assert len(data) == 11
        assert data["afterApply"] == ["x"]
        assert data["beforeDestroy"] == []


class TestStack:
    def test_managed_state_requires_terraform_vendor(self):
        terraform = Stack(
            id="a",
            name="a",
            space="root",
            vendor_type="StackConfigVendorTerraform",
            manages_state_file=True,
        )
        pulumi = Stack(
            id="b",
            name="b",
            space="root",
            vendor_type="StackConfigVendorPulumi",
            manages_state_file=True,
        )
        assert terraform.has_managed_state
        assert not pulumi.has_managed_state

    def test_terragrunt_is_terraform_family(self):
        stack = Stack(id="a", name="a", space="root", vendor_type="StackConfigVendorTerragrunt")
        assert stack.is_terraform

    def test_from_dict_reads_attachments(self):
        stack = Stack.from_dict(
            {
                "id": "s",
                "name": "s",
                "space": "root",
                "attachedContexts": [{"id": "c1", "contextId": "ctx", "priority": 3}],
                "attachedPolicies": [{"id": "p1", "policyId": "pol"}],
                "dependsOn": [{"id": "d1", "dependsOnStack": {"id": "other"}}],
            }
        )
        assert stack.attached_contexts[0].priority == 3
        assert stack.attached_policies[0].policy_id == "pol"
        assert stack.depends_on[0].depends_on_stack_id == "other"

    def test_from_dict_requires_id(self):
        with pytest.raises(KeyError):
            Stack.from_dict({"name": "x"})

    def test_empty_strings_become_none(self):
        stack = Stack.from_dict({"id": "s", "projectRoot": "", "runnerImage": ""})
        assert stack.project_root is None
        assert stack.runner_image is None


class TestStackDependency:
    @pytest.mark.parametrize(
        "data",
        [
            "other",
            {"dependsOnStackId": "other"},
            {"dependsOnStack": {"id": "other"}},
        ],
    )
    def test_accepted_shapes(self, data):
        assert StackDependency.from_dict(data).depends_on_stack_id == "other"


class TestConfigElement:
    def test_write_only_value_is_dropped(self):
        element = ConfigElement.from_dict(
            {"id": "TOKEN", "type": "ENVIRONMENT_VARIABLE", "value": "leak", "writeOnly": True}
        )
        assert element.value is None
        assert element.is_secret

    def test_file_mount(self):
        element = ConfigElement.from_dict({"id": "cfg.json", "type": "FILE_MOUNT"})
        assert element.is_file_mount
        assert not element.is_environment_variable

    def test_default_type_is_environment_variable(self):
        assert ConfigElement.from_dict({"id": "X"}).is_environment_variable


class TestContext:
    def test_secrets_and_plain_config(self):
        context = Context(
            id="c",
            name="c",
            space="root",
            config=(
                ConfigElement(id="A", type="ENVIRONMENT_VARIABLE", value="1"),
                ConfigElement(id="B", type="ENVIRONMENT_VARIABLE", write_only=True),
            ),
        )
        assert [e.id for e in context.secrets] == ["B"]
        assert [e.id for e in context.plain_config] == ["A"]

    def test_null_timestamps(self):
        context = Context.from_dict({"id": "c", "createdAt": None})
        assert context.created_at == 0


class TestIntegrations:
    def test_aws_round_trip(self):
        aws = AWSIntegration(
            id="i", name="n", space="root", role_arn="arn", duration_seconds=900, external_id="e"
        )
        assert AWSIntegration.from_dict(aws.to_dict()) == aws

    def test_azure_optional_subscription(self):
        azure = AzureIntegration.from_dict({"id": "i", "tenantId": "t"})
        assert azure.default_subscription_id is None
        assert "defaultSubscriptionId" not in azure.to_dict()

    def test_attachment_subscription(self):
        attachment = IntegrationAttachment.from_dict(
            {"integrationId": "az", "read": True, "subscriptionId": "sub"}
        )
        assert attachment.read and not attachment.write
        assert attachment.subscription_id == "sub"
