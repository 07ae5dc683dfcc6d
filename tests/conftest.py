"""Shared test fixtures for the spacebridge test suite."""

import logging

import pytest

from spacebridge.core.manifest import Manifest
from spacebridge.models import (
    AWSIntegration,
    AzureIntegration,
    ConfigElement,
    Context,
    ContextAttachment,
    IntegrationAttachment,
    Policy,
    PolicyAttachment,
    Space,
    Stack,
    StackDependency,
)

TERRAFORM = "StackConfigVendorTerraform"


def make_stack(name, space="root", **kwargs):
    """Build a Stack with sensible defaults; ``id`` defaults to ``name``."""
    kwargs.setdefault("id", name)
    kwargs.setdefault("vendor_type", TERRAFORM)
    kwargs.setdefault("repository", "infra")
    kwargs.setdefault("branch", "main")
    return Stack(name=name, space=space, **kwargs)


def managed_stack(name, space="root", **kwargs):
    """A Terraform stack whose state is managed and downloadable."""
    kwargs.setdefault("manages_state_file", True)
    kwargs.setdefault("external_state_access_enabled", True)
    return make_stack(name, space, **kwargs)


@pytest.fixture(autouse=True)
def _clean_logger():
    """Remove handlers from the spacebridge logger around every test."""
    logger = logging.getLogger("spacebridge")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    yield
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture()
def sample_spaces():
    """root -> infra -> infra-prod, root -> apps, root -> shared."""
    return [
        Space(id="root", name="root"),
        Space(id="infra-01", name="infra", parent_space="root"),
        Space(id="infra-prod-01", name="infra-prod", parent_space="infra-01"),
        Space(id="apps-01", name="apps", parent_space="root", labels=("team",)),
        Space(id="shared-01", name="shared", parent_space="root"),
    ]


@pytest.fixture()
def sample_manifest(sample_spaces):
    """A small account covering every resource type.

    ``network`` (infra-prod) uses the ``shared-env`` context and the
    ``shared-plan`` policy, both of which live in the ``shared`` space.
    """
    contexts = (
        Context(
            id="shared-env",
            name="shared-env",
            space="shared-01",
            config=(
                ConfigElement(id="REGION", type="ENVIRONMENT_VARIABLE", value="eu-west-1"),
                ConfigElement(id="TOKEN", type="ENVIRONMENT_VARIABLE", write_only=True),
            ),
        ),
        Context(id="apps-env", name="apps-env", space="apps-01"),
    )
    policies = (
        Policy(id="shared-plan", name="shared-plan", space="shared-01", type="PLAN", body="package spacelift"),
        Policy(id="apps-push", name="apps-push", space="apps-01", type="GIT_PUSH", body="package spacelift"),
    )
    stacks = (
        managed_stack(
            "network",
            space="infra-prod-01",
            attached_contexts=(ContextAttachment(id="a1", context_id="shared-env", priority=1),),
            attached_policies=(PolicyAttachment(id="p1", policy_id="shared-plan"),),
            attached_aws_integrations=(
                IntegrationAttachment(id="i1", integration_id="aws-root", read=True, write=True),
            ),
        ),
        make_stack(
            "frontend",
            space="apps-01",
            autodeploy=True,
            depends_on=(StackDependency(id="d1", depends_on_stack_id="network"),),
        ),
        make_stack("base", space="infra-01"),
    )
    return Manifest(
        source_url="https://old.app.spacelift.io",
        spaces=tuple(sample_spaces),
        stacks=stacks,
        contexts=contexts,
        policies=policies,
        aws_integrations=(
            AWSIntegration(id="aws-root", name="aws-root", space="root", role_arn="arn:aws:iam::1:role/x"),
            AWSIntegration(id="aws-apps", name="aws-apps", space="apps-01", role_arn="arn:aws:iam::1:role/y"),
        ),
        azure_integrations=(
            AzureIntegration(id="az-infra", name="az-infra", space="infra-01", tenant_id="t-1"),
        ),
    )
