"""Unit tests for state migration classification."""

import logging

import pytest
from conftest import make_stack, managed_stack

from spacebridge.core.planner import (
    Disposition,
    build_plan,
    classify_stack,
    index_by_name,
)


class TestClassifyStack:
    def test_self_managed_is_skipped(self):
        stack = make_stack("s", manages_state_file=False)
        assert classify_stack(stack, {}).disposition is Disposition.SKIPPED_SELF_MANAGED

    def test_non_terraform_vendor_is_skipped(self):
        stack = managed_stack("s", vendor_type="StackConfigVendorPulumi")
        assert classify_stack(stack, {}).disposition is Disposition.SKIPPED_NON_APPLICABLE

    def test_self_managed_rule_wins_over_vendor_rule(self):
        stack = make_stack("s", vendor_type="StackConfigVendorPulumi")
        assert classify_stack(stack, {}).disposition is Disposition.SKIPPED_SELF_MANAGED

    def test_no_external_access_is_blocked(self):
        stack = managed_stack("s", external_state_access_enabled=False)
        # Access is checked before the destination match
        destination = {"s": make_stack("s")}
        assert classify_stack(stack, destination).disposition is Disposition.BLOCKED_NO_ACCESS

    def test_missing_destination_is_blocked(self):
        stack = managed_stack("s")
        assert (
            classify_stack(stack, {"other": make_stack("other")}).disposition
            is Disposition.BLOCKED_NOT_IN_DESTINATION
        )

    def test_candidate_is_paired_by_name(self):
        destination = make_stack("s", id="dest-id")
        classification = classify_stack(managed_stack("s", id="src-id"), {"s": destination})

        assert classification.disposition is Disposition.CANDIDATE
        assert classification.destination is destination
        assert classification.name == "s"

    def test_without_destination_account(self):
        classification = classify_stack(managed_stack("s"), None)

        assert classification.disposition is Disposition.CANDIDATE
        assert classification.destination is None

    def test_terragrunt_is_eligible(self):
        stack = managed_stack("s", vendor_type="StackConfigVendorTerragrunt")
        assert classify_stack(stack, {"s": make_stack("s")}).disposition is Disposition.CANDIDATE


class TestIndexByName:
    def test_last_duplicate_wins(self, caplog):
        first = make_stack("dup", id="first")
        second = make_stack("dup", id="second")

        with caplog.at_level(logging.WARNING, logger="spacebridge"):
            index = index_by_name([first, second])

        assert index["dup"] is second
        assert "more than one stack named 'dup'" in caplog.text


class TestBuildPlan:
    @pytest.fixture()
    def plan(self):
        source = [
            managed_stack("ready"),
            managed_stack("locked-out", external_state_access_enabled=False),
            managed_stack("not-created"),
            make_stack("external"),
            managed_stack("helm", vendor_type="StackConfigVendorKubernetes"),
        ]
        destination = [make_stack("ready", id="ready-dest"), make_stack("external")]
        return build_plan(source, destination)

    def test_every_stack_classified_once(self, plan):
        assert len(plan) == 5
        assert sum(plan.counts().values()) == 5

    def test_groups(self, plan):
        assert [c.name for c in plan.candidates] == ["ready"]
        assert [c.name for c in plan.blocked] == ["locked-out", "not-created"]
        assert [c.name for c in plan.skipped] == ["external", "helm"]

    def test_counts_cover_all_dispositions(self, plan):
        assert plan.counts() == {
            "skipped_self_managed": 1,
            "skipped_non_applicable": 1,
            "blocked_no_access": 1,
            "blocked_not_in_destination": 1,
            "candidate": 1,
        }

    def test_by_disposition(self, plan):
        (entry,) = plan.by_disposition(Disposition.BLOCKED_NO_ACCESS)
        assert entry.name == "locked-out"

    def test_candidate_destination(self, plan):
        assert plan.candidates[0].destination.id == "ready-dest"

    def test_infra_prod_scenario(self):
        stack = managed_stack("vpc", space="infra-prod-01")
        plan = build_plan([stack], [make_stack("vpc", id="new-vpc")])

        assert plan.candidates[0].source is stack
        assert plan.candidates[0].destination.id == "new-vpc"

    def test_empty_source(self):
        plan = build_plan([], [])
        assert len(plan) == 0
        assert plan.candidates == []
