"""Classification of source stacks for state migration.

Every source stack gets exactly one :class:`Disposition`.  Rules are tried
in order and the first that applies wins:

1. state is not managed by Spacelift: skipped, self-managed
2. vendor has no transferable state: skipped, non-applicable vendor
3. external state access is disabled: blocked, no access
4. no destination stack with the same name: blocked, not in destination
5. otherwise: candidate, paired with the destination stack of that name
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from spacebridge.models import Stack
from spacebridge.utils.logging import log_with_context


class Disposition(str, Enum):
    """Outcome of classifying one source stack."""

    SKIPPED_SELF_MANAGED = "skipped_self_managed"
    SKIPPED_NON_APPLICABLE = "skipped_non_applicable"
    BLOCKED_NO_ACCESS = "blocked_no_access"
    BLOCKED_NOT_IN_DESTINATION = "blocked_not_in_destination"
    CANDIDATE = "candidate"

    @property
    def is_skipped(self) -> bool:
        return self in (
            Disposition.SKIPPED_SELF_MANAGED,
            Disposition.SKIPPED_NON_APPLICABLE,
        )

    @property
    def is_blocked(self) -> bool:
        return self in (
            Disposition.BLOCKED_NO_ACCESS,
            Disposition.BLOCKED_NOT_IN_DESTINATION,
        )


@dataclass(frozen=True)
class StackClassification:
    """A source stack, its disposition and (for candidates) its pair."""

    source: Stack
    disposition: Disposition
    destination: Stack | None = None

    @property
    def name(self) -> str:
        return self.source.name


def index_by_name(stacks: Iterable[Stack]) -> dict[str, Stack]:
    """Index destination stacks by name.

    When names collide the stack discovered last wins the pairing.  Each
    collision is logged so the operator can see which stack was chosen.
    """
    index: dict[str, Stack] = {}
    for stack in stacks:
        previous = index.get(stack.name)
        if previous is not None:
            log_with_context(
                logging.WARNING,
                f"Destination has more than one stack named '{stack.name}' "
                f"({previous.id}, {stack.id}); pairing with {stack.id}",
                stack=stack.name,
            )
        index[stack.name] = stack
    return index


def classify_stack(
    stack: Stack, destination_by_name: dict[str, Stack] | None
) -> StackClassification:
    """Classify one source stack.

    Args:
        stack: The source stack.
        destination_by_name: Destination stacks keyed by name, or None when
            no destination account is available.  Without a destination the
            not-in-destination rule cannot apply and otherwise eligible
            stacks are reported as candidates with no pair.

    Returns:
        The classification.
    """
    if not stack.manages_state_file:
        return StackClassification(stack, Disposition.SKIPPED_SELF_MANAGED)
    if not stack.is_terraform:
        return StackClassification(stack, Disposition.SKIPPED_NON_APPLICABLE)
    if not stack.external_state_access_enabled:
        return StackClassification(stack, Disposition.BLOCKED_NO_ACCESS)
    if destination_by_name is None:
        return StackClassification(stack, Disposition.CANDIDATE)

    destination = destination_by_name.get(stack.name)
    if destination is None:
        return StackClassification(stack, Disposition.BLOCKED_NOT_IN_DESTINATION)
    return StackClassification(stack, Disposition.CANDIDATE, destination)


@dataclass
class MigrationPlan:
    """Classifications for every source stack, in source order."""

    classifications: list[StackClassification] = field(default_factory=list)

    def by_disposition(self, disposition: Disposition) -> list[StackClassification]:
        return [c for c in self.classifications if c.disposition is disposition]

    @property
    def candidates(self) -> list[StackClassification]:
        return self.by_disposition(Disposition.CANDIDATE)

    @property
    def blocked(self) -> list[StackClassification]:
        return [c for c in self.classifications if c.disposition.is_blocked]

    @property
    def skipped(self) -> list[StackClassification]:
        return [c for c in self.classifications if c.disposition.is_skipped]

    def counts(self) -> dict[str, int]:
        """Number of stacks per disposition value."""
        counts = {d.value: 0 for d in Disposition}
        for classification in self.classifications:
            counts[classification.disposition.value] += 1
        return counts

    def __len__(self) -> int:
        return len(self.classifications)


def build_plan(
    source_stacks: Iterable[Stack],
    destination_stacks: Iterable[Stack] | None = None,
) -> MigrationPlan:
    """Classify every source stack against the destination stacks.

    Args:
        source_stacks: Stacks from the source account.
        destination_stacks: Stacks from the destination account, or None to
            classify without pairing.

    Returns:
        A MigrationPlan covering every source stack.
    """
    destination_by_name = (
        index_by_name(destination_stacks) if destination_stacks is not None else None
    )
    plan = MigrationPlan(
        [classify_stack(stack, destination_by_name) for stack in source_stacks]
    )
    log_with_context(
        logging.DEBUG,
        f"Classified {len(plan)} stacks: {len(plan.candidates)} candidates, "
        f"{len(plan.blocked)} blocked, {len(plan.skipped)} skipped",
    )
    return plan
