"""Projection of a manifest onto one space subtree.

The projection keeps everything needed to recreate the subtree in another
account:

* the target space, its descendants and its ancestors up to root;
* stacks in those spaces;
* contexts and policies in those spaces, plus any context or policy a kept
  stack is attached to wherever it lives (and that space's ancestors);
* AWS and Azure integrations visible to the subtree, which also includes
  integrations declared on the target's ancestors.

Integrations use a different inclusion set from the other resources; see
:func:`filter_manifest_by_space`.
"""

from __future__ import annotations

import logging
from typing import Iterable

from spacebridge.constants import ROOT_SPACE_ID
from spacebridge.core.hierarchy import SpaceHierarchy
from spacebridge.core.manifest import Manifest
from spacebridge.models import Stack
from spacebridge.utils.logging import log_with_context


def filter_manifest_by_space(
    manifest: Manifest,
    space_id: str,
    hierarchy: SpaceHierarchy | None = None,
) -> Manifest:
    """Return the sub-manifest needed to migrate ``space_id`` and its children.

    Args:
        manifest: The full manifest.  It is not modified.
        space_id: A resolved space id (see
            :meth:`SpaceHierarchy.resolve_filter_token`).
        hierarchy: Optional prebuilt hierarchy for ``manifest.spaces``.

    Returns:
        A new Manifest.  Each collection keeps the order of the input.
    """
    if hierarchy is None:
        hierarchy = SpaceHierarchy(manifest.spaces)

    chain = hierarchy.ancestor_chain(space_id)
    included: set[str] = hierarchy.descendant_closure(space_id)
    included.add(space_id)
    included.update(chain)

    # Integrations declared above the target are inherited by it
    ancestors: set[str] = set(chain)
    ancestors.add(ROOT_SPACE_ID)

    stacks = []
    context_ids: set[str] = set()
    policy_ids: set[str] = set()
    for stack in manifest.stacks:
        if stack.space not in included:
            continue
        stacks.append(stack)
        context_ids.update(a.context_id for a in stack.attached_contexts)
        policy_ids.update(a.policy_id for a in stack.attached_policies)

    # Attached contexts and policies may live outside the subtree; keep the
    # path to their spaces so the generated hierarchy stays consistent
    referenced_spaces = {c.space for c in manifest.contexts if c.id in context_ids}
    referenced_spaces.update(p.space for p in manifest.policies if p.id in policy_ids)
    for referenced in sorted(referenced_spaces - included):
        log_with_context(
            logging.DEBUG,
            f"Including space '{referenced}' for attached contexts/policies",
            space=referenced,
        )
        included.update(hierarchy.ancestor_chain(referenced))

    integration_spaces = included | ancestors

    filtered = Manifest(
        source_url=manifest.source_url,
        spaces=tuple(s for s in manifest.spaces if s.id in included),
        stacks=tuple(stacks),
        contexts=tuple(
            c
            for c in manifest.contexts
            if c.space in included or c.id in context_ids
        ),
        policies=tuple(
            p
            for p in manifest.policies
            if p.space in included or p.id in policy_ids
        ),
        aws_integrations=tuple(
            i for i in manifest.aws_integrations if i.space in integration_spaces
        ),
        azure_integrations=tuple(
            i for i in manifest.azure_integrations if i.space in integration_spaces
        ),
    )

    log_with_context(
        logging.DEBUG,
        f"Filtered manifest to space '{space_id}': "
        f"{len(filtered.spaces)} spaces, {len(filtered.stacks)} stacks, "
        f"{len(filtered.contexts)} contexts, {len(filtered.policies)} policies",
        space=space_id,
    )
    return filtered


def stacks_in_space(stacks: Iterable[Stack], space_id: str) -> list[Stack]:
    """Return the stacks that live directly in ``space_id``.

    Ancestor, descendant and referenced spaces are not consulted, unlike
    :func:`filter_manifest_by_space`.
    """
    return [stack for stack in stacks if stack.space == space_id]
