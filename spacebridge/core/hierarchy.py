"""Space hierarchy resolution.

Spaces arrive as a flat list of parent pointers.  :class:`SpaceHierarchy`
indexes them by id, resolves each parent once, and answers descendant,
ancestor and filter-token queries against that index.

A space whose parent id is not present in the snapshot (deleted, or created
after discovery started) is treated as a root.  This is logged at WARNING
level because it can mean the snapshot is inconsistent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from spacebridge.constants import ROOT_SPACE_ID
from spacebridge.exceptions import ResolutionError
from spacebridge.models import Space
from spacebridge.utils.logging import log_with_context


@dataclass
class SpaceNode:
    """A space together with its child nodes, for tree rendering."""

    space: Space
    children: list[SpaceNode] = field(default_factory=list)


class SpaceHierarchy:
    """Parent/child index over a snapshot of spaces.

    Args:
        spaces: Every space in the snapshot, in any order.
    """

    def __init__(self, spaces: Iterable[Space]) -> None:
        self._spaces: dict[str, Space] = {}
        self._order: list[str] = []
        for space in spaces:
            if space.id not in self._spaces:
                self._order.append(space.id)
            self._spaces[space.id] = space

        # Resolved parent per space; None means the space is a root
        self._parents: dict[str, str | None] = {}
        self._children: dict[str, list[str]] = {space_id: [] for space_id in self._order}

        for space_id in self._order:
            self._parents[space_id] = self._resolve_parent(self._spaces[space_id])

        self._break_cycles()

        for space_id in self._order:
            parent = self._parents[space_id]
            if parent is not None:
                self._children[parent].append(space_id)

    def _resolve_parent(self, space: Space) -> str | None:
        parent = space.parent_space
        if not parent or space.id == ROOT_SPACE_ID:
            return None
        if parent not in self._spaces:
            log_with_context(
                logging.WARNING,
                f"Parent space '{parent}' of space '{space.id}' was not found; "
                "treating the space as a root",
                space=space.id,
            )
            return None
        return parent

    def _break_cycles(self) -> None:
        """Detach one member of every parent cycle so the graph is a forest."""
        settled: set[str] = set()
        for start in self._order:
            path: list[str] = []
            on_path: set[str] = set()
            current: str | None = start
            while current is not None and current not in settled:
                if current in on_path:
                    log_with_context(
                        logging.WARNING,
                        f"Space '{current}' is part of a parent cycle; "
                        "treating it as a root",
                        space=current,
                    )
                    self._parents[current] = None
                    break
                path.append(current)
                on_path.add(current)
                current = self._parents[current]
            settled.update(path)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def __contains__(self, space_id: object) -> bool:
        return space_id in self._spaces

    def __len__(self) -> int:
        return len(self._order)

    def get(self, space_id: str) -> Space | None:
        return self._spaces.get(space_id)

    def parent_of(self, space_id: str) -> str | None:
        """Resolved parent id, or None for roots and unknown ids."""
        return self._parents.get(space_id)

    def children_of(self, space_id: str) -> list[str]:
        return list(self._children.get(space_id, []))

    def roots(self) -> list[Space]:
        """Spaces without a resolved parent, in snapshot order."""
        return [
            self._spaces[space_id]
            for space_id in self._order
            if self._parents[space_id] is None
        ]

    # ------------------------------------------------------------------
    # Closure queries
    # ------------------------------------------------------------------

    def descendant_closure(self, space_id: str) -> set[str]:
        """Return the ids of every space below ``space_id``.

        The space itself is not included.  The set is grown by repeated
        passes over all spaces, adding any space whose parent is already in
        the set, until a pass adds nothing.  The result does not depend on
        the order spaces were discovered in.
        """
        found: set[str] = {space_id}
        changed = True
        while changed:
            changed = False
            for candidate in self._order:
                if candidate in found:
                    continue
                if self._parents[candidate] in found:
                    found.add(candidate)
                    changed = True
        found.discard(space_id)
        return found

    def ancestor_chain(self, space_id: str) -> list[str]:
        """Return ``[space_id, parent, grandparent, ...]`` up to the top.

        The walk ends at ``"root"`` or at the first space whose parent is
        not resolvable.  An id that is not in the snapshot yields an empty
        list, except for ``"root"`` which always yields ``["root"]``.
        """
        if space_id not in self._spaces:
            return [ROOT_SPACE_ID] if space_id == ROOT_SPACE_ID else []

        chain: list[str] = []
        current: str | None = space_id
        while current is not None and current not in chain:
            chain.append(current)
            if current == ROOT_SPACE_ID:
                break
            current = self._parents.get(current)
        return chain

    def subtree(self, space_id: str) -> set[str]:
        """The space plus all of its descendants."""
        return self.descendant_closure(space_id) | {space_id}

    # ------------------------------------------------------------------
    # Filter tokens
    # ------------------------------------------------------------------

    def resolve_filter_token(self, token: str) -> str:
        """Resolve a user-supplied space reference to a space id.

        Rules, first match wins:

        1. ``token`` is a space id.
        2. ``token`` is exactly the name of a space.
        3. ``token`` looks like ``<name>-<id>``; working leftwards from the last
           hyphen, the text after each hyphen is checked as a space id.

        Args:
            token: Space id, space name, or ``name-id`` composite.

        Returns:
            The canonical space id.

        Raises:
            ResolutionError: If no rule matches.
        """
        token = token.strip()
        if token in self._spaces:
            return token

        for space_id in self._order:
            if self._spaces[space_id].name == token:
                return space_id

        # Ids may contain hyphens themselves, so every split is tried
        for position in range(len(token) - 1, -1, -1):
            if token[position] == "-" and token[position + 1 :] in self._spaces:
                return token[position + 1 :]

        raise ResolutionError(f"space '{token}' not found")

    # ------------------------------------------------------------------
    # Tree view
    # ------------------------------------------------------------------

    def tree(self) -> list[SpaceNode]:
        """Build the space forest, children sorted by name."""
        nodes = {space_id: SpaceNode(self._spaces[space_id]) for space_id in self._order}
        for space_id in self._order:
            node = nodes[space_id]
            node.children = sorted(
                (nodes[child] for child in self._children[space_id]),
                key=lambda n: n.space.name,
            )
        return [nodes[space.id] for space in self.roots()]
