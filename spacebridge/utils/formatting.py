"""
Plain-text rendering helpers for terminal output.

Tables and the space tree are built as lists of lines so the CLI can
echo them and tests can compare them directly.
"""

from __future__ import annotations

from typing import Sequence

from spacebridge.constants import FRIENDLY_VENDOR_NAMES
from spacebridge.core.hierarchy import SpaceNode


def truncate(text: str, width: int) -> str:
    """Shorten ``text`` to ``width`` characters, ending in ``...`` if cut."""
    if len(text) <= width:
        return text
    if width <= 3:
        return text[: max(width, 0)]
    return text[: width - 3] + "..."


def friendly_vendor_type(vendor_type: str) -> str:
    """Human name for a vendor typename, e.g. ``StackConfigVendorTerraform``."""
    if not vendor_type:
        return "Unknown"
    if vendor_type in FRIENDLY_VENDOR_NAMES:
        return FRIENDLY_VENDOR_NAMES[vendor_type]
    return vendor_type.removeprefix("StackConfigVendor") or vendor_type


def render_table(
    headers: Sequence[str],
    rows: Sequence[Sequence[object]],
    max_width: int = 60,
) -> list[str]:
    """Render rows as an aligned text table.

    Args:
        headers: Column titles.
        rows: One sequence of cell values per row.
        max_width: Cells longer than this are truncated.

    Returns:
        The table as lines: header, rule, then one line per row.
    """
    cells = [
        [truncate("" if value is None else str(value), max_width) for value in row]
        for row in rows
    ]
    widths = [len(h) for h in headers]
    for row in cells:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(values: Sequence[str]) -> str:
        return " │ ".join(v.ljust(w) for v, w in zip(values, widths)).rstrip()

    lines = [line(headers), "─┼─".join("─" * w for w in widths)]
    lines.extend(line(row) for row in cells)
    return lines


def _space_label(node: SpaceNode) -> str:
    label = node.space.id
    if node.space.name and node.space.name != node.space.id:
        label += f" ({node.space.name})"
    if node.space.labels:
        label += f" [{', '.join(node.space.labels)}]"
    return label


def render_space_tree(roots: Sequence[SpaceNode]) -> list[str]:
    """Render a space forest as box-drawing lines."""
    lines: list[str] = []

    def walk(node: SpaceNode, prefix: str, is_last: bool, top: bool) -> None:
        if top:
            lines.append(_space_label(node))
            child_prefix = ""
        else:
            lines.append(prefix + ("└── " if is_last else "├── ") + _space_label(node))
            child_prefix = prefix + ("    " if is_last else "│   ")
        for i, child in enumerate(node.children):
            walk(child, child_prefix, i == len(node.children) - 1, False)

    for root in roots:
        walk(root, "", True, True)
    return lines
