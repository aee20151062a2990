from __future__ import annotations

"""
Report Tree Renderer.

Converts the report tree into an ASCII preview for terminals and logs.
Only the top levels are shown; the XML report carries the full tree.
"""

from typing import List

from heapdump4py.domain.constants import DEFAULT_TREE_DEPTH
from heapdump4py.domain.report_models import NodeKind, ReportNode

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def render_report_tree(
        node: ReportNode,
        lines: List[str],
        prefix: str = "",
        max_depth: int = DEFAULT_TREE_DEPTH,
) -> None:
    """
    Recursively transform the children of a node into preview lines.

    Uses standard ASCII connectors (├──, └──). Recursion stops at
    max_depth, which bounds the stack regardless of the tree depth.

    Args:
        node: Node whose children are rendered.
        lines: Accumulator list for output strings.
        prefix: Indentation prefix for the current recursion level.
        max_depth: Number of levels still to render.
    """
    if max_depth <= 0:
        return

    total = len(node.children)
    for i, child in enumerate(node.children):
        is_last = (i == total - 1)
        connector = "└── " if is_last else "├── "
        lines.append(f"{prefix}{connector}{describe_node(child)}")

        if child.children:
            new_prefix = prefix + ("    " if is_last else "│   ")
            if max_depth > 1:
                render_report_tree(child, lines, prefix=new_prefix, max_depth=max_depth - 1)
            else:
                lines.append(f"{new_prefix}└── ... ({len(child.children)} more)")


def render_report(root: ReportNode, max_depth: int = DEFAULT_TREE_DEPTH) -> List[str]:
    """Render a whole report, headed by its total size."""
    lines = [f"{describe_node(root)}"]
    render_report_tree(root, lines, max_depth=max_depth)
    return lines


def describe_node(node: ReportNode) -> str:
    """One-line label of a node: kind-specific text followed by its size."""
    kind = node.kind
    if kind is NodeKind.DUMP:
        label = "heap dump"
    elif kind is NodeKind.GROUP:
        label = f"{node.name} ({node.type_name})" if node.type_name else f"{node.name}"
    elif kind is NodeKind.FIELD:
        label = f"{node.name}: {node.type_name}"
    elif kind is NodeKind.CYCLE_REFERENCE:
        label = f"<seen {node.type_name}, {node.referenced_size if node.referenced_size is not None else '?'} B>"
    elif kind is NodeKind.IGNORED:
        label = f"ignored ({node.reason})"
    elif kind is NodeKind.NULL:
        label = "null"
    elif kind in (NodeKind.ARRAY, NodeKind.STRING):
        label = f"{node.type_name}[{node.length}]"
    elif kind is NodeKind.VALUE and node.value is not None:
        label = f"{node.type_name} = {node.value}"
    elif node.name:
        label = f"{node.type_name} '{node.name}'"
    else:
        label = node.type_name

    if node.name and kind in (NodeKind.ARRAY, NodeKind.STRING, NodeKind.VALUE):
        label = f"{node.name} {label}"
    return f"{label} [{format_size(node.size)}]"


def format_size(size: object) -> str:
    if not isinstance(size, int):
        return "? B"
    if size < 1024:
        return f"{size} B"
    value = float(size)
    for unit in ("KiB", "MiB", "GiB"):
        value /= 1024.0
        if value < 1024.0 or unit == "GiB":
            break
    return f"{value:.1f} {unit}"
