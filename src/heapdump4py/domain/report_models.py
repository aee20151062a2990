from __future__ import annotations

"""
Report Tree Data Models.

Provides the node type of the size-annotated report tree and iterative
traversal helpers. The tree can be as deep as the longest reference chain
in the dumped graph, so no helper here recurses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple


class NodeKind(str, Enum):
    """Tag of a report node. The value doubles as its serialized name."""

    DUMP = "dump"
    GROUP = "group"
    STATIC_TYPE = "static-type"
    ROOT_CONTAINER = "root-container"
    INSTANCE = "instance"
    FIELD = "field"
    ARRAY = "array"
    STRING = "string"
    VALUE = "value"
    STRUCT = "struct"
    CYCLE_REFERENCE = "cycle-reference"
    NULL = "null"
    IGNORED = "ignored"


# -----------------------------------------------------------------------------
# STRUCTURAL COMPONENTS
# -----------------------------------------------------------------------------

@dataclass(eq=False)
class ReportNode:
    """
    One reported entity in the output tree.

    Attributes:
        kind: Node tag.
        type_name: Declared or runtime type name.
        name: Member, container or group name.
        size: Total size in bytes; None while the node is pending.
        own_overhead: Bytes charged by the node itself, excluding children.
        children: Ordered child nodes.
        runtime_type: Runtime type name when it differs from the declared one.
        length: Flattened length (arrays) or character count (strings).
        rank: Number of dimensions (arrays).
        value: Short textual rendition of a scalar value.
        reason: Why a type was ignored.
        referenced_size: Registry size of the object a cycle reference points to.
        identity: Identity of the object this node stands for.
    """
    kind: NodeKind
    type_name: str = ""
    name: Optional[str] = None
    size: Optional[int] = None
    own_overhead: int = 0
    children: List["ReportNode"] = field(default_factory=list)

    runtime_type: Optional[str] = None
    length: Optional[int] = None
    rank: Optional[int] = None
    value: Optional[str] = None
    reason: Optional[str] = None
    referenced_size: Optional[int] = None
    identity: Optional[int] = None

    @property
    def is_resolved(self) -> bool:
        return self.size is not None

    def add(self, child: "ReportNode") -> "ReportNode":
        self.children.append(child)
        return child

    def try_resolve(self) -> bool:
        """
        Fix the node size from its overhead and children when all are known.

        Returns:
            bool: True if the node is resolved after the call.
        """
        if self.size is not None:
            return True
        total = self.own_overhead
        for child in self.children:
            if child.size is None:
                return False
            total += child.size
        self.size = total
        return True

    def become_cycle_reference(self, identity: int) -> None:
        """Turn an unexpanded placeholder into a zero-cost back reference."""
        if self.children or self.size is not None:
            raise ValueError("Only an unexpanded placeholder can become a cycle reference.")
        self.kind = NodeKind.CYCLE_REFERENCE
        self.own_overhead = 0
        self.size = 0
        self.identity = identity


# -----------------------------------------------------------------------------
# TRAVERSAL HELPERS
# -----------------------------------------------------------------------------

def iter_preorder(root: ReportNode) -> Iterator[Tuple[ReportNode, int]]:
    """Yield (node, depth) pairs parent-first, children in order."""
    stack: List[Tuple[ReportNode, int]] = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        for child in reversed(node.children):
            stack.append((child, depth + 1))


def iter_postorder(root: ReportNode) -> Iterator[ReportNode]:
    """Yield every node after all of its descendants."""
    stack: List[Tuple[ReportNode, bool]] = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            yield node
            continue
        stack.append((node, True))
        for child in reversed(node.children):
            stack.append((child, False))


def count_nodes(root: ReportNode) -> int:
    return sum(1 for _ in iter_preorder(root))
