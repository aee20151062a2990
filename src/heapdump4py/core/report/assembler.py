from __future__ import annotations

"""
Report Tree Assembler.

Completes the report tree built by the graph walker: resolves the sizes
left pending by deferred expansion, checks the roll-up invariant and sorts
every node's children by descending size. All passes iterate with an
explicit stack; the tree can be as deep as the longest reference chain.
"""

import logging
from typing import List

from heapdump4py.core.services.registry import VisitedRegistry
from heapdump4py.domain.errors import RegistryInvariantError, ReportInvariantError
from heapdump4py.domain.report_models import NodeKind, ReportNode, iter_postorder, iter_preorder

logger = logging.getLogger(__name__)

# Nodes that own a registry entry and expand lazily
_EXPANDABLE = (NodeKind.INSTANCE, NodeKind.ARRAY, NodeKind.ROOT_CONTAINER)

_MAX_REPORTED_VIOLATIONS = 5


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def reconcile(root: ReportNode, registry: VisitedRegistry) -> int:
    """
    Resolve every pending node bottom-up and finalize its registry entry.

    Cycle references then receive the final size of the object they point to.

    Args:
        root: Report root, after the work queue has drained.
        registry: Registry of the run that built the tree.

    Returns:
        int: Number of nodes resolved by this pass.

    Raises:
        ReportInvariantError: A placeholder was never expanded.
        RegistryInvariantError: An entry is still in progress afterwards.
    """
    resolved = 0
    for node in iter_postorder(root):
        if node.is_resolved:
            continue
        owns_entry = False
        if node.kind in _EXPANDABLE and node.identity is not None:
            entry = registry.try_get(node.identity)
            owns_entry = entry is not None and entry.node is node
            if not owns_entry:
                raise ReportInvariantError(
                    f"Placeholder for {node.type_name} ({node.identity:#x}) was never expanded."
                )
        node.try_resolve()
        resolved += 1
        if owns_entry:
            registry.finalize(node.identity, node.size)

    pending = registry.pending()
    if pending:
        raise RegistryInvariantError(f"{pending} registry entries still in progress after reconciliation.")

    for node, _ in iter_preorder(root):
        if node.kind is NodeKind.CYCLE_REFERENCE and node.identity is not None:
            entry = registry.try_get(node.identity)
            if entry is not None:
                node.referenced_size = entry.size

    logger.debug(f"Reconciled {resolved} pending node(s).")
    return resolved


def check_invariants(root: ReportNode) -> int:
    """
    Verify that every node equals its own overhead plus its children.

    Returns:
        int: Number of nodes checked.

    Raises:
        ReportInvariantError: One or more nodes violate the invariant.
    """
    violations: List[str] = []
    checked = 0
    for node, depth in iter_preorder(root):
        checked += 1
        if node.size is None or node.size < 0:
            violations.append(f"{_label(node)} at depth {depth} has size {node.size}")
            continue
        expected = node.own_overhead + sum(c.size or 0 for c in node.children)
        if node.size != expected:
            violations.append(f"{_label(node)} at depth {depth}: size {node.size} != {expected}")
        if len(violations) >= _MAX_REPORTED_VIOLATIONS:
            break

    if violations:
        raise ReportInvariantError("Report size invariant violated: " + "; ".join(violations))
    return checked


def sort_tree(root: ReportNode) -> None:
    """
    Order the children of every node by descending size.

    Equal sizes keep their traversal order (list.sort is stable, also with
    reverse=True). Sizes are never modified.
    """
    for node, _ in iter_preorder(root):
        if len(node.children) > 1:
            node.children.sort(key=_size_indicator, reverse=True)


def finish_tree(root: ReportNode, *, verify: bool = True) -> ReportNode:
    """Run the final assembler passes over a reconciled tree."""
    if verify:
        checked = check_invariants(root)
        logger.debug(f"Size invariant holds for {checked} node(s).")
    sort_tree(root)
    return root


# -----------------------------------------------------------------------------
# PRIVATE HELPERS
# -----------------------------------------------------------------------------

def _size_indicator(node: ReportNode) -> int:
    if node.size is not None:
        return node.size
    return node.referenced_size or 0


def _label(node: ReportNode) -> str:
    name = f" '{node.name}'" if node.name else ""
    return f"{node.kind.value} {node.type_name}{name}"
