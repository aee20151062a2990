from __future__ import annotations

"""
Dump Domain Data Models.

Defines the result structure and factory functions used to communicate
the outcome of a heap dump between the orchestrator and interface layers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from heapdump4py.domain.report_models import ReportNode

# -----------------------------------------------------------------------------
# CORE DATA MODELS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class DumpResult:
    """
    Unified result object of a complete heap dump.

    Attributes:
        ok: Flag indicating success or failure.
        error: Descriptive message in case of failure.
        module_filter: Name of the module whose roots were dumped.
        context_name: Scene or context identifier used in the file name.
        strategy: Traversal strategy used.
        output_path: Absolute path of the written report ("" when not written).
        total_size: Estimated size of everything reachable from the roots.
        object_count: Distinct object identities registered.
        type_count: Static types reported.
        container_count: Scene containers reported.
        deferred_count: Placeholders pushed onto the work queue.
        warning_count: Non-fatal diagnostics emitted.
        tree: Root node of the report (not serialized to JSON).
        summary: Additional execution statistics.
    """
    ok: bool
    error: str

    module_filter: str
    context_name: str
    strategy: str

    output_path: str = ""
    total_size: int = 0
    object_count: int = 0
    type_count: int = 0
    container_count: int = 0
    deferred_count: int = 0
    warning_count: int = 0

    tree: Optional[ReportNode] = field(default=None, repr=False, compare=False)
    summary: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-friendly view without the report tree."""
        return {
            "ok": self.ok,
            "error": self.error,
            "module_filter": self.module_filter,
            "context_name": self.context_name,
            "strategy": self.strategy,
            "output_path": self.output_path,
            "total_size": self.total_size,
            "object_count": self.object_count,
            "type_count": self.type_count,
            "container_count": self.container_count,
            "deferred_count": self.deferred_count,
            "warning_count": self.warning_count,
            "summary": dict(self.summary),
        }

# -----------------------------------------------------------------------------
# FACTORY FUNCTIONS
# -----------------------------------------------------------------------------

def create_error_result(
        error: str,
        cfg: Dict[str, Any],
        module_filter: str,
        context_name: str = "",
        summary_extra: Optional[Dict[str, Any]] = None
) -> DumpResult:
    """
    Create a failed dump result. No report file exists for a failed dump.

    Args:
        error: Detailed error description.
        cfg: Configuration used during the failed run.
        module_filter: Target module name.
        context_name: Scene identifier, if it was resolved.
        summary_extra: Additional metadata for the summary payload.

    Returns:
        DumpResult: An immutable error result object.
    """
    return DumpResult(
        ok=False,
        error=error,
        module_filter=module_filter,
        context_name=context_name,
        strategy=cfg.get("strategy", ""),
        summary=summary_extra or {},
    )


def create_success_result(
        cfg: Dict[str, Any],
        module_filter: str,
        context_name: str,
        output_path: str,
        tree: ReportNode,
        stats: Dict[str, int],
        summary_extra: Optional[Dict[str, Any]] = None
) -> DumpResult:
    """
    Create a successful dump result.

    Args:
        cfg: Final configuration used during execution.
        module_filter: Target module name.
        context_name: Scene identifier.
        output_path: Absolute path of the written report.
        tree: Completed, sorted report tree.
        stats: Traversal counters.
        summary_extra: Additional metadata for the summary payload.

    Returns:
        DumpResult: An immutable success result object.
    """
    return DumpResult(
        ok=True,
        error="",
        module_filter=module_filter,
        context_name=context_name,
        strategy=cfg.get("strategy", ""),
        output_path=output_path,
        total_size=tree.size or 0,
        object_count=stats.get("objects", 0),
        type_count=stats.get("types", 0),
        container_count=stats.get("containers", 0),
        deferred_count=stats.get("deferred", 0),
        warning_count=stats.get("warnings", 0),
        tree=tree,
        summary=summary_extra or {},
    )
