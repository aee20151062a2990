from __future__ import annotations

"""
Traversal Run Context.

Owns all mutable state of one dump: the visited registry, the deferred
work queue and the run counters. Created per run and discarded afterwards.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, NamedTuple, Optional

from heapdump4py.core.services.registry import VisitedRegistry
from heapdump4py.domain.classification import ValueClassification
from heapdump4py.domain.report_models import ReportNode


class DeferredItem(NamedTuple):
    """A value waiting for breadth-first expansion into its placeholder node."""
    value: Any
    classification: ValueClassification
    node: ReportNode


@dataclass
class TraversalStats:
    """Counters collected during one run."""
    types: int = 0
    containers: int = 0
    deferred: int = 0
    warnings: int = 0
    max_queue: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "types": self.types,
            "containers": self.containers,
            "deferred": self.deferred,
            "warnings": self.warnings,
            "max_queue": self.max_queue,
        }


@dataclass
class TraversalContext:
    """
    State scoped to a single traversal run.

    Attributes:
        registry: Identity-keyed visited registry.
        queue: FIFO of deferred expansions; may hold an identity twice.
        stats: Run counters.
        total_size: Size of the completed report, set once the run ends.
    """
    registry: VisitedRegistry = field(default_factory=VisitedRegistry)
    queue: Deque[DeferredItem] = field(default_factory=deque)
    stats: TraversalStats = field(default_factory=TraversalStats)
    total_size: Optional[int] = None

    def enqueue(self, value: Any, classification: ValueClassification, node: ReportNode) -> None:
        self.queue.append(DeferredItem(value, classification, node))
        self.stats.deferred += 1
        if len(self.queue) > self.stats.max_queue:
            self.stats.max_queue = len(self.queue)

    def summary(self) -> Dict[str, int]:
        out = self.stats.as_dict()
        out["objects"] = len(self.registry)
        return out
