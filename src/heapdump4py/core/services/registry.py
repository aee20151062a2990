from __future__ import annotations

"""
Visited Object Registry.

Single source of truth for "has this object already been reported". Keyed
by object identity, never by value equality. An entry is reserved with an
in-progress sentinel before an object's contents are expanded and is
finalized once its total size is known. Every violation of that lifecycle
is a walker bug and raises RegistryInvariantError.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from heapdump4py.domain.errors import RegistryInvariantError
from heapdump4py.domain.report_models import ReportNode

IN_PROGRESS = -1


@dataclass
class RegistryEntry:
    """
    Bookkeeping for one visited object.

    Attributes:
        obj: The object itself; holding it keeps its identity from being reused.
        runtime_type: Class of the object.
        node: Report node holding the object's expansion.
        size: Final size, or IN_PROGRESS.
    """
    obj: Any
    runtime_type: type
    node: ReportNode
    size: int = IN_PROGRESS

    @property
    def in_progress(self) -> bool:
        return self.size == IN_PROGRESS


class VisitedRegistry:
    """Identity-keyed map of every object reached during one dump."""

    def __init__(self) -> None:
        self._entries: Dict[int, RegistryEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RegistryEntry]:
        return iter(self._entries.values())

    def contains(self, identity: int) -> bool:
        return identity in self._entries

    def try_get(self, identity: int) -> Optional[RegistryEntry]:
        return self._entries.get(identity)

    def reserve(self, obj: Any, node: ReportNode) -> RegistryEntry:
        """
        Insert an in-progress entry for an object about to be expanded.

        Raises:
            RegistryInvariantError: The object is already registered.
        """
        identity = id(obj)
        existing = self._entries.get(identity)
        if existing is not None:
            state = "in progress" if existing.in_progress else "finalized"
            raise RegistryInvariantError(
                f"Object {identity:#x} of type {type(obj).__name__} reserved twice ({state}).",
                identity,
            )
        entry = RegistryEntry(obj=obj, runtime_type=type(obj), node=node)
        self._entries[identity] = entry
        return entry

    def finalize(self, identity: int, size: int) -> RegistryEntry:
        """
        Replace the sentinel of a reserved entry with its final size.

        Raises:
            RegistryInvariantError: Unknown identity, entry already final or negative size.
        """
        entry = self._entries.get(identity)
        if entry is None:
            raise RegistryInvariantError(f"Finalize of unreserved object {identity:#x}.", identity)
        if not entry.in_progress:
            raise RegistryInvariantError(
                f"Object {identity:#x} finalized twice ({entry.size} then {size}).", identity
            )
        if size < 0:
            raise RegistryInvariantError(f"Negative final size {size} for object {identity:#x}.", identity)
        entry.size = size
        return entry

    def pending(self) -> int:
        """Number of entries still carrying the sentinel."""
        return sum(1 for e in self._entries.values() if e.in_progress)
