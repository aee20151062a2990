from __future__ import annotations

"""
Domain Exception Hierarchy.

Recoverable conditions (layout and field access failures) are handled where
they occur and only degrade the report. Invariant violations and root
enumeration failures abort the dump before any output is written.
"""

from typing import Any


class HeapDumpError(Exception):
    """Base class for every error raised by the dump engine."""


# -----------------------------------------------------------------------------
# RECOVERABLE
# -----------------------------------------------------------------------------

class LayoutError(HeapDumpError):
    """A fixed-layout aggregate could not be sized."""

    def __init__(self, type_name: str, reason: str) -> None:
        super().__init__(f"Cannot compute fixed layout of {type_name}: {reason}")
        self.type_name = type_name
        self.reason = reason


class FieldAccessError(HeapDumpError):
    """Reading a single field raised an exception."""

    def __init__(self, field_name: str, declared_type: str, cause: BaseException) -> None:
        super().__init__(
            f"Failed to read field '{field_name}' ({declared_type}): "
            f"{type(cause).__name__}: {cause}"
        )
        self.field_name = field_name
        self.declared_type = declared_type
        self.cause = cause


# -----------------------------------------------------------------------------
# FATAL
# -----------------------------------------------------------------------------

class RegistryInvariantError(HeapDumpError):
    """The visited registry was driven into an inconsistent state."""

    def __init__(self, message: str, identity: Any = None) -> None:
        super().__init__(message)
        self.identity = identity


class ReportInvariantError(HeapDumpError):
    """A resolved report node does not roll up to the sum of its children."""


class RootEnumerationError(HeapDumpError):
    """The dump roots (target module or scene) could not be enumerated."""
