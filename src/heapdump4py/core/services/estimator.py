from __future__ import annotations

"""
Size Estimation Service.

Computes best-effort byte sizes for classified values from the platform
pointer width, scalar widths and element counts. The estimate follows
declared storage, not allocator bookkeeping.

A value reached through a reference costs a pointer-sized slot at the
owning site (field or array slot) plus its payload. The payload of an
object with identity is charged only on its first visit; the walker
enforces that through the visited registry.
"""

from dataclasses import dataclass, field
from typing import Dict

from heapdump4py.domain.classification import (
    Absent,
    Aggregate,
    Enumerated,
    Instance,
    Primitive,
    Sequence,
    Text,
    ValueClassification,
    is_reference_kind,
)
from heapdump4py.domain.constants import LENGTH_PREFIX_WIDTH, POINTER_WIDTH, SCALAR_WIDTHS


@dataclass(frozen=True)
class Platform:
    """
    Storage widths of the platform being estimated.

    Attributes:
        pointer_width: Size of a reference slot.
        length_prefix_width: Size of the length header stored with a string.
        scalar_widths: Width of every builtin scalar kind, by type name.
    """
    pointer_width: int = POINTER_WIDTH
    length_prefix_width: int = LENGTH_PREFIX_WIDTH
    scalar_widths: Dict[str, int] = field(default_factory=lambda: dict(SCALAR_WIDTHS))

    def scalar_width(self, type_name: str) -> int:
        return self.scalar_widths.get(type_name, self.scalar_widths["int"])


DEFAULT_PLATFORM = Platform()


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def slot_charge(classification: ValueClassification, pointer_width: int) -> int:
    """Return the cost of the slot holding the value at its owning site."""
    return pointer_width if is_reference_kind(classification) else 0


def payload_size(classification: ValueClassification, platform: Platform = DEFAULT_PLATFORM) -> int:
    """
    Return the bytes owned by the value itself, excluding its slot.

    Reference sequences report their slot array only; the elements are
    sized separately. Instances own no payload beyond their fields.
    """
    if isinstance(classification, Primitive):
        return classification.width
    if isinstance(classification, Enumerated):
        return classification.underlying_width
    if isinstance(classification, Aggregate):
        return classification.declared_size
    if isinstance(classification, Text):
        return classification.char_width * classification.length + platform.length_prefix_width
    if isinstance(classification, Sequence):
        if classification.holds_references:
            return platform.pointer_width * classification.flattened_length * classification.slots_per_item
        return classification.element_width * classification.flattened_length
    if isinstance(classification, (Absent, Instance)):
        return 0
    raise TypeError(f"Unknown classification: {classification!r}")


def size_of(classification: ValueClassification, pointer_width: int = POINTER_WIDTH) -> int:
    """
    Compute the size of a value as seen from a field, on first visit.

    Instances contribute only their slot here; their field totals are added
    by the walker once expanded.

    Args:
        classification: Storage kind of the value.
        pointer_width: Platform pointer width in bytes.

    Returns:
        int: Estimated size in bytes.
    """
    platform = DEFAULT_PLATFORM
    if pointer_width != platform.pointer_width:
        platform = Platform(pointer_width=pointer_width)
    return slot_charge(classification, pointer_width) + payload_size(classification, platform)
