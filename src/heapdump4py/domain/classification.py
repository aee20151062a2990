from __future__ import annotations

"""
Value Classification Models.

Tagged union describing the storage kind of a runtime value. Produced by
the type classifier and consumed by the size estimator and the graph walker.
"""

from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

# -----------------------------------------------------------------------------
# ELEMENT KINDS
# -----------------------------------------------------------------------------

ELEMENT_SCALAR = "scalar"
ELEMENT_REFERENCE = "reference"


# -----------------------------------------------------------------------------
# VARIANTS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Absent:
    """A null reference."""


@dataclass(frozen=True)
class Primitive:
    """
    Fixed-width scalar.

    Attributes:
        width: Storage width in bytes.
    """
    width: int


@dataclass(frozen=True)
class Enumerated:
    """
    Named constant backed by a scalar.

    Attributes:
        underlying_width: Width of the backing scalar in bytes.
    """
    underlying_width: int


@dataclass(frozen=True)
class Aggregate:
    """
    Fixed-layout value type, assumed to hold no references.

    Attributes:
        declared_size: Size of the layout, 0 when it could not be computed.
        error: Failure description when the layout could not be computed.
    """
    declared_size: int
    error: Optional[str] = None


@dataclass(frozen=True)
class Text:
    """
    Character string.

    Attributes:
        length: Number of code points.
        char_width: Bytes per code point in the compact representation.
    """
    length: int
    char_width: int = 1


@dataclass(frozen=True)
class Sequence:
    """
    Homogeneous collection, possibly multi-dimensional.

    Attributes:
        element_kind: ELEMENT_SCALAR (inline payload) or ELEMENT_REFERENCE (slots).
        shape: Extent of every dimension.
        element_width: Bytes per scalar element (0 for reference elements).
        slots_per_item: Reference slots held per item (2 for mappings).
    """
    element_kind: str
    shape: Tuple[int, ...]
    element_width: int = 0
    slots_per_item: int = 1

    @property
    def rank(self) -> int:
        return len(self.shape)

    @property
    def count(self) -> int:
        return self.flattened_length

    @property
    def flattened_length(self) -> int:
        total = 1
        for extent in self.shape:
            total *= extent
        return total

    @property
    def holds_references(self) -> bool:
        return self.element_kind == ELEMENT_REFERENCE


@dataclass(frozen=True)
class Instance:
    """
    Arbitrary reference-type object with its own field set.

    Attributes:
        declared_type: Runtime class of the object.
    """
    declared_type: Any


ValueClassification = Union[Absent, Primitive, Enumerated, Aggregate, Text, Sequence, Instance]

# Kinds stored behind a reference slot
REFERENCE_KINDS = (Absent, Text, Sequence, Instance)
# Kinds stored inline, without identity
VALUE_KINDS = (Primitive, Enumerated, Aggregate)


def is_reference_kind(classification: ValueClassification) -> bool:
    """Return True when the value lives behind a pointer-sized slot."""
    return isinstance(classification, REFERENCE_KINDS)
