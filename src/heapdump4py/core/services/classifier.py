from __future__ import annotations

"""
Type Classification Service.

Maps a runtime value (and, where it refines the storage width, its declared
type) onto its storage kind. Pure: no state, no side effects.
"""

import array
import collections
import ctypes
import enum
from typing import Any, Callable, Optional

from heapdump4py.core.introspection.fields import (
    is_ctypes_scalar_type,
    is_fixed_layout_type,
    size_of_fixed_layout,
)
from heapdump4py.core.services.estimator import DEFAULT_PLATFORM, Platform
from heapdump4py.domain.classification import (
    ELEMENT_REFERENCE,
    ELEMENT_SCALAR,
    Absent,
    Aggregate,
    Enumerated,
    Instance,
    Primitive,
    Sequence,
    Text,
    ValueClassification,
)
from heapdump4py.domain.constants import CHAR_WIDTH_LATIN1, CHAR_WIDTH_UCS2, CHAR_WIDTH_UCS4
from heapdump4py.domain.errors import LayoutError

_BUILTIN_SCALARS = (bool, int, float, complex)
_REFERENCE_SEQUENCES = (list, tuple, set, frozenset, collections.deque)
_BYTE_SEQUENCES = (bytes, bytearray)


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def classify(
        value: Any,
        declared_type: Any = None,
        *,
        platform: Platform = DEFAULT_PLATFORM,
        layout_size: Callable[[type], int] = size_of_fixed_layout,
) -> ValueClassification:
    """
    Determine the storage kind of a value.

    Priority: null, scalar value types (primitive, enumerated, aggregate),
    strings, sequences, then arbitrary instances.

    Args:
        value: Runtime value.
        declared_type: Annotation of the slot holding the value, if known.
        platform: Scalar and pointer widths.
        layout_size: Sizes fixed-layout types; raises LayoutError when it cannot.

    Returns:
        ValueClassification: The value's storage kind.
    """
    if value is None:
        return Absent()

    # Enum members before scalars: IntEnum members are ints too
    if isinstance(value, enum.Enum):
        return Enumerated(underlying_width=_underlying_width(value.value, platform))

    primitive = _classify_scalar(value, declared_type, platform)
    if primitive is not None:
        return primitive

    if is_fixed_layout_type(type(value)):
        try:
            return Aggregate(declared_size=layout_size(type(value)))
        except LayoutError as e:
            return Aggregate(declared_size=0, error=str(e))

    if isinstance(value, str):
        return Text(length=len(value), char_width=char_width(value))

    sequence = _classify_sequence(value)
    if sequence is not None:
        return sequence

    return Instance(declared_type=type(value))


def char_width(text: str) -> int:
    """Bytes per code point in the compact representation of a string."""
    if not text:
        return CHAR_WIDTH_LATIN1
    widest = ord(max(text))
    if widest < 0x100:
        return CHAR_WIDTH_LATIN1
    if widest < 0x10000:
        return CHAR_WIDTH_UCS2
    return CHAR_WIDTH_UCS4


# -----------------------------------------------------------------------------
# PRIVATE HELPERS
# -----------------------------------------------------------------------------

def _classify_scalar(value: Any, declared_type: Any, platform: Platform) -> Optional[Primitive]:
    if isinstance(value, ctypes._SimpleCData) and is_ctypes_scalar_type(type(value)):
        return Primitive(width=ctypes.sizeof(value))
    if not isinstance(value, _BUILTIN_SCALARS):
        return None
    # A ctypes annotation pins the width of a plain Python number
    if is_ctypes_scalar_type(declared_type):
        return Primitive(width=ctypes.sizeof(declared_type))
    for scalar in _BUILTIN_SCALARS:
        if isinstance(value, scalar):
            return Primitive(width=platform.scalar_width(scalar.__name__))
    return None


def _underlying_width(member_value: Any, platform: Platform) -> int:
    scalar = _classify_scalar(member_value, None, platform)
    if scalar is not None:
        return scalar.width
    # Non-scalar members are shared singletons held by reference
    return platform.pointer_width


def _classify_sequence(value: Any) -> Optional[Sequence]:
    if isinstance(value, memoryview):
        try:
            shape = tuple(value.shape) if value.shape is not None else (value.nbytes // max(value.itemsize, 1),)
            itemsize = value.itemsize
        except ValueError:
            # A released view no longer exposes its buffer
            return Sequence(ELEMENT_SCALAR, shape=(0,), element_width=0)
        return Sequence(ELEMENT_SCALAR, shape=shape, element_width=itemsize)
    if isinstance(value, array.array):
        return Sequence(ELEMENT_SCALAR, shape=(len(value),), element_width=value.itemsize)
    if isinstance(value, _BYTE_SEQUENCES):
        return Sequence(ELEMENT_SCALAR, shape=(len(value),), element_width=1)
    if isinstance(value, dict):
        return Sequence(ELEMENT_REFERENCE, shape=(len(value),), slots_per_item=2)
    if isinstance(value, _REFERENCE_SEQUENCES):
        return Sequence(ELEMENT_REFERENCE, shape=(len(value),))
    return None
