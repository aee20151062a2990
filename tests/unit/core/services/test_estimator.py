from __future__ import annotations

"""
Unit tests for the Size Estimator service.

Verifies slot charges, payload sizes per storage kind and the combined
first-visit size seen from a field.
"""

import pytest

from heapdump4py.core.services.estimator import Platform, payload_size, size_of, slot_charge
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
)


def test_slot_charge_only_for_reference_kinds() -> None:
    """TC-01: Verify inline values cost no slot and references cost a pointer."""
    assert slot_charge(Primitive(8), 8) == 0
    assert slot_charge(Enumerated(4), 8) == 0
    assert slot_charge(Aggregate(16), 8) == 0

    assert slot_charge(Absent(), 8) == 8
    assert slot_charge(Text(3), 8) == 8
    assert slot_charge(Sequence(ELEMENT_SCALAR, (3,), element_width=1), 8) == 8
    assert slot_charge(Instance(object), 4) == 4


def test_payload_of_value_kinds(platform64: Platform) -> None:
    """TC-02: Verify value kinds report their own width."""
    assert payload_size(Primitive(2), platform64) == 2
    assert payload_size(Enumerated(4), platform64) == 4
    assert payload_size(Aggregate(24), platform64) == 24


def test_payload_of_text_includes_length_prefix(platform64: Platform) -> None:
    """TC-03: Verify strings cost width * length plus the length prefix."""
    assert payload_size(Text(length=5, char_width=1), platform64) == 9
    assert payload_size(Text(length=5, char_width=2), platform64) == 14
    assert payload_size(Text(length=0), platform64) == 4


def test_payload_of_sequences(platform64: Platform) -> None:
    """TC-04: Verify scalar sequences hold elements inline, others hold slots."""
    scalars = Sequence(ELEMENT_SCALAR, shape=(3, 4), element_width=4)
    assert payload_size(scalars, platform64) == 48

    refs = Sequence(ELEMENT_REFERENCE, shape=(5,))
    assert payload_size(refs, platform64) == 40

    mapping = Sequence(ELEMENT_REFERENCE, shape=(5,), slots_per_item=2)
    assert payload_size(mapping, platform64) == 80


def test_payload_of_instances_and_null(platform64: Platform) -> None:
    """TC-05: Verify instances and null own no payload of their own."""
    assert payload_size(Instance(object), platform64) == 0
    assert payload_size(Absent(), platform64) == 0


def test_payload_rejects_unknown_classification(platform64: Platform) -> None:
    """TC-06: Verify an unknown classification is a programming error."""
    with pytest.raises(TypeError):
        payload_size("not a classification", platform64)  # type: ignore[arg-type]


def test_size_of_combines_slot_and_payload() -> None:
    """TC-07: Verify the first-visit size seen from a field."""
    grid = Sequence(ELEMENT_SCALAR, shape=(3, 4), element_width=4)
    assert size_of(grid, 8) == 56
    assert size_of(Primitive(8), 8) == 8
    assert size_of(Instance(object), 8) == 8
    assert size_of(Absent(), 4) == 4
