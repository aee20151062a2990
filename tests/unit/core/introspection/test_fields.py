from __future__ import annotations

"""
Unit tests for the Field Enumerator (PythonIntrospector).

Verifies slot, annotation and __dict__ discovery, static and module-level
storage enumeration, value reads and failure wrapping.
"""

import ctypes
import dataclasses
import functools
import types
from typing import Any, ClassVar, List, Optional

import pytest

from heapdump4py.core.introspection.fields import (
    MISSING,
    STORAGE_DICT,
    STORAGE_GLOBAL,
    STORAGE_SLOT,
    STORAGE_STATIC,
    FieldDescriptor,
    PythonIntrospector,
    formatted_type_name,
    size_of_fixed_layout,
)
from heapdump4py.domain.errors import FieldAccessError, LayoutError

# -----------------------------------------------------------------------------
# Sample Types
# -----------------------------------------------------------------------------

class Base:
    __slots__ = ("ident",)


class Slotted(Base):
    __slots__ = ("x", "__secret")

    def __init__(self) -> None:
        self.ident = 1
        self.x = 2.0


class Annotated:
    registry: ClassVar[List[str]] = []
    name: str
    score: int

    def __init__(self, name: str) -> None:
        self.name = name
        self.extra = [1, 2]


@dataclasses.dataclass(slots=True)
class Point:
    x: int
    y: int


class Statics:
    LIMIT = 10
    _hidden = "h"
    table: Optional[dict] = None

    def method(self) -> None:
        pass

    @staticmethod
    def helper() -> None:
        pass

    @classmethod
    def build(cls) -> "Statics":
        return cls()

    @property
    def prop(self) -> int:
        return 1

    @functools.cached_property
    def cached(self) -> int:
        return 2

    class Inner:
        pass


class Exploding:
    def __get__(self, obj: Any, owner: Any) -> Any:
        raise RuntimeError("boom")


class Packed(ctypes.Structure):
    _fields_ = [("a", ctypes.c_int32), ("b", ctypes.c_int16 * 2)]


class WithPointer(ctypes.Structure):
    _fields_ = [("inner", Packed), ("ptr", ctypes.POINTER(ctypes.c_int))]


@pytest.fixture
def introspector() -> PythonIntrospector:
    return PythonIntrospector()

# -----------------------------------------------------------------------------
# Instance Fields
# -----------------------------------------------------------------------------

def test_fields_of_slots_own_first_then_inherited(introspector: PythonIntrospector) -> None:
    """TC-01: Verify slot discovery order and private name mangling."""
    names = [f.name for f in introspector.fields_of(Slotted)]
    assert names == ["x", "_Slotted__secret", "ident"]
    assert all(f.storage == STORAGE_SLOT for f in introspector.fields_of(Slotted))


def test_fields_of_annotations_skip_classvar(introspector: PythonIntrospector) -> None:
    """TC-02: Verify annotated fields are declared and ClassVar ones are not."""
    fields = introspector.fields_of(Annotated)
    assert [f.name for f in fields] == ["name", "score"]
    assert fields[0].declared_type is str
    assert fields[0].storage == STORAGE_DICT


def test_fields_of_slotted_dataclass_deduplicates(introspector: PythonIntrospector) -> None:
    """TC-03: Verify names declared as slot and annotation appear once."""
    fields = introspector.fields_of(Point)
    assert [f.name for f in fields] == ["x", "y"]
    assert fields[0].declared_type is int


def test_fields_of_is_cached(introspector: PythonIntrospector) -> None:
    """TC-04: Verify repeated enumeration returns the cached list."""
    assert introspector.fields_of(Annotated) is introspector.fields_of(Annotated)


def test_instance_fields_include_undeclared_attributes(introspector: PythonIntrospector) -> None:
    """TC-05: Verify attributes assigned outside annotations are found."""
    names = [f.name for f in introspector.instance_fields(Annotated("a"))]
    assert names == ["name", "score", "extra"]


def test_instance_fields_of_opaque_objects_are_empty(introspector: PythonIntrospector) -> None:
    """TC-06: Verify functions, modules and classes expose no fields."""
    assert introspector.instance_fields(len) == []
    assert introspector.instance_fields(types) == []
    assert introspector.instance_fields(Annotated) == []
    assert introspector.instance_fields(functools.partial(print, 1)) == []


def test_get_value_reads_slots_and_dict(introspector: PythonIntrospector) -> None:
    """TC-07: Verify reads of assigned, unassigned and missing storage."""
    s = Slotted()
    by_name = {f.name: f for f in introspector.fields_of(Slotted)}
    assert introspector.get_value(by_name["x"], s) == 2.0
    assert introspector.get_value(by_name["ident"], s) == 1
    assert introspector.get_value(by_name["_Slotted__secret"], s) is MISSING

    a = Annotated("n")
    fields = {f.name: f for f in introspector.instance_fields(a)}
    assert introspector.get_value(fields["name"], a) == "n"
    assert introspector.get_value(fields["score"], a) is MISSING


def test_get_value_wraps_failures(introspector: PythonIntrospector) -> None:
    """TC-08: Verify read failures become FieldAccessError with the cause."""
    class Broken:
        pass

    Broken.value = Exploding()
    descriptor = FieldDescriptor("value", int, Broken, STORAGE_SLOT)
    with pytest.raises(FieldAccessError) as exc:
        introspector.get_value(descriptor, Broken())
    assert exc.value.field_name == "value"
    assert exc.value.declared_type == "int"
    assert isinstance(exc.value.cause, RuntimeError)


def test_missing_sentinel_is_falsy_singleton() -> None:
    """TC-09: Verify the MISSING sentinel semantics."""
    assert not MISSING
    assert repr(MISSING) == "MISSING"
    assert type(MISSING)() is MISSING

# -----------------------------------------------------------------------------
# Statics & Module Globals
# -----------------------------------------------------------------------------

def test_static_fields_exclude_code_members(introspector: PythonIntrospector) -> None:
    """TC-10: Verify only data statics are enumerated."""
    fields = introspector.static_fields_of(Statics)
    assert [f.name for f in fields] == ["LIMIT", "_hidden", "table"]
    assert all(f.storage == STORAGE_STATIC for f in fields)
    assert fields[2].declared_type == Optional[dict]


def test_static_fields_public_only(introspector: PythonIntrospector) -> None:
    """TC-11: Verify private statics can be excluded."""
    names = [f.name for f in introspector.static_fields_of(Statics, include_private=False)]
    assert names == ["LIMIT", "table"]


def test_static_fields_exclude_slot_descriptors(introspector: PythonIntrospector) -> None:
    """TC-12: Verify slot member descriptors are not statics."""
    assert introspector.static_fields_of(Slotted) == []


def test_module_fields_exclude_declarations(introspector: PythonIntrospector) -> None:
    """TC-13: Verify module globals skip imports, classes, functions and typing objects."""
    module = types.ModuleType("sample_globals")
    exec(
        "from __future__ import annotations\n"
        "import json\n"
        "from typing import List\n"
        "CACHE: dict = {}\n"
        "NAMES = ['a']\n"
        "_private = 1\n"
        "def f(): pass\n"
        "class K: pass\n",
        module.__dict__,
    )
    fields = introspector.module_fields_of(module)
    assert [f.name for f in fields] == ["CACHE", "NAMES", "_private"]
    assert all(f.storage == STORAGE_GLOBAL for f in fields)
    assert introspector.get_value(fields[0], module) == {}

    public = introspector.module_fields_of(module, include_private=False)
    assert [f.name for f in public] == ["CACHE", "NAMES"]

# -----------------------------------------------------------------------------
# Type Names & Fixed Layouts
# -----------------------------------------------------------------------------

def test_formatted_type_name() -> None:
    """TC-14: Verify readable names of builtins, user classes and annotations."""
    assert formatted_type_name(None) == "-"
    assert formatted_type_name(int) == "int"
    assert formatted_type_name("Forward") == "Forward"
    assert formatted_type_name(List[int]) == "List[int]"
    assert formatted_type_name(Statics.Inner).endswith("Statics.Inner")


def test_size_of_fixed_layout() -> None:
    """TC-15: Verify packed layouts and nested layouts with pointers."""
    assert size_of_fixed_layout(Packed) == 8
    with pytest.raises(LayoutError) as exc:
        size_of_fixed_layout(WithPointer)
    assert "ptr" in exc.value.reason
