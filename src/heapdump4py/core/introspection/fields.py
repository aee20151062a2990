from __future__ import annotations

"""
Field Enumeration and Reflection Adapter.

Abstracts the introspection facility behind the Introspector interface so
the graph walker never depends on a concrete metadata representation. The
PythonIntrospector implementation reads instance storage from __slots__,
class annotations and __dict__, class-level statics from the class
namespace and module globals from the module namespace.
"""

import __future__
import ctypes
import functools
import inspect
import types
import typing
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from heapdump4py.domain.errors import FieldAccessError, LayoutError

# -----------------------------------------------------------------------------
# FIELD MODEL
# -----------------------------------------------------------------------------

STORAGE_SLOT = "slot"
STORAGE_DICT = "dict"
STORAGE_STATIC = "static"
STORAGE_GLOBAL = "global"


class _Missing:
    """Sentinel for declared storage that holds no value."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


@dataclass(frozen=True)
class FieldDescriptor:
    """
    One readable storage location.

    Attributes:
        name: Attribute name as stored (private names are mangled).
        declared_type: Annotation, if any.
        owner: Class or module declaring the storage.
        storage: One of the STORAGE_* identifiers.
    """
    name: str
    declared_type: Any = None
    owner: Any = None
    storage: str = STORAGE_DICT

    @property
    def declared_type_name(self) -> str:
        return formatted_type_name(self.declared_type)


# Objects reported without fields: their contents are code or namespaces
# already covered by the static roots.
_OPAQUE_TYPES: Tuple[type, ...] = (
    type,
    types.ModuleType,
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.CodeType,
    types.FrameType,
    types.GeneratorType,
    types.CoroutineType,
    functools.partial,
)

_STATIC_EXCLUDED: Tuple[type, ...] = (
    staticmethod,
    classmethod,
    property,
    functools.cached_property,
    types.MemberDescriptorType,
    types.GetSetDescriptorType,
)

_ANNOTATION_MODULES = ("typing", "typing_extensions")


# -----------------------------------------------------------------------------
# INTERFACE
# -----------------------------------------------------------------------------

class Introspector(ABC):
    """Capability interface over the host reflection facility."""

    @abstractmethod
    def fields_of(self, cls: type) -> List[FieldDescriptor]:
        """Declared instance fields of a type, own first, then inherited."""

    @abstractmethod
    def instance_fields(self, obj: Any) -> List[FieldDescriptor]:
        """Fields actually carried by one instance."""

    @abstractmethod
    def static_fields_of(self, cls: type, include_private: bool = True) -> List[FieldDescriptor]:
        """Static storage declared on the type itself."""

    @abstractmethod
    def module_fields_of(self, module: types.ModuleType, include_private: bool = True) -> List[FieldDescriptor]:
        """Global data of a module."""

    @abstractmethod
    def get_value(self, descriptor: FieldDescriptor, owner: Any) -> Any:
        """
        Read a field.

        Returns:
            The stored value, or MISSING when the storage is declared but empty.

        Raises:
            FieldAccessError: The read itself failed.
        """

    def size_of_fixed_layout(self, cls: type) -> int:
        return size_of_fixed_layout(cls)

    def formatted_type_name(self, tp: Any) -> str:
        return formatted_type_name(tp)


# -----------------------------------------------------------------------------
# PYTHON IMPLEMENTATION
# -----------------------------------------------------------------------------

class PythonIntrospector(Introspector):
    """Introspector for plain CPython objects."""

    def __init__(self) -> None:
        self._field_cache: Dict[type, List[FieldDescriptor]] = {}

    def fields_of(self, cls: type) -> List[FieldDescriptor]:
        cached = self._field_cache.get(cls)
        if cached is not None:
            return cached

        out: List[FieldDescriptor] = []
        seen = set()
        for klass in cls.__mro__:
            if klass is object:
                continue
            annotations = _own_annotations(klass)
            for name in _slot_names(klass):
                if name in seen:
                    continue
                seen.add(name)
                out.append(FieldDescriptor(name, annotations.get(name), klass, STORAGE_SLOT))
            for name, annotation in annotations.items():
                # dataclass(slots=True) declares the same name twice
                if name in seen or _is_classvar(annotation):
                    continue
                seen.add(name)
                out.append(FieldDescriptor(name, annotation, klass, STORAGE_DICT))

        self._field_cache[cls] = out
        return out

    def instance_fields(self, obj: Any) -> List[FieldDescriptor]:
        if isinstance(obj, _OPAQUE_TYPES):
            return []

        cls = type(obj)
        declared = self.fields_of(cls)
        names = {f.name for f in declared}

        extra: List[FieldDescriptor] = []
        for name in _instance_dict(obj) or ():
            if isinstance(name, str) and name not in names:
                extra.append(FieldDescriptor(name, None, cls, STORAGE_DICT))
        return declared + extra

    def static_fields_of(self, cls: type, include_private: bool = True) -> List[FieldDescriptor]:
        annotations = _own_annotations(cls)
        out: List[FieldDescriptor] = []
        for name, value in vars(cls).items():
            if _is_dunder(name) or (not include_private and name.startswith("_")):
                continue
            if _is_static_declaration(value):
                continue
            out.append(FieldDescriptor(name, annotations.get(name), cls, STORAGE_STATIC))
        return out

    def module_fields_of(self, module: types.ModuleType, include_private: bool = True) -> List[FieldDescriptor]:
        annotations = _own_annotations(module)
        out: List[FieldDescriptor] = []
        for name, value in vars(module).items():
            if _is_dunder(name) or (not include_private and name.startswith("_")):
                continue
            if _is_declaration(value):
                continue
            out.append(FieldDescriptor(name, annotations.get(name), module, STORAGE_GLOBAL))
        return out

    def get_value(self, descriptor: FieldDescriptor, owner: Any) -> Any:
        try:
            return _read(descriptor, owner)
        except (FieldAccessError, RecursionError):
            raise
        except Exception as e:
            raise FieldAccessError(descriptor.name, descriptor.declared_type_name, e) from e


# -----------------------------------------------------------------------------
# TYPE NAMES AND FIXED LAYOUTS
# -----------------------------------------------------------------------------

def formatted_type_name(tp: Any) -> str:
    """Render a class, annotation or annotation string as a readable name."""
    if tp is None:
        return "-"
    if isinstance(tp, str):
        return tp
    if isinstance(tp, type) and not typing.get_args(tp):
        module = getattr(tp, "__module__", "")
        qualname = getattr(tp, "__qualname__", tp.__name__)
        if module in ("builtins", ""):
            return qualname
        return f"{module}.{qualname}"
    return repr(tp).replace("typing.", "")


def is_ctypes_scalar_type(tp: Any) -> bool:
    return isinstance(tp, type) and issubclass(tp, ctypes._SimpleCData) and not _is_reference_ctype(tp)


def is_fixed_layout_type(tp: Any) -> bool:
    """Return True for ctypes structures, unions and arrays."""
    return isinstance(tp, type) and issubclass(tp, (ctypes.Structure, ctypes.Union, ctypes.Array))


def size_of_fixed_layout(cls: type) -> int:
    """
    Return the packed size of a fixed-layout type.

    Raises:
        LayoutError: The layout embeds a reference or cannot be sized.
    """
    offender = _find_embedded_reference(cls)
    if offender is not None:
        raise LayoutError(formatted_type_name(cls), f"embeds reference member '{offender}'")
    try:
        return ctypes.sizeof(cls)
    except TypeError as e:
        raise LayoutError(formatted_type_name(cls), str(e)) from e


# -----------------------------------------------------------------------------
# PRIVATE HELPERS
# -----------------------------------------------------------------------------

def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def _slot_names(klass: type) -> List[str]:
    slots = klass.__dict__.get("__slots__", ())
    if isinstance(slots, str):
        slots = (slots,)
    out: List[str] = []
    for name in slots:
        if name in ("__dict__", "__weakref__"):
            continue
        out.append(_mangle(klass, name))
    return out


def _mangle(klass: type, name: str) -> str:
    if name.startswith("__") and not name.endswith("__"):
        return f"_{klass.__name__.lstrip('_')}{name}"
    return name


def _own_annotations(owner: Any) -> Dict[str, Any]:
    # Postponed annotations are evaluated so ctypes widths can apply
    try:
        return dict(inspect.get_annotations(owner, eval_str=True))
    except RecursionError:
        raise
    except Exception:
        pass
    try:
        return dict(inspect.get_annotations(owner))
    except (TypeError, NameError):
        return {}


def _is_classvar(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(("ClassVar", "typing.ClassVar"))
    return annotation is typing.ClassVar or typing.get_origin(annotation) is typing.ClassVar


def _is_declaration(value: Any) -> bool:
    """Module globals that declare code or types rather than hold data."""
    if type(value).__module__ in _ANNOTATION_MODULES:
        return True
    return _checks_type(value, (types.ModuleType, __future__._Feature)) or _is_code_or_class(value)


def _is_static_declaration(value: Any) -> bool:
    return _checks_type(value, _STATIC_EXCLUDED) or _is_code_or_class(value)


def _is_code_or_class(value: Any) -> bool:
    try:
        return inspect.isclass(value) or inspect.isroutine(value)
    except RecursionError:
        raise
    except Exception:
        # isinstance() failed on a broken __class__; the value is reported as data
        return False


def _checks_type(value: Any, kinds: Tuple[type, ...]) -> bool:
    try:
        return isinstance(value, kinds)
    except RecursionError:
        raise
    except Exception:
        return False


def _instance_dict(obj: Any) -> Optional[Dict[str, Any]]:
    try:
        d = object.__getattribute__(obj, "__dict__")
    except AttributeError:
        return None
    return d if isinstance(d, dict) else None


def _read(descriptor: FieldDescriptor, owner: Any) -> Any:
    storage = descriptor.storage
    if storage in (STORAGE_STATIC, STORAGE_GLOBAL):
        return vars(owner).get(descriptor.name, MISSING)

    if storage == STORAGE_SLOT:
        member = descriptor.owner.__dict__.get(descriptor.name)
        if member is None:
            return MISSING
        try:
            return member.__get__(owner, type(owner))
        except AttributeError:
            # Slot declared but never assigned
            return MISSING

    d = _instance_dict(owner)
    if d is None or descriptor.name not in d:
        return MISSING
    return d[descriptor.name]


def _is_reference_ctype(tp: type) -> bool:
    if issubclass(tp, ctypes._Pointer):
        return True
    if issubclass(tp, ctypes._CFuncPtr):
        return True
    return issubclass(tp, ctypes._SimpleCData) and getattr(tp, "_type_", "") in ("P", "z", "Z", "O")


def _find_embedded_reference(cls: type) -> Optional[str]:
    """Return the dotted path of the first reference member, if any."""
    stack: List[Tuple[str, type]] = [(formatted_type_name(cls), cls)]
    while stack:
        path, tp = stack.pop()
        if _is_reference_ctype(tp):
            return path
        if issubclass(tp, ctypes.Array):
            stack.append((f"{path}[]", tp._type_))
            continue
        if issubclass(tp, (ctypes.Structure, ctypes.Union)):
            for member in reversed(getattr(tp, "_fields_", ())):
                stack.append((f"{path}.{member[0]}", member[1]))
    return None
