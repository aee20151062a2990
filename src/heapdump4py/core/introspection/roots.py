from __future__ import annotations

"""
Root Discovery.

Locates the target module and its already loaded submodules, and lists
the classes they define, nested classes included, in definition order.
"""

import importlib
import logging
import sys
import types
from typing import Any, List, Set

from heapdump4py.domain.errors import RootEnumerationError

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def list_target_modules(module_filter: str) -> List[types.ModuleType]:
    """
    Import the target module and collect it with its loaded submodules.

    Args:
        module_filter: Dotted module name, e.g. "game" or "game.state".

    Returns:
        List[types.ModuleType]: Target module first, then submodules by name.

    Raises:
        RootEnumerationError: The module cannot be located or imported.
    """
    name = (module_filter or "").strip()
    if not name:
        raise RootEnumerationError("No target module given.")

    try:
        root = importlib.import_module(name)
    except Exception as e:
        raise RootEnumerationError(f"Cannot locate target module '{name}': {e}") from e

    prefix = name + "."
    submodules = [
        m for key, m in sorted(sys.modules.items())
        if key.startswith(prefix) and isinstance(m, types.ModuleType)
    ]
    logger.debug(f"Target module '{name}' with {len(submodules)} loaded submodule(s).")
    return [root] + submodules


def list_loaded_types(module_filter: str) -> List[type]:
    """List the classes defined by the target modules."""
    return types_of_modules(list_target_modules(module_filter))


def types_of_modules(modules: List[types.ModuleType]) -> List[type]:
    """
    Collect the classes defined in the given modules, nested classes included.

    Re-exported classes are listed once, under the module that defines them.
    """
    names = {m.__name__ for m in modules}
    seen: Set[int] = set()
    out: List[type] = []

    for module in modules:
        stack: List[Any] = [
            v for v in reversed(list(vars(module).values()))
            if _is_class(v) and v.__module__ == module.__name__
        ]
        while stack:
            cls = stack.pop()
            if id(cls) in seen or cls.__module__ not in names:
                continue
            seen.add(id(cls))
            out.append(cls)
            nested = [
                v for v in vars(cls).values()
                if _is_class(v) and v.__qualname__.startswith(cls.__qualname__ + ".")
            ]
            stack.extend(reversed(nested))
    return out


def load_object(reference: str) -> Any:
    """
    Resolve a "package.module:attribute.path" reference.

    Raises:
        RootEnumerationError: The module or attribute does not exist.
    """
    module_name, _, attr_path = reference.partition(":")
    try:
        obj: Any = importlib.import_module(module_name)
    except Exception as e:
        raise RootEnumerationError(f"Cannot import '{module_name}': {e}") from e

    for part in filter(None, attr_path.split(".")):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise RootEnumerationError(f"'{reference}' has no attribute '{part}'.") from e
    if callable(obj) and not isinstance(obj, type) and attr_path:
        # Scene factories are called once to produce the scene
        obj = obj()
    return obj


# -----------------------------------------------------------------------------
# PRIVATE HELPERS
# -----------------------------------------------------------------------------

def _is_class(value: Any) -> bool:
    # type() never consults a proxy's __class__
    return issubclass(type(value), type)
