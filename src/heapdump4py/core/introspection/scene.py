from __future__ import annotations

"""
Scene Graph Boundary.

Hierarchical containers with attached components form the second root set
of a dump. The walker only talks to the Scene interface; ContainerScene
serves it from in-memory Container objects.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

from heapdump4py.domain.constants import DEFAULT_CONTEXT_NAME
from heapdump4py.domain.errors import RootEnumerationError

# -----------------------------------------------------------------------------
# INTERFACE
# -----------------------------------------------------------------------------

class Scene(ABC):
    """Read-only view over a forest of containers."""

    name: str = DEFAULT_CONTEXT_NAME

    @abstractmethod
    def list_top_level_containers(self) -> List[Any]:
        """Containers without a parent container."""

    @abstractmethod
    def list_child_containers(self, handle: Any) -> List[Any]:
        """Direct children of a container."""

    @abstractmethod
    def list_attached_components(self, handle: Any) -> List[Any]:
        """User components of a container, without the structural transform."""

    def container_name(self, handle: Any) -> str:
        return str(getattr(handle, "name", "") or "")


# -----------------------------------------------------------------------------
# IN-MEMORY CONTAINERS
# -----------------------------------------------------------------------------

class Transform:
    """Structural parent link every container carries."""

    def __init__(self, container: "Container") -> None:
        self.container = container

    @property
    def parent(self) -> Optional["Transform"]:
        parent = self.container.parent
        return parent.transform if parent is not None else None


class Container:
    """A named node of the scene hierarchy with attached components."""

    def __init__(self, name: str, parent: Optional["Container"] = None) -> None:
        self.name = name
        self.parent: Optional[Container] = None
        self.children: List[Container] = []
        self.transform = Transform(self)
        self.components: List[Any] = [self.transform]
        if parent is not None:
            parent.add_child(self)

    def add_child(self, child: "Container") -> "Container":
        if child.parent is not None:
            child.parent.children.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def add_component(self, component: Any) -> Any:
        self.components.append(component)
        return component

    def __repr__(self) -> str:
        return f"Container({self.name!r}, children={len(self.children)})"


class ContainerScene(Scene):
    """Scene over a list of Container objects (parented ones are skipped as roots)."""

    def __init__(self, containers: Iterable[Container], name: str = DEFAULT_CONTEXT_NAME) -> None:
        self._containers = list(containers)
        self.name = name

    def list_top_level_containers(self) -> List[Container]:
        return [c for c in self._containers if c.parent is None]

    def list_child_containers(self, handle: Container) -> List[Container]:
        return list(handle.children)

    def list_attached_components(self, handle: Container) -> List[Any]:
        return [c for c in handle.components if not isinstance(c, Transform)]


# -----------------------------------------------------------------------------
# RESOLUTION
# -----------------------------------------------------------------------------

def resolve_scene(obj: Any, name: Optional[str] = None) -> Scene:
    """
    Adapt a scene-like object to the Scene interface.

    Accepts a Scene, a single Container or an iterable of Containers.

    Raises:
        RootEnumerationError: The object cannot serve as a scene.
    """
    if isinstance(obj, Scene):
        if name:
            obj.name = name
        return obj
    if isinstance(obj, Container):
        return ContainerScene([obj], name=name or obj.name or DEFAULT_CONTEXT_NAME)
    if isinstance(obj, (list, tuple)) and all(isinstance(c, Container) for c in obj):
        return ContainerScene(obj, name=name or DEFAULT_CONTEXT_NAME)
    raise RootEnumerationError(
        f"Cannot enumerate containers of {type(obj).__name__}: expected a Scene or Container objects."
    )
