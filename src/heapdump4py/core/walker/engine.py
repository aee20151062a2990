from __future__ import annotations

"""
Graph Walker.

Traverses the object graph reachable from the static roots and the scene
containers, classifying and sizing every value and building the report
tree as it goes. Shared objects are expanded once; every further reference
becomes a zero-cost cycle-reference node.

Two expansion strategies are supported:

- queued (default): instances and reference sequences reached through a
  field or a slot get a placeholder node and are expanded later from a FIFO
  work queue. Stack depth stays constant whatever the graph shape.
- eager: the same values are expanded immediately by recursion. Simpler
  output order, but long reference chains can exhaust the interpreter stack.
"""

import enum
import logging
import types
from typing import Any, Iterable, Iterator, Optional, Tuple

from heapdump4py.core.introspection.fields import (
    MISSING,
    FieldDescriptor,
    Introspector,
    PythonIntrospector,
    formatted_type_name,
)
from heapdump4py.core.introspection.scene import Scene
from heapdump4py.core.report.assembler import reconcile
from heapdump4py.core.services.classifier import classify
from heapdump4py.core.services.estimator import DEFAULT_PLATFORM, Platform, payload_size, slot_charge
from heapdump4py.core.walker.context import TraversalContext
from heapdump4py.domain.classification import (
    Absent,
    Aggregate,
    Enumerated,
    Instance,
    Primitive,
    Sequence,
    Text,
    ValueClassification,
)
from heapdump4py.domain.constants import DEFAULT_MAX_VALUE_REPR, DEFAULT_STRATEGY, STRATEGIES, STRATEGY_EAGER
from heapdump4py.domain.errors import FieldAccessError, HeapDumpError
from heapdump4py.domain.report_models import NodeKind, ReportNode

logger = logging.getLogger(__name__)

REASON_ENUM = "IsEnum"
REASON_GENERIC = "IsGenericType"


class GraphWalker:
    """
    Orchestrates one traversal run.

    A walker owns a fresh TraversalContext; use a new walker per dump.
    """

    def __init__(
            self,
            strategy: str = DEFAULT_STRATEGY,
            introspector: Optional[Introspector] = None,
            platform: Platform = DEFAULT_PLATFORM,
            *,
            skip_empty_types: bool = False,
            include_private_statics: bool = True,
            record_values: bool = True,
            max_value_repr: int = DEFAULT_MAX_VALUE_REPR,
    ) -> None:
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown strategy '{strategy}'.")
        self.strategy = strategy
        self.introspector = introspector or PythonIntrospector()
        self.platform = platform
        self.skip_empty_types = skip_empty_types
        self.include_private_statics = include_private_statics
        self.record_values = record_values
        self.max_value_repr = max_value_repr
        self.context = TraversalContext()

    @property
    def eager(self) -> bool:
        return self.strategy == STRATEGY_EAGER

    # -------------------------------------------------------------------------
    # ROOTS
    # -------------------------------------------------------------------------

    def walk(
            self,
            static_types: Iterable[type] = (),
            scene: Optional[Scene] = None,
            modules: Iterable[types.ModuleType] = (),
    ) -> ReportNode:
        """
        Run a complete traversal and return the reconciled report root.

        Statics are reported first (module globals, then types), then the
        scene. The work queue is drained once every root has been visited.
        """
        root = ReportNode(NodeKind.DUMP)
        root.add(self.report_statics(static_types, modules))
        if scene is not None:
            root.add(self.report_scene(scene))

        self.drain()
        reconcile(root, self.context.registry)
        self.context.total_size = root.size

        logger.info(
            f"Traversal complete: {len(self.context.registry)} objects, "
            f"{root.size} bytes estimated ({self.strategy})."
        )
        return root

    def report_statics(
            self,
            static_types: Iterable[type],
            modules: Iterable[types.ModuleType] = (),
    ) -> ReportNode:
        group = ReportNode(NodeKind.GROUP, name="statics")
        for module in modules:
            group.add(self.report_module(module))
        for cls in static_types:
            node = self.report_static_type(cls)
            if node is not None:
                group.add(node)
        group.try_resolve()
        return group

    def report_module(self, module: types.ModuleType) -> ReportNode:
        """Report the global data of a module as a static-type node."""
        node = ReportNode(NodeKind.STATIC_TYPE, type_name=module.__name__, name="<module>")
        fields = self.introspector.module_fields_of(module, self.include_private_statics)
        for descriptor in fields:
            self._add_field(node, module, descriptor)
        node.try_resolve()
        return node

    def report_static_type(self, cls: type) -> Optional[ReportNode]:
        """
        Report the static fields declared on a type.

        Enum types only hold constants and generic definitions have no
        enumerable per-instantiation statics; both get an ignored marker.
        """
        type_name = self.introspector.formatted_type_name(cls)
        reason = _ignore_reason(cls)
        if reason is not None:
            if self.skip_empty_types:
                return None
            node = ReportNode(NodeKind.STATIC_TYPE, type_name=type_name)
            node.add(ReportNode(NodeKind.IGNORED, type_name=type_name, reason=reason, size=0))
            node.try_resolve()
            return node

        fields = self.introspector.static_fields_of(cls, self.include_private_statics)
        if not fields and self.skip_empty_types:
            return None

        node = ReportNode(NodeKind.STATIC_TYPE, type_name=type_name)
        for descriptor in fields:
            self._add_field(node, cls, descriptor)
        node.try_resolve()
        self.context.stats.types += 1
        return node

    def report_scene(self, scene: Scene) -> ReportNode:
        group = ReportNode(NodeKind.GROUP, name="scene", type_name=scene.name)
        for handle in scene.list_top_level_containers():
            group.add(self.report_container(scene, handle))
        group.try_resolve()
        return group

    def report_container(self, scene: Scene, handle: Any) -> ReportNode:
        """
        Expand a container depth-first: child containers, then components.

        The container stays reserved while its subtree is reported so that
        a self-referential hierarchy closes with a cycle reference.
        """
        registry = self.context.registry
        name = scene.container_name(handle)
        entry = registry.try_get(id(handle))
        if entry is not None:
            return self._cycle_reference(handle, name)

        node = ReportNode(
            NodeKind.ROOT_CONTAINER,
            type_name=self.introspector.formatted_type_name(type(handle)),
            name=name,
            identity=id(handle),
        )
        registry.reserve(handle, node)
        self.context.stats.containers += 1

        for child in scene.list_child_containers(handle):
            node.add(self.report_container(scene, child))

        for component in scene.list_attached_components(handle):
            if component is None:
                continue
            try:
                node.add(self._report_component(component, name))
            except (RecursionError, HeapDumpError):
                raise
            except Exception as e:
                self._skip(f"component of container '{name}'", e)

        if node.try_resolve():
            registry.finalize(id(handle), node.size)
        return node

    # -------------------------------------------------------------------------
    # FIELDS AND VALUES
    # -------------------------------------------------------------------------

    def report_field(self, owner: Any, descriptor: FieldDescriptor) -> Optional[ReportNode]:
        """
        Report one field: its slot charge plus the reported value.

        Returns:
            Optional[ReportNode]: The field node, or None when the field holds
            no value or could not be read or sized (the failure is logged).
        """
        try:
            value = self.introspector.get_value(descriptor, owner)
        except FieldAccessError as e:
            self.context.stats.warnings += 1
            logger.warning(f"Skipping field: {e}")
            return None
        if value is MISSING:
            return None

        try:
            classification = self._classify(value, descriptor.declared_type)
            runtime_name = "-null-" if value is None else self.introspector.formatted_type_name(type(value))
            node = ReportNode(
                NodeKind.FIELD,
                type_name=descriptor.declared_type_name if descriptor.declared_type is not None else runtime_name,
                name=descriptor.name,
                runtime_type=runtime_name,
                own_overhead=slot_charge(classification, self.platform.pointer_width),
            )
            node.add(self.report_value(value, descriptor.declared_type, classification))
        except (RecursionError, HeapDumpError):
            raise
        except Exception as e:
            self._skip(f"field '{descriptor.name}' ({descriptor.declared_type_name})", e)
            return None
        node.try_resolve()
        return node

    def report_value(
            self,
            value: Any,
            declared_type: Any = None,
            classification: Optional[ValueClassification] = None,
            name: Optional[str] = None,
    ) -> ReportNode:
        """
        Report a value whose slot has already been charged by its owner.

        Returns a resolved node, or for deferred values a pending placeholder.
        """
        c = classification or self._classify(value, declared_type)

        if isinstance(c, Absent):
            return ReportNode(NodeKind.NULL, name=name, size=0)

        if isinstance(c, (Primitive, Enumerated)):
            width = payload_size(c, self.platform)
            return ReportNode(
                NodeKind.VALUE,
                type_name=self.introspector.formatted_type_name(type(value)),
                name=name,
                size=width,
                own_overhead=width,
                value=self._render(value),
            )

        if isinstance(c, Aggregate):
            return self._report_aggregate(value, c, name)

        entry = self.context.registry.try_get(id(value))
        if entry is not None:
            return self._cycle_reference(value, name)

        if isinstance(c, Text):
            return self._report_text(value, c, name)

        if isinstance(c, Sequence):
            node = ReportNode(
                NodeKind.ARRAY,
                type_name=self.introspector.formatted_type_name(type(value)),
                name=name,
                own_overhead=payload_size(c, self.platform),
                length=c.flattened_length,
                rank=c.rank,
                identity=id(value),
            )
            if self.eager or not c.holds_references:
                self._expand_sequence(value, c, node)
            else:
                self.context.enqueue(value, c, node)
            return node

        node = ReportNode(
            NodeKind.INSTANCE,
            type_name=self.introspector.formatted_type_name(type(value)),
            name=name,
            identity=id(value),
        )
        if self.eager:
            self.report_class_instance(value, node)
        else:
            self.context.enqueue(value, c, node)
        return node

    def report_class_instance(self, obj: Any, node: ReportNode) -> ReportNode:
        """
        Expand an instance into its fields.

        The identity is reserved before any field is read so a field that
        leads back to the object closes with a cycle reference. The entry is
        finalized here when every field is resolved, otherwise during
        reconciliation.
        """
        registry = self.context.registry
        registry.reserve(obj, node)
        try:
            fields = self.introspector.instance_fields(obj)
        except (RecursionError, HeapDumpError):
            raise
        except Exception as e:
            self._skip(f"fields of {node.type_name}", e)
            fields = []
        for descriptor in fields:
            self._add_field(node, obj, descriptor)
        if node.try_resolve():
            registry.finalize(id(obj), node.size)
        return node

    def drain(self) -> int:
        """
        Expand deferred values until the work queue is empty.

        A value may have been queued twice, or expanded elsewhere since it
        was queued; its placeholder then becomes a cycle reference.

        Returns:
            int: Number of placeholders expanded.
        """
        queue = self.context.queue
        registry = self.context.registry
        expanded = 0
        while queue:
            value, classification, node = queue.popleft()
            if registry.contains(id(value)):
                node.become_cycle_reference(id(value))
                continue
            if isinstance(classification, Sequence):
                self._expand_sequence(value, classification, node)
            else:
                self.report_class_instance(value, node)
            expanded += 1
        return expanded

    # -------------------------------------------------------------------------
    # PRIVATE HELPERS
    # -------------------------------------------------------------------------

    def _classify(self, value: Any, declared_type: Any = None) -> ValueClassification:
        return classify(
            value,
            declared_type,
            platform=self.platform,
            layout_size=self.introspector.size_of_fixed_layout,
        )

    def _skip(self, what: str, error: Exception) -> None:
        self.context.stats.warnings += 1
        logger.warning(f"Skipping {what}: {type(error).__name__}: {error}")

    def _add_field(self, node: ReportNode, owner: Any, descriptor: FieldDescriptor) -> None:
        child = self.report_field(owner, descriptor)
        if child is not None:
            node.add(child)

    def _report_component(self, component: Any, container_name: str) -> ReportNode:
        c = self._classify(component)
        if not isinstance(c, Instance):
            return self.report_value(component, classification=c, name=container_name)
        if self.context.registry.contains(id(component)):
            return self._cycle_reference(component, container_name)
        node = ReportNode(
            NodeKind.INSTANCE,
            type_name=self.introspector.formatted_type_name(type(component)),
            name=container_name,
            identity=id(component),
        )
        return self.report_class_instance(component, node)

    def _report_aggregate(self, value: Any, c: Aggregate, name: Optional[str]) -> ReportNode:
        if c.error:
            self.context.stats.warnings += 1
            logger.warning(f"Fixed layout size unavailable, counted as 0: {c.error}")
        return ReportNode(
            NodeKind.STRUCT,
            type_name=self.introspector.formatted_type_name(type(value)),
            name=name,
            size=c.declared_size,
            own_overhead=c.declared_size,
            reason=c.error,
        )

    def _report_text(self, value: str, c: Text, name: Optional[str]) -> ReportNode:
        payload = payload_size(c, self.platform)
        node = ReportNode(
            NodeKind.STRING,
            type_name="str",
            name=name,
            size=payload,
            own_overhead=payload,
            length=c.length,
            identity=id(value),
        )
        registry = self.context.registry
        registry.reserve(value, node)
        registry.finalize(id(value), payload)
        return node

    def _expand_sequence(self, value: Any, c: Sequence, node: ReportNode) -> ReportNode:
        registry = self.context.registry
        registry.reserve(value, node)
        if c.holds_references:
            # Elements reported before a failure keep their share of the size
            try:
                for label, element in self._sequence_items(value):
                    if element is None:
                        continue
                    try:
                        node.add(self.report_value(element, name=label))
                    except (RecursionError, HeapDumpError):
                        raise
                    except Exception as e:
                        self._skip(f"element {label} of {node.type_name}", e)
            except (RecursionError, HeapDumpError):
                raise
            except Exception as e:
                self._skip(f"remaining elements of {node.type_name}", e)
        if node.try_resolve():
            registry.finalize(id(value), node.size)
        return node

    def _sequence_items(self, value: Any) -> Iterator[Tuple[str, Any]]:
        if isinstance(value, dict):
            for key, item in list(value.items()):
                yield "key", key
                yield f"[{self._short_repr(key)}]", item
            return
        for index, item in enumerate(value):
            yield f"[{index}]", item

    def _cycle_reference(self, value: Any, name: Optional[str]) -> ReportNode:
        entry = self.context.registry.try_get(id(value))
        runtime_type = entry.runtime_type if entry is not None else type(value)
        return ReportNode(
            NodeKind.CYCLE_REFERENCE,
            type_name=self.introspector.formatted_type_name(runtime_type),
            name=name,
            size=0,
            referenced_size=None if entry is None or entry.in_progress else entry.size,
            identity=id(value),
        )

    def _render(self, value: Any) -> Optional[str]:
        if not self.record_values:
            return None
        if isinstance(value, enum.Enum):
            return f"{type(value).__name__}.{value.name}"
        return self._short_repr(value)

    def _short_repr(self, value: Any) -> str:
        try:
            text = repr(value)
        except RecursionError:
            raise
        except Exception as e:
            logger.debug(f"repr() failed for {type(value).__name__}: {e}")
            text = f"<{type(value).__name__}>"
        limit = self.max_value_repr
        if limit and len(text) > limit:
            return text[: max(limit - 3, 0)] + "..."
        return text


def _ignore_reason(cls: type) -> Optional[str]:
    if isinstance(cls, type) and issubclass(cls, enum.Enum):
        return REASON_ENUM
    parameters = getattr(cls, "__parameters__", ())
    if isinstance(parameters, tuple) and parameters:
        return REASON_GENERIC
    return None
