from __future__ import annotations

"""
Heap Dump Orchestrator.

This module coordinates a complete dump:
1. Validates the configuration.
2. Enumerates the static roots of the target module and resolves the scene.
3. Walks the object graph with the configured strategy.
4. Verifies and sorts the report tree.
5. Streams the report to a new timestamped XML file.

Fatal conditions never produce a partial file; they are logged and
returned as an error result.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from heapdump4py.core.introspection.fields import Introspector
from heapdump4py.core.introspection.roots import list_target_modules, types_of_modules
from heapdump4py.core.introspection.scene import Scene, resolve_scene
from heapdump4py.core.report.assembler import finish_tree
from heapdump4py.core.report.text_renderer import render_report
from heapdump4py.core.report.xml_writer import write_report
from heapdump4py.core.services.estimator import DEFAULT_PLATFORM, Platform
from heapdump4py.core.services.validator import validate_config
from heapdump4py.core.walker.engine import GraphWalker
from heapdump4py.domain.dump_models import DumpResult, create_error_result, create_success_result
from heapdump4py.domain.errors import HeapDumpError, RootEnumerationError

logger = logging.getLogger(__name__)


def dump_to_xml(
        module_filter: str,
        scene: Any = None,
        config: Optional[Dict[str, Any]] = None,
        *,
        dry_run: bool = False,
        introspector: Optional[Introspector] = None,
        platform: Optional[Platform] = None,
        now: Optional[datetime] = None,
) -> DumpResult:
    """
    Dump everything reachable from a module's statics and a scene to XML.

    Args:
        module_filter: Dotted name of the module whose classes are the static roots.
        scene: Scene, Container or list of Containers; None dumps statics only.
        config: Raw or partial configuration dictionary.
        dry_run: If True, build the report without writing any file.
        introspector: Reflection adapter override.
        platform: Storage widths override.
        now: Timestamp embedded in the file name.

    Returns:
        DumpResult: Outcome with the report tree and run counters.
    """
    logger.info(f"Heap dump started for module '{module_filter}'.")

    # -------------------------------------------------------------------------
    # 1) Config
    # -------------------------------------------------------------------------
    cfg, warnings = validate_config(config if config is not None else {}, strict=False)
    for warning in warnings:
        logger.warning(f"Configuration Warning: {warning}")

    # -------------------------------------------------------------------------
    # 2) Roots
    # -------------------------------------------------------------------------
    context_name = module_filter
    try:
        modules = list_target_modules(module_filter)
        static_types = types_of_modules(modules)
        resolved_scene: Optional[Scene] = None
        if scene is not None:
            resolved_scene = resolve_scene(scene)
            context_name = resolved_scene.name
    except RootEnumerationError as e:
        logger.error(f"Cannot enumerate dump roots: {e}")
        return create_error_result(str(e), cfg, module_filter, context_name)

    logger.debug(f"{len(static_types)} type(s) across {len(modules)} module(s).")

    # -------------------------------------------------------------------------
    # 3) Traversal & Assembly
    # -------------------------------------------------------------------------
    walker = GraphWalker(
        cfg["strategy"],
        introspector,
        platform or DEFAULT_PLATFORM,
        skip_empty_types=cfg["skip_empty_types"],
        include_private_statics=cfg["include_private_statics"],
        record_values=cfg["record_values"],
        max_value_repr=cfg["max_value_repr"],
    )
    try:
        tree = walker.walk(
            static_types,
            resolved_scene,
            modules if cfg["include_module_globals"] else (),
        )
        finish_tree(tree, verify=cfg["verify_invariants"])
    except RecursionError:
        msg = (
            "Reference chain too deep for the eager strategy. "
            "Use the 'queued' strategy for this graph."
        )
        logger.error(msg)
        return create_error_result(msg, cfg, module_filter, context_name, walker.context.summary())
    except HeapDumpError as e:
        logger.critical(f"Heap dump aborted: {e}", exc_info=True)
        return create_error_result(str(e), cfg, module_filter, context_name, walker.context.summary())

    stats = walker.context.summary()
    if walker.context.stats.warnings:
        logger.warning(f"Dump completed with {walker.context.stats.warnings} warning(s).")

    if cfg["print_tree"]:
        for line in render_report(tree, cfg["tree_depth"]):
            logger.info(line)

    # -------------------------------------------------------------------------
    # 4) Output
    # -------------------------------------------------------------------------
    output_path = ""
    if not dry_run:
        try:
            output_path = write_report(tree, cfg["output_dir"], context_name, cfg["output_prefix"], now)
        except OSError as e:
            msg = f"Failed to write heap dump: {e}"
            logger.error(msg)
            return create_error_result(msg, cfg, module_filter, context_name, stats)

    return create_success_result(
        cfg,
        module_filter,
        context_name,
        output_path,
        tree,
        stats,
        summary_extra={"dry_run": dry_run, "max_queue": stats.get("max_queue", 0)},
    )
