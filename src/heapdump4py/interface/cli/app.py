from __future__ import annotations

"""
Command Line Interface (CLI) Application Controller.

Orchestrates the CLI lifecycle: initialization of logging, loading and merging
of configuration sources (defaults, persistent storage, and CLI overrides),
root resolution, dump execution, and result rendering.
"""

import json
import sys
from typing import Any, Dict, List, Optional

from heapdump4py.core.dump import dump_to_xml
from heapdump4py.core.introspection.roots import list_target_modules, load_object
from heapdump4py.core.introspection.scene import resolve_scene
from heapdump4py.core.services.validator import validate_config
from heapdump4py.domain.config import get_default_config, load_config
from heapdump4py.domain.dump_models import DumpResult
from heapdump4py.domain.errors import RootEnumerationError
from heapdump4py.infra.logging import LoggingConfig, configure_logging, get_logger
from heapdump4py.interface.cli import args as cli_args

logger = get_logger(__name__)

# -----------------------------------------------------------------------------
# ENTRYPOINT ORCHESTRATOR
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """
    Execute the main CLI application workflow.

    Args:
        argv: Optional list of command line arguments. Defaults to sys.argv.

    Returns:
        int: Process exit code (0 success, 1 dump failure, 2 invalid input).
    """
    if sys.platform == "win32":
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8")
        if hasattr(sys.stderr, "reconfigure"):
            sys.stderr.reconfigure(encoding="utf-8")

    # 1. Argument parsing phase
    parser = cli_args.build_parser()
    args = parser.parse_args(argv)

    # 2. Logging bootstrap (CLI-specific: Console stderr)
    log_level = "DEBUG" if args.debug else "INFO"
    logging_conf = LoggingConfig(level=log_level, console=True, log_file=args.log_file)
    configure_logging(logging_conf, force=True)

    logger.debug("CLI execution initiated. Resolving configuration hierarchy...")

    # 3. Resolve base configuration (Default vs Persistent state)
    if args.use_defaults:
        base_conf = get_default_config()
    else:
        base_conf = load_config()

    # 4. Map and merge command-line overrides
    overrides = cli_args.args_to_overrides(args)
    raw_conf = _merge_config(base_conf, overrides)

    # 5. Schema validation and normalization
    clean_conf, warnings = validate_config(raw_conf, strict=False)

    if warnings:
        for w in warnings:
            logger.warning(f"Configuration Constraint: {w}")

    # Short-circuit if configuration dump is requested
    if args.dump_config:
        print(json.dumps(clean_conf, ensure_ascii=False, indent=2))
        return 0

    # 6. Pre-flight root verification
    if not args.module:
        msg = "No target module given."
        logger.error(msg)
        print(f"ERROR: {msg}", file=sys.stderr)
        return 2

    scene = None
    try:
        list_target_modules(args.module)
        if args.scene_ref:
            scene = resolve_scene(load_object(args.scene_ref), args.scene_name)
    except RootEnumerationError as e:
        logger.error(str(e))
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    # 7. Dump execution phase
    logger.info(f"Targeting module: {args.module}")
    try:
        result = dump_to_xml(args.module, scene, clean_conf, dry_run=bool(args.dry_run))
    except KeyboardInterrupt:
        msg = "Dump interrupted by user."
        logger.warning(msg)
        print(msg, file=sys.stderr)
        return 130
    except Exception as e:
        msg = f"Heap dump failed: {e}"
        logger.critical(msg, exc_info=True)
        print(f"ERROR: {msg}", file=sys.stderr)
        return 1

    # 8. Output rendering phase
    if args.json_output:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_human_summary(result)

    return 0 if result.ok else 1

# -----------------------------------------------------------------------------
# CONFIGURATION MERGING
# -----------------------------------------------------------------------------

def _merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Perform a shallow merge of override values into the base configuration.

    Filters input to ensure only known keys are merged, preventing schema
    pollution from external sources.

    Args:
        base: The primary configuration dictionary.
        overrides: New values to inject.

    Returns:
        Dict[str, Any]: The merged configuration state.
    """
    out = dict(base)
    keys_to_merge = [
        "output_dir", "output_prefix", "strategy",
        "skip_empty_types", "include_module_globals", "include_private_statics",
        "record_values", "verify_invariants", "print_tree", "tree_depth",
    ]
    for k in keys_to_merge:
        if k in overrides and overrides[k] is not None:
            out[k] = overrides[k]
    return out

# -----------------------------------------------------------------------------
# VIEW RENDERING (HUMAN READABLE)
# -----------------------------------------------------------------------------

def _print_human_summary(result: DumpResult) -> None:
    """
    Format and print the dump result to the standard output.

    Args:
        result: The dump result to render.
    """
    if not result.ok:
        print(f"ERROR: {result.error}", file=sys.stderr)
        return

    print("Heap dump completed.")
    if result.summary.get("dry_run"):
        print("Dry run: no report written.")
    elif result.output_path:
        print(f"Report: {result.output_path}")

    print(f"Estimated size: {result.total_size:,} bytes")

    stats = {
        "Objects": result.object_count,
        "Types": result.type_count,
        "Containers": result.container_count,
        "Deferred expansions": result.deferred_count,
        "Warnings": result.warning_count,
    }
    for label, value in stats.items():
        print(f"{label}: {value}")

# -----------------------------------------------------------------------------
# CLI ENTRYPOINT
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
