from __future__ import annotations

"""
CLI Argument Definition and Mapping.

Defines the command-line interface schema, including help messages,
argument types, and defaults. Provides logic to translate raw argparse
namespaces into domain-compatible configuration overrides.
"""

import argparse
from typing import Any, Dict

from heapdump4py.domain.constants import STRATEGIES

# -----------------------------------------------------------------------------
# ARGUMENT DEFINITION
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """
    Construct the argument parser for the HeapDump4Py CLI.

    Returns:
        argparse.ArgumentParser: Configured parser instance.
    """
    p = argparse.ArgumentParser(
        prog="heapdump4py",
        description="Estimate the memory held by a module's statics and a scene, as an XML report.",
    )

    # --- Dump Roots ---
    p.add_argument(
        "module",
        nargs="?",
        default=None,
        help="Target module whose classes and globals are the static roots.",
    )
    p.add_argument(
        "--scene",
        dest="scene_ref",
        default=None,
        help="Scene to dump, as 'package.module:attribute' (callables are invoked).",
    )
    p.add_argument(
        "--scene-name",
        dest="scene_name",
        default=None,
        help="Context name used in the report file name.",
    )

    # --- Path Management ---
    p.add_argument(
        "-o", "--output-dir",
        dest="output_dir",
        default=None,
        help="Directory receiving the report.",
    )
    p.add_argument(
        "--prefix",
        dest="output_prefix",
        default=None,
        help="Leading token of the report file name.",
    )

    # --- Traversal ---
    p.add_argument(
        "--strategy",
        choices=STRATEGIES,
        default=None,
        help="Expansion strategy: breadth-first work queue or recursion.",
    )
    p.add_argument(
        "--skip-empty-types",
        action="store_true",
        help="Omit types with no static fields, enums and generic definitions.",
    )
    p.add_argument(
        "--no-module-globals",
        action="store_true",
        help="Do not report module-level globals.",
    )
    p.add_argument(
        "--public-only",
        action="store_true",
        help="Skip statics and globals whose name starts with an underscore.",
    )
    p.add_argument(
        "--no-values",
        action="store_true",
        help="Do not record scalar values in the report.",
    )
    p.add_argument(
        "--no-verify",
        action="store_true",
        help="Skip the size roll-up check before writing.",
    )

    # --- Preview ---
    p.add_argument(
        "--print-tree",
        action="store_true",
        help="Log an ASCII preview of the report tree.",
    )
    p.add_argument(
        "--tree-depth",
        type=int,
        default=None,
        help="Levels shown by --print-tree.",
    )

    # --- Runtime ---
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Build the report without writing any file.",
    )
    p.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        help="Also write diagnostics to this rotating log file.",
    )

    # --- Configuration and Diagnostic Tools ---
    p.add_argument(
        "--use-defaults",
        action="store_true",
        help="Ignore the persisted configuration.",
    )
    p.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the effective configuration and exit.",
    )
    p.add_argument(
        "--debug",
        action="store_true",
        help="Elevate logging verbosity to DEBUG.",
    )

    # --- Format Selection ---
    p.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Print the result as JSON.",
    )

    return p

# -----------------------------------------------------------------------------
# ARGUMENT MAPPING
# -----------------------------------------------------------------------------

def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Translate the argparse Namespace into a domain configuration dictionary.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Dict[str, Any]: Configuration overrides subset.
    """
    overrides: Dict[str, Any] = {}

    overrides["output_dir"] = args.output_dir
    overrides["output_prefix"] = args.output_prefix
    overrides["strategy"] = args.strategy
    overrides["tree_depth"] = args.tree_depth

    # Traversal overrides
    if args.skip_empty_types:
        overrides["skip_empty_types"] = True
    if args.no_module_globals:
        overrides["include_module_globals"] = False
    if args.public_only:
        overrides["include_private_statics"] = False

    # Report content overrides
    if args.no_values:
        overrides["record_values"] = False
    if args.no_verify:
        overrides["verify_invariants"] = False
    if args.print_tree:
        overrides["print_tree"] = True

    return overrides
