from __future__ import annotations

"""
Configuration Validation Service.

Ensures that the configuration dictionary handed to the dump orchestrator
conforms to the expected schema. Handles type coercion, path normalization
and default value injection.
"""

import logging
from typing import Any, Dict, List, Tuple

from heapdump4py.domain.config import get_default_config
from heapdump4py.domain.constants import STRATEGIES
from heapdump4py.infra.fs import normalize_path

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def validate_config(
        config: Any,
        *,
        strict: bool = False,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate and normalize the provided configuration dictionary.

    Converts untrusted inputs (CLI, persisted JSON) into strictly typed
    parameters and fills missing keys with domain defaults.

    Args:
        config: Raw configuration data (usually a dictionary).
        strict: If True, raises exceptions on type mismatch instead of coercing.

    Returns:
        Tuple[Dict[str, Any], List[str]]: The normalized configuration and
                                          a list of warnings.
    """
    warnings: List[str] = []
    defaults = get_default_config()

    # 1. Base Type Validation
    if not isinstance(config, dict):
        msg = f"Invalid config type: expected dict, received {type(config).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(f"{msg} Using defaults.")
        logger.warning(msg)
        return defaults, warnings

    merged: Dict[str, Any] = dict(defaults)
    merged.update(config)

    # 2. Schema Definition (Declarative mapping)
    string_fields = ["output_dir", "output_prefix", "strategy"]

    bool_fields = [
        "skip_empty_types", "include_module_globals", "include_private_statics",
        "record_values", "verify_invariants", "print_tree",
    ]

    int_fields = ["max_value_repr", "tree_depth"]

    # 3. Field Processing & Normalization
    for field in string_fields:
        merged[field] = _as_str(
            merged.get(field), defaults.get(field, ""), field, warnings, strict
        )

    for field in bool_fields:
        merged[field] = _as_bool(
            merged.get(field), defaults.get(field, False), field, warnings, strict
        )

    for field in int_fields:
        merged[field] = _as_non_negative_int(
            merged.get(field), defaults.get(field, 0), field, warnings, strict
        )

    # 4. Domain-Specific Normalization
    merged["strategy"] = _normalize_strategy(merged["strategy"], defaults["strategy"], warnings, strict)
    merged["output_dir"] = normalize_path(merged["output_dir"], defaults["output_dir"])

    return merged, warnings


# -----------------------------------------------------------------------------
# PRIVATE HELPERS: TYPE COERCION
# -----------------------------------------------------------------------------

def _as_str(value: Any, fallback: str, field: str, warnings: List[str], strict: bool) -> str:
    """Validate and sanitize string inputs."""
    if value is None:
        return fallback
    if isinstance(value, str):
        v = value.strip()
        return v if v else fallback

    msg = f"Invalid field '{field}': expected str, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_bool(value: Any, fallback: bool, field: str, warnings: List[str], strict: bool) -> bool:
    """Coerce various input types into native booleans."""
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback

    if not strict:
        if isinstance(value, (int, float)) and value in (0, 1):
            warnings.append(f"Field '{field}' converted from number {value} to bool.")
            return bool(value)
        if isinstance(value, str):
            s = value.strip().lower()
            if s in ("true", "1", "yes", "y", "on"):
                warnings.append(f"Field '{field}' converted from '{value}' to True.")
                return True
            if s in ("false", "0", "no", "n", "off"):
                warnings.append(f"Field '{field}' converted from '{value}' to False.")
                return False

    msg = f"Invalid field '{field}': expected bool, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_non_negative_int(value: Any, fallback: int, field: str, warnings: List[str], strict: bool) -> int:
    """Coerce numeric strings and floats into a non-negative int."""
    if value is None:
        return fallback
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value

    if not strict and isinstance(value, (str, float)) and not isinstance(value, bool):
        try:
            coerced = int(float(value))
        except ValueError:
            coerced = -1
        if coerced >= 0:
            warnings.append(f"Field '{field}' converted from {value!r} to {coerced}.")
            return coerced

    msg = f"Invalid field '{field}': expected non-negative int, received {value!r}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


# -----------------------------------------------------------------------------
# PRIVATE HELPERS: DOMAIN NORMALIZATION
# -----------------------------------------------------------------------------

def _normalize_strategy(value: str, fallback: str, warnings: List[str], strict: bool) -> str:
    """Ensure the traversal strategy is one of the supported identifiers."""
    s = value.strip().lower()
    if s in STRATEGIES:
        return s
    msg = f"Unknown strategy '{value}': expected one of {', '.join(STRATEGIES)}."
    if strict:
        raise ValueError(msg)
    warnings.append(f"{msg} Using '{fallback}'.")
    return fallback
