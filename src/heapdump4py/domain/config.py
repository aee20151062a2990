from __future__ import annotations

"""
Configuration Domain Management.

Handles persistent storage of dump preferences using JSON in the user data
directory. Unknown or missing keys fall back to the defaults.
"""

import json
import logging
import os
from typing import Any, Dict

from heapdump4py.domain.constants import (
    CURRENT_CONFIG_VERSION,
    DEFAULT_MAX_VALUE_REPR,
    DEFAULT_OUTPUT_PREFIX,
    DEFAULT_STRATEGY,
    DEFAULT_TREE_DEPTH,
)
from heapdump4py.infra.fs import get_user_data_dir

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants & Defaults
# -----------------------------------------------------------------------------
CONFIG_FILE = os.path.join(get_user_data_dir(), "config.json")


def get_default_config() -> Dict[str, Any]:
    """
    Generate the default dump configuration.

    Returns:
        Dict[str, Any]: Default configuration values.
    """
    return {
        # Output
        "output_dir": os.getcwd(),
        "output_prefix": DEFAULT_OUTPUT_PREFIX,

        # Traversal
        "strategy": DEFAULT_STRATEGY,
        "skip_empty_types": False,
        "include_module_globals": True,
        "include_private_statics": True,

        # Report content
        "record_values": True,
        "max_value_repr": DEFAULT_MAX_VALUE_REPR,
        "verify_invariants": True,

        # Preview
        "print_tree": False,
        "tree_depth": DEFAULT_TREE_DEPTH,
    }


# -----------------------------------------------------------------------------
# Persistence Logic
# -----------------------------------------------------------------------------
def load_config() -> Dict[str, Any]:
    """
    Load the persisted configuration merged over the defaults.

    Returns:
        Dict[str, Any]: The loaded configuration or the defaults on failure.
    """
    defaults = get_default_config()

    if not os.path.exists(CONFIG_FILE):
        logger.debug("Config file not found. Returning defaults.")
        return defaults

    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load config: {e}. Using defaults.")
        return defaults

    if not isinstance(data, dict):
        logger.warning("Corrupted config file. Resetting to defaults.")
        return defaults

    settings = data.get("settings", {})
    if isinstance(settings, dict):
        defaults.update({k: v for k, v in settings.items() if k in defaults})
    return defaults


def save_config(config: Dict[str, Any]) -> None:
    """
    Persist the configuration to disk.

    Args:
        config: The configuration dictionary to save.
    """
    state = {"version": CURRENT_CONFIG_VERSION, "settings": config}
    try:
        os.makedirs(os.path.dirname(CONFIG_FILE), exist_ok=True)
        with open(CONFIG_FILE, "w", encoding="utf-8") as f:
            json.dump(state, f, ensure_ascii=False, indent=4)
        logger.debug(f"Configuration saved to {CONFIG_FILE}")
    except OSError as e:
        logger.error(f"Failed to save configuration: {e}")
