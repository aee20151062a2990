from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. A fixed platform so size assertions do not depend on the host.
3. Shared fixtures for configuration dictionaries and synthetic modules.
"""

import os
import sys
import types
from typing import Any, Callable, Dict

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from heapdump4py.core.services.estimator import Platform  # noqa: E402


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def platform64() -> Platform:
    """64-bit platform: 8-byte pointers and a 4-byte string length prefix."""
    return Platform(pointer_width=8, length_prefix_width=4)


@pytest.fixture
def mock_config_dict(tmp_path: Any) -> Dict[str, Any]:
    """
    Return a valid, complete configuration dictionary for testing.

    Reflects the structure defined in 'heapdump4py.domain.config'.

    Returns:
        Dict[str, Any]: A sample configuration dictionary.
    """
    return {
        # Output
        "output_dir": str(tmp_path / "dumps"),
        "output_prefix": "heapdump",

        # Traversal
        "strategy": "queued",
        "skip_empty_types": False,
        "include_module_globals": True,
        "include_private_statics": True,

        # Report content
        "record_values": True,
        "max_value_repr": 64,
        "verify_invariants": True,

        # Preview
        "print_tree": False,
        "tree_depth": 4,
    }


@pytest.fixture
def make_module(monkeypatch: pytest.MonkeyPatch) -> Callable[[str, str], types.ModuleType]:
    """
    Build an importable module from source text.

    The module is registered in sys.modules for the duration of the test.
    """
    def _make(name: str, source: str) -> types.ModuleType:
        module = types.ModuleType(name)
        monkeypatch.setitem(sys.modules, name, module)
        exec(compile(source, f"<{name}>", "exec"), module.__dict__)
        return module

    return _make
