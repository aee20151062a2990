from __future__ import annotations

"""
Domain Constants and Platform Widths.

Provides centralized access to application-wide constants: versioning,
report naming, traversal strategy identifiers and the scalar widths used
by the size estimator.
"""

import struct
from typing import Dict, List

CURRENT_CONFIG_VERSION = "1.0.0"
DEFAULT_OUTPUT_PREFIX = "heapdump"
DEFAULT_CONTEXT_NAME = "scene"

# -----------------------------------------------------------------------------
# TRAVERSAL STRATEGIES
# -----------------------------------------------------------------------------

STRATEGY_QUEUED = "queued"
STRATEGY_EAGER = "eager"
STRATEGIES: List[str] = [STRATEGY_QUEUED, STRATEGY_EAGER]
DEFAULT_STRATEGY = STRATEGY_QUEUED

# -----------------------------------------------------------------------------
# PLATFORM WIDTHS (BYTES)
# -----------------------------------------------------------------------------

POINTER_WIDTH: int = struct.calcsize("P")

# Length prefix stored in front of every string payload
LENGTH_PREFIX_WIDTH: int = struct.calcsize("i")

# Python numbers have no declared width; these are the storage widths of the
# equivalent fixed-size machine scalars.
SCALAR_WIDTHS: Dict[str, int] = {
    "bool": 1,
    "int": 8,
    "float": 8,
    "complex": 16,
}

# Compact string kinds: Latin-1, UCS-2 and UCS-4
CHAR_WIDTH_LATIN1 = 1
CHAR_WIDTH_UCS2 = 2
CHAR_WIDTH_UCS4 = 4

# -----------------------------------------------------------------------------
# REPORT DEFAULTS
# -----------------------------------------------------------------------------

DEFAULT_MAX_VALUE_REPR = 64
DEFAULT_TREE_DEPTH = 4
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S"
