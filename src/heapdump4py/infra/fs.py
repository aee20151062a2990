from __future__ import annotations

"""
FileSystem Infrastructure Layer.

Provides cross-platform path resolution, report file naming and directory
creation utilities. Acts as an abstraction over the 'os' module to ensure
uniform behavior across Windows and Unix-like systems.
"""

import os
import re
from datetime import datetime
from typing import Optional, Tuple

from heapdump4py.domain.constants import (
    DEFAULT_CONTEXT_NAME,
    DEFAULT_OUTPUT_PREFIX,
    TIMESTAMP_FORMAT,
)

# -----------------------------------------------------------------------------
# GLOBAL CONSTANTS
# -----------------------------------------------------------------------------

APP_DIR_NAME = "HeapDump4Py"
UNIX_APP_DIR_NAME = ".heapdump4py"
REPORT_EXTENSION = ".xml"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

# -----------------------------------------------------------------------------
# PATH RESOLUTION API
# -----------------------------------------------------------------------------

def get_user_data_dir() -> str:
    """
    Resolve the standard OS-specific directory for persistent application data.

    Automatically creates the hierarchy if it does not exist.
    Standards:
    - Windows: %LOCALAPPDATA%/HeapDump4Py
    - Linux/Mac: ~/.heapdump4py

    Returns:
        str: Absolute path to the application data directory.
    """
    path: str = ""

    # Windows specific resolution
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA")
        if base:
            path = os.path.join(base, APP_DIR_NAME)

    # Posix fallback (Linux/Mac)
    if not path:
        home = os.path.expanduser("~")
        path = os.path.join(home, UNIX_APP_DIR_NAME)

    # Idempotent directory creation
    try:
        os.makedirs(path, exist_ok=True)
    except OSError:
        pass

    return os.path.abspath(path)


def normalize_path(path: Optional[str], fallback: str) -> str:
    """
    Normalize a directory path string into an absolute filesystem path.

    Handles environment variable expansion and user home shortcuts (~/).
    Reverts to fallback if the input is empty.

    Args:
        path: Raw input path string.
        fallback: Default path to use if the input is empty.

    Returns:
        str: Normalized absolute path.
    """
    p = (path or "").strip()
    if not p:
        p = fallback
    p = os.path.expandvars(os.path.expanduser(p))
    return os.path.abspath(p)

# -----------------------------------------------------------------------------
# REPORT NAMING
# -----------------------------------------------------------------------------

def sanitize_context_name(name: Optional[str]) -> str:
    """Reduce a scene or context identifier to a filename-safe token."""
    cleaned = _UNSAFE_CHARS.sub("_", (name or "").strip()).strip("._")
    return cleaned or DEFAULT_CONTEXT_NAME


def build_report_filename(
        context_name: Optional[str],
        prefix: str = DEFAULT_OUTPUT_PREFIX,
        now: Optional[datetime] = None,
) -> str:
    """
    Build the report file name: <prefix>-<context>-<ISO-8601 basic timestamp>.xml

    Args:
        context_name: Scene or context identifier.
        prefix: Leading file name token.
        now: Timestamp to embed (defaults to the current local time).

    Returns:
        str: Relative file name.
    """
    stamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    head = (prefix or "").strip() or DEFAULT_OUTPUT_PREFIX
    return f"{head}-{sanitize_context_name(context_name)}-{stamp}{REPORT_EXTENSION}"


def safe_mkdir(path: str) -> Tuple[bool, Optional[str]]:
    """
    Attempt to recursively create a directory structure safely.

    Args:
        path: Target directory path.

    Returns:
        Tuple[bool, Optional[str]]: (Success flag, Error message if applicable).
    """
    try:
        os.makedirs(path, exist_ok=True)
        return True, None
    except OSError as e:
        return False, str(e)
