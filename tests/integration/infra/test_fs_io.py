from __future__ import annotations

"""
Integration tests for FileSystem Infrastructure.

Validates path normalization, cross-platform data directory resolution
and report file naming.
"""

import os
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from heapdump4py.infra.fs import (
    build_report_filename,
    get_user_data_dir,
    normalize_path,
    safe_mkdir,
    sanitize_context_name,
)

# -----------------------------------------------------------------------------
# PATH RESOLUTION TESTS
# -----------------------------------------------------------------------------

def test_get_user_data_dir_windows() -> None:
    """TC-01: Verify resolution of %LOCALAPPDATA% on Windows systems."""
    mock_appdata = "C:/Users/Test/AppData/Local"
    with patch("os.name", "nt"):
        with patch.dict(os.environ, {"LOCALAPPDATA": mock_appdata}):
            # We mock makedirs to avoid physical side effects during OS-spoofing
            with patch("os.makedirs"):
                path = get_user_data_dir()
                assert "HeapDump4Py" in path


def test_get_user_data_dir_unix() -> None:
    """TC-01: Verify resolution of ~/.heapdump4py on Unix-like systems."""
    mock_home = "/home/testuser"
    with patch("os.name", "posix"):
        with patch("os.path.expanduser", return_value=mock_home):
            with patch("os.makedirs"):
                path = get_user_data_dir()
                normalized_path = path.replace("\\", "/")
                assert normalized_path.endswith("/home/testuser/.heapdump4py")


def test_normalize_path_expansion() -> None:
    """TC-02: Verify expansion of environment variables and fallback use."""
    with patch.dict(os.environ, {"TEST_VAR": "my_folder"}):
        path = normalize_path("$TEST_VAR/sub", fallback=".")
        assert path.lower().endswith(os.path.join("my_folder", "sub").lower())

    assert normalize_path("   ", fallback="dumps") == os.path.abspath("dumps")

# -----------------------------------------------------------------------------
# REPORT NAMING TESTS
# -----------------------------------------------------------------------------

def test_build_report_filename_format() -> None:
    """TC-03: Verify <prefix>-<context>-<timestamp>.xml naming."""
    stamp = datetime(2024, 3, 9, 14, 5, 7)
    assert build_report_filename("Level1", now=stamp) == "heapdump-Level1-20240309T140507.xml"
    assert build_report_filename("Level1", "nightly", stamp) == "nightly-Level1-20240309T140507.xml"
    assert build_report_filename("Level1", "  ", stamp).startswith("heapdump-")


@pytest.mark.parametrize("raw, expected", [
    ("Level 1/Boss", "Level_1_Boss"),
    ("game.state", "game.state"),
    ("..", "scene"),
    ("", "scene"),
    (None, "scene"),
])
def test_sanitize_context_name(raw, expected) -> None:
    """TC-04: Verify context identifiers become filename-safe tokens."""
    assert sanitize_context_name(raw) == expected

# -----------------------------------------------------------------------------
# FILESYSTEM OPERATIONS TESTS
# -----------------------------------------------------------------------------

def test_safe_mkdir_success(tmp_path: Path) -> None:
    """TC-05: Verify recursive directory creation."""
    target = tmp_path / "deep" / "nested" / "dir"
    success, err = safe_mkdir(str(target))

    assert success is True
    assert err is None
    assert target.exists()


def test_safe_mkdir_permission_error() -> None:
    """TC-05: Verify error handling when directory creation fails."""
    with patch("os.makedirs", side_effect=OSError("Permission Denied")):
        success, err = safe_mkdir("/root/forbidden")
        assert success is False
        assert "Permission Denied" in err
