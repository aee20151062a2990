from __future__ import annotations

"""
Integration tests for the Heap Dump Orchestrator.

Runs complete dumps (roots, traversal, assembly, XML output) against
modules built in memory, and checks that every fatal condition surfaces
as an error result without a report file.
"""

import logging
import os
import types
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Any, Callable, Dict
from unittest.mock import patch

import pytest

from heapdump4py.core.dump import dump_to_xml
from heapdump4py.core.introspection.scene import Container
from heapdump4py.core.services.estimator import Platform
from heapdump4py.core.services.registry import VisitedRegistry

MakeModule = Callable[[str, str], types.ModuleType]

STAMP = datetime(2024, 3, 9, 14, 5, 7)

GAME_SOURCE = '''
class Settings:
    volume = 0.5
    lives = 3


class Health:
    def __init__(self, hp):
        self.hp = hp
'''

DEEP_SOURCE = '''
class Link:
    def __init__(self, nxt=None):
        self.next = nxt


def _chain(length):
    head = None
    for _ in range(length):
        head = Link(head)
    return head


class Holder:
    head = _chain(5000)
'''

SHARED_SOURCE = '''
NAME = "".join(["sha", "red"])


class Names:
    first = NAME
    second = NAME
'''

BROKEN_SOURCE = '''
class LazyList(list):
    def __iter__(self):
        raise RuntimeError("not loaded")


class Proxy:
    @property
    def __class__(self):
        raise RuntimeError("proxy detached")


ITEMS = LazyList([1])
TARGET = Proxy()
'''


@pytest.fixture
def game(make_module: MakeModule) -> types.ModuleType:
    return make_module("dump_game", GAME_SOURCE)


@pytest.fixture
def level(game: types.ModuleType) -> Container:
    world = Container("Level1")
    player = Container("Player", world)
    player.add_component(game.Health(100))
    return world

# -----------------------------------------------------------------------------
# Successful Dumps
# -----------------------------------------------------------------------------

def test_dump_writes_report(
        game: types.ModuleType,
        level: Container,
        mock_config_dict: Dict[str, Any],
        platform64: Platform
) -> None:
    """TC-01: Verify a complete dump writes one timestamped XML file."""
    result = dump_to_xml("dump_game", level, mock_config_dict, platform=platform64, now=STAMP)

    assert result.ok is True, result.error
    assert result.context_name == "Level1"
    assert os.path.basename(result.output_path) == "heapdump-Level1-20240309T140507.xml"
    assert os.path.isfile(result.output_path)

    doc = ET.parse(result.output_path).getroot()
    assert doc.tag == "dump"
    assert int(doc.get("totalsize")) == result.total_size
    assert doc.find("scene").get("context") == "Level1"
    assert result.type_count == 2
    assert result.container_count == 2
    assert result.summary["dry_run"] is False


def test_dry_run_writes_nothing(
        game: types.ModuleType,
        mock_config_dict: Dict[str, Any],
        platform64: Platform
) -> None:
    """TC-02: Verify a dry run builds the tree without touching the filesystem."""
    result = dump_to_xml("dump_game", None, mock_config_dict, dry_run=True, platform=platform64)

    assert result.ok is True
    assert result.output_path == ""
    assert result.tree is not None
    assert result.context_name == "dump_game"
    assert not os.path.exists(mock_config_dict["output_dir"])


def test_dump_sizes_are_stable_across_strategies(
        game: types.ModuleType,
        level: Container,
        mock_config_dict: Dict[str, Any],
        platform64: Platform
) -> None:
    """TC-03: Verify both strategies estimate the same total."""
    queued = dump_to_xml("dump_game", level, mock_config_dict, dry_run=True, platform=platform64)
    mock_config_dict["strategy"] = "eager"
    eager = dump_to_xml("dump_game", level, mock_config_dict, dry_run=True, platform=platform64)

    assert queued.ok and eager.ok
    assert queued.total_size == eager.total_size
    assert eager.deferred_count == 0


def test_print_tree_logs_preview(
        game: types.ModuleType,
        mock_config_dict: Dict[str, Any],
        caplog: pytest.LogCaptureFixture
) -> None:
    """TC-04: Verify the ASCII preview is emitted through the logger."""
    mock_config_dict["print_tree"] = True
    with caplog.at_level(logging.INFO, logger="heapdump4py.core.dump"):
        result = dump_to_xml("dump_game", None, mock_config_dict, dry_run=True)

    assert result.ok is True
    assert "heap dump [" in caplog.text
    assert "dump_game.Settings" in caplog.text


def test_invalid_config_values_fall_back(
        game: types.ModuleType,
        mock_config_dict: Dict[str, Any],
        caplog: pytest.LogCaptureFixture
) -> None:
    """TC-05: Verify malformed settings are repaired with a warning."""
    mock_config_dict["strategy"] = "parallel"
    with caplog.at_level(logging.WARNING, logger="heapdump4py.core.dump"):
        result = dump_to_xml("dump_game", None, mock_config_dict, dry_run=True)

    assert result.ok is True
    assert result.strategy == "queued"
    assert "Configuration Warning" in caplog.text

# -----------------------------------------------------------------------------
# Fatal Conditions
# -----------------------------------------------------------------------------

def test_unknown_module_is_an_error(mock_config_dict: Dict[str, Any]) -> None:
    """TC-06: Verify a missing target module fails before traversal."""
    result = dump_to_xml("no_such_dump_module", None, mock_config_dict)

    assert result.ok is False
    assert "no_such_dump_module" in result.error
    assert result.tree is None
    assert not os.path.exists(mock_config_dict["output_dir"])


def test_bad_scene_is_an_error(game: types.ModuleType, mock_config_dict: Dict[str, Any]) -> None:
    """TC-07: Verify an object that is not a scene is rejected."""
    result = dump_to_xml("dump_game", 42, mock_config_dict)
    assert result.ok is False
    assert "int" in result.error


def test_eager_recursion_failure_is_reported(
        make_module: MakeModule,
        mock_config_dict: Dict[str, Any]
) -> None:
    """TC-08: Verify stack exhaustion aborts the dump and suggests the queued strategy."""
    make_module("dump_deep", DEEP_SOURCE)
    mock_config_dict["strategy"] = "eager"

    result = dump_to_xml("dump_deep", None, mock_config_dict)

    assert result.ok is False
    assert "queued" in result.error
    assert not os.path.exists(mock_config_dict["output_dir"])


def test_queued_strategy_dumps_deep_chain(
        make_module: MakeModule,
        mock_config_dict: Dict[str, Any],
        platform64: Platform
) -> None:
    """TC-09: Verify the same deep graph completes with the queued strategy."""
    make_module("dump_deep", DEEP_SOURCE)
    mock_config_dict["include_module_globals"] = False

    result = dump_to_xml("dump_deep", None, mock_config_dict, platform=platform64, now=STAMP)

    assert result.ok is True, result.error
    assert result.deferred_count == 5000
    assert os.path.isfile(result.output_path)


def test_write_failure_is_an_error(game: types.ModuleType, mock_config_dict: Dict[str, Any]) -> None:
    """TC-10: Verify output failures are returned as error results."""
    with patch("heapdump4py.core.dump.write_report", side_effect=OSError("disk full")):
        result = dump_to_xml("dump_game", None, mock_config_dict)

    assert result.ok is False
    assert "disk full" in result.error
    assert result.output_path == ""


def test_registry_invariant_violation_aborts(
        make_module: MakeModule,
        mock_config_dict: Dict[str, Any]
) -> None:
    """TC-11: Verify a broken registry lifecycle aborts the dump without writing a report."""
    make_module("dump_shared", SHARED_SOURCE)
    output_dir = mock_config_dict["output_dir"]
    os.makedirs(output_dir)

    # Lookups miss, so the shared string is reserved a second time
    with patch.object(VisitedRegistry, "try_get", return_value=None):
        result = dump_to_xml("dump_shared", None, mock_config_dict, now=STAMP)

    assert result.ok is False
    assert "reserved twice" in result.error
    assert result.tree is None
    assert not os.listdir(output_dir)

# -----------------------------------------------------------------------------
# Degraded Dumps
# -----------------------------------------------------------------------------

def test_broken_globals_degrade_the_report(
        make_module: MakeModule,
        mock_config_dict: Dict[str, Any],
        platform64: Platform
) -> None:
    """TC-12: Verify unreadable values are skipped with warnings and the report is still written."""
    make_module("dump_broken", BROKEN_SOURCE)

    result = dump_to_xml("dump_broken", None, mock_config_dict, platform=platform64, now=STAMP)

    assert result.ok is True, result.error
    assert result.warning_count == 2
    assert os.path.isfile(result.output_path)

    doc = ET.parse(result.output_path).getroot()
    module_node = doc.find("statics/type[@name='<module>']")
    assert [f.get("name") for f in module_node.findall("field")] == ["ITEMS"]
    # one slot for the list and one for its element
    assert module_node.get("totalsize") == "16"
