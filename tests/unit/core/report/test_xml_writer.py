from __future__ import annotations

"""
Unit tests for the XML Report Writer.

Verifies element tags and attributes, escaping of unsafe characters,
streaming of deep trees and timestamped report files.
"""

import os
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from heapdump4py.core.report.xml_writer import element_attributes, element_tag, render_xml, write_report
from heapdump4py.domain.report_models import NodeKind, ReportNode


def _sample_tree() -> ReportNode:
    root = ReportNode(NodeKind.DUMP, size=36)
    statics = root.add(ReportNode(NodeKind.GROUP, name="statics", size=36))
    static_type = statics.add(ReportNode(NodeKind.STATIC_TYPE, type_name="game.Config", size=36))

    field = static_type.add(ReportNode(
        NodeKind.FIELD, type_name="str", name="title", runtime_type="str", size=16, own_overhead=8,
    ))
    field.add(ReportNode(NodeKind.STRING, type_name="str", size=8, own_overhead=8, length=4))

    grid = static_type.add(ReportNode(NodeKind.FIELD, type_name="memoryview", name="grid", size=20, own_overhead=8))
    grid.add(ReportNode(NodeKind.ARRAY, type_name="memoryview", size=12, own_overhead=12, length=6, rank=2))

    root.add(ReportNode(NodeKind.GROUP, name="scene", type_name="Level1", size=0))
    return root


def test_render_xml_structure() -> None:
    """TC-01: Verify tags, nesting and attributes of a serialized tree."""
    doc = ET.fromstring(render_xml(_sample_tree()).encode("utf-8"))

    assert doc.tag == "dump"
    assert doc.attrib == {"totalsize": "36"}

    static_type = doc.find("statics/type")
    assert static_type.get("type") == "game.Config"

    title = static_type.find("field[@name='title']")
    assert title.get("runtimetype") == "str"
    assert title.find("string").get("length") == "4"

    array = static_type.find("field[@name='grid']/array")
    assert array.get("rank") == "2"
    assert array.get("length") == "6"

    scene = doc.find("scene")
    assert scene.get("context") == "Level1"
    assert "name" not in scene.attrib


def test_render_xml_is_indented() -> None:
    """TC-02: Verify one element per line with two-space indentation."""
    lines = render_xml(_sample_tree()).splitlines()
    assert lines[0].startswith("<?xml")
    assert lines[1].startswith("<dump ")
    assert lines[2].startswith("  <statics ")
    assert lines[3].startswith("    <type ")
    assert lines[-1] == "</dump>"


def test_element_tags_and_optional_attributes() -> None:
    """TC-03: Verify rank 1 is implicit and cycle references carry refsize."""
    seen = ReportNode(NodeKind.CYCLE_REFERENCE, type_name="Thing", size=0, referenced_size=24)
    assert element_tag(seen) == "seen"
    assert element_attributes(seen) == {"type": "Thing", "refsize": "24", "totalsize": "0"}

    flat = ReportNode(NodeKind.ARRAY, type_name="list", size=16, length=2, rank=1)
    assert "rank" not in element_attributes(flat)

    ignored = ReportNode(NodeKind.IGNORED, type_name="Box", reason="IsGenericType", size=0)
    assert element_tag(ignored) == "ignored"
    assert element_attributes(ignored)["reason"] == "IsGenericType"


def test_invalid_characters_are_replaced() -> None:
    """TC-04: Verify control characters never reach the document."""
    node = ReportNode(NodeKind.VALUE, type_name="str", value="bad\x00value\x1b", size=1, own_overhead=1)
    text = render_xml(node)
    doc = ET.fromstring(text.encode("utf-8"))
    assert doc.get("value") == "bad\ufffdvalue\ufffd"


def test_deep_tree_serializes_without_recursion() -> None:
    """TC-05: Verify trees deeper than the recursion limit are written."""
    root = ReportNode(NodeKind.DUMP, size=0)
    node = root
    for _ in range(3000):
        node = node.add(ReportNode(NodeKind.INSTANCE, type_name="Link", size=0))

    text = render_xml(root)
    assert text.count("<instance") == 3000


def test_write_report_creates_timestamped_file(tmp_path: Path) -> None:
    """TC-06: Verify the file name and content of a written report."""
    out_dir = tmp_path / "nested" / "dumps"
    path = write_report(_sample_tree(), str(out_dir), "Level 1", now=datetime(2024, 5, 6, 7, 8, 9))

    assert path == os.path.abspath(out_dir / "heapdump-Level_1-20240506T070809.xml")
    assert ET.parse(path).getroot().get("totalsize") == "36"


def test_write_report_directory_failure(tmp_path: Path) -> None:
    """TC-07: Verify an uncreatable output directory raises OSError."""
    with patch("heapdump4py.core.report.xml_writer.safe_mkdir", return_value=(False, "denied")):
        with pytest.raises(OSError):
            write_report(_sample_tree(), str(tmp_path), "scene")
