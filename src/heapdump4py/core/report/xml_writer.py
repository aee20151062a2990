from __future__ import annotations

"""
XML Report Writer.

Streams the report tree as an indented, attribute-bearing XML document.
The writer walks the tree with an explicit stack, so arbitrarily deep
reports serialize without recursion.

Every element carries a 'totalsize' attribute equal to its own overhead
plus the 'totalsize' of its children.
"""

import io
import logging
import os
import re
from datetime import datetime
from typing import IO, Dict, List, Optional, Tuple
from xml.sax.saxutils import XMLGenerator
from xml.sax.xmlreader import AttributesImpl

from heapdump4py.domain.constants import DEFAULT_OUTPUT_PREFIX
from heapdump4py.domain.report_models import NodeKind, ReportNode
from heapdump4py.infra.fs import build_report_filename, safe_mkdir

logger = logging.getLogger(__name__)

INDENT = "  "

_TAGS: Dict[NodeKind, str] = {
    NodeKind.DUMP: "dump",
    NodeKind.STATIC_TYPE: "type",
    NodeKind.ROOT_CONTAINER: "object",
    NodeKind.INSTANCE: "instance",
    NodeKind.FIELD: "field",
    NodeKind.ARRAY: "array",
    NodeKind.STRING: "string",
    NodeKind.VALUE: "value",
    NodeKind.STRUCT: "struct",
    NodeKind.CYCLE_REFERENCE: "seen",
    NodeKind.NULL: "null",
    NodeKind.IGNORED: "ignored",
}

# Characters that XML 1.0 does not allow, even escaped
_INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def write_xml(root: ReportNode, stream: IO, encoding: str = "utf-8") -> None:
    """
    Serialize a report tree to a stream.

    Args:
        root: Completed report root.
        stream: Binary or text stream.
        encoding: Document encoding.
    """
    gen = XMLGenerator(stream, encoding=encoding, short_empty_elements=True)
    gen.startDocument()

    stack: List[Tuple[ReportNode, int, bool]] = [(root, 0, False)]
    while stack:
        node, depth, closing = stack.pop()
        tag = element_tag(node)
        if closing:
            gen.ignorableWhitespace("\n" + INDENT * depth)
            gen.endElement(tag)
            continue

        if depth:
            gen.ignorableWhitespace("\n" + INDENT * depth)
        gen.startElement(tag, AttributesImpl(element_attributes(node)))
        if node.children:
            stack.append((node, depth, True))
            for child in reversed(node.children):
                stack.append((child, depth + 1, False))
        else:
            gen.endElement(tag)

    gen.ignorableWhitespace("\n")
    gen.endDocument()


def render_xml(root: ReportNode) -> str:
    """Serialize a report tree to a string."""
    buffer = io.StringIO()
    write_xml(root, buffer)
    return buffer.getvalue()


def write_report(
        root: ReportNode,
        output_dir: str,
        context_name: Optional[str],
        prefix: str = DEFAULT_OUTPUT_PREFIX,
        now: Optional[datetime] = None,
) -> str:
    """
    Write the report into a new timestamped file.

    Returns:
        str: Absolute path of the written file.

    Raises:
        OSError: The directory or file cannot be written.
    """
    ok, err = safe_mkdir(output_dir)
    if not ok:
        raise OSError(f"Cannot create output directory '{output_dir}': {err}")

    path = os.path.abspath(os.path.join(output_dir, build_report_filename(context_name, prefix, now)))
    try:
        with open(path, "wb") as f:
            write_xml(root, f)
    except OSError:
        # No partial reports
        if os.path.exists(path):
            os.remove(path)
        raise

    logger.info(f"Written heap dump to file \"{path}\"")
    return path


def element_tag(node: ReportNode) -> str:
    """Element name of a node; groups use their own name."""
    if node.kind is NodeKind.GROUP:
        return node.name or "group"
    return _TAGS[node.kind]


def element_attributes(node: ReportNode) -> Dict[str, str]:
    attrs: Dict[str, str] = {}
    if node.type_name and node.kind is not NodeKind.GROUP:
        attrs["type"] = node.type_name
    if node.name is not None and node.kind is not NodeKind.GROUP:
        attrs["name"] = node.name
    if node.kind is NodeKind.GROUP and node.type_name:
        attrs["context"] = node.type_name
    if node.runtime_type is not None:
        attrs["runtimetype"] = node.runtime_type
    if node.length is not None:
        attrs["length"] = str(node.length)
    if node.rank is not None and node.rank != 1:
        attrs["rank"] = str(node.rank)
    if node.value is not None:
        attrs["value"] = node.value
    if node.reason is not None:
        attrs["reason"] = node.reason
    if node.referenced_size is not None:
        attrs["refsize"] = str(node.referenced_size)
    attrs["totalsize"] = str(node.size if node.size is not None else -1)
    return {k: _xml_safe(v) for k, v in attrs.items()}


# -----------------------------------------------------------------------------
# PRIVATE HELPERS
# -----------------------------------------------------------------------------

def _xml_safe(text: str) -> str:
    return _INVALID_XML_CHARS.sub("\ufffd", text)
