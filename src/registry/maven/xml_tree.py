"""Structured XML parsing for metadata and descriptor documents.

Documents are parsed into an ElementTree with namespaces stripped, so
projection code can use plain tag paths like ``parent/groupId``.
"""
from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

_WS = re.compile(r"\s+")


def parse_document(data: bytes) -> ET.Element:
    """Parse ``data`` and return the namespace-free root element.

    Raises:
        ET.ParseError: malformed XML.
    """
    root = ET.fromstring(data)
    _strip_ns(root)
    return root


def _strip_ns(el: ET.Element) -> None:
    for node in el.iter():
        if isinstance(node.tag, str) and node.tag.startswith("{"):
            node.tag = node.tag[node.tag.find("}") + 1:]
        for key in [k for k in node.attrib if k.startswith("{")]:
            node.attrib[key[key.find("}") + 1:]] = node.attrib.pop(key)


def text(el: Optional[ET.Element], path: str) -> Optional[str]:
    """Stripped text of the first element at ``path``, None when empty."""
    if el is None:
        return None
    node = el.find(path)
    if node is None or node.text is None:
        return None
    value = node.text.strip()
    return value or None


def compact_text(el: Optional[ET.Element], path: str) -> Optional[str]:
    """Like :func:`text`, with inner whitespace runs collapsed to one space."""
    value = text(el, path)
    return _WS.sub(" ", value) if value else value


def flag(el: Optional[ET.Element], path: str) -> Optional[bool]:
    """Boolean value at ``path``; None when absent."""
    value = text(el, path)
    if value is None:
        return None
    return value.lower() == "true"


def children(el: Optional[ET.Element], path: str) -> List[ET.Element]:
    if el is None:
        return []
    return el.findall(path)


def properties(el: Optional[ET.Element]) -> Dict[str, str]:
    """Map a ``<properties>`` block to a dict (tag -> stripped text)."""
    if el is None:
        return {}
    return {child.tag: (child.text or "").strip() for child in el if isinstance(child.tag, str)}


def iter_outside(el: ET.Element, tag: str, skip: str):
    """Yield ``tag`` elements in document order, not descending into ``skip``."""
    for child in el:
        if child.tag == skip:
            continue
        if child.tag == tag:
            yield child
        yield from iter_outside(child, tag, skip)
