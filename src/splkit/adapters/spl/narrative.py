"""Capture and restore narrative markup of section ``text`` elements."""

from __future__ import annotations

import copy
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING

from splkit.domain.xmltree import collapse, local_name, normalize_whitespace, qualify, strip_namespaces

from .vocabulary import HL7_NS

if TYPE_CHECKING:
    from splkit.domain.model import ContentBlock


def capture(element: ET.Element) -> tuple[str, str, str | None]:
    """Return ``(block_type, markup, tail)`` for one child of ``text``."""
    tail = collapse(element.tail)
    clone = copy.deepcopy(element)
    clone.tail = None
    normalize_whitespace(strip_namespaces(clone))
    clone.tail = None
    return local_name(element.tag), ET.tostring(clone, encoding="unicode"), tail


def restore(block: ContentBlock) -> ET.Element:
    if block.markup is None:
        element = ET.Element(f"{{{HL7_NS}}}{block.block_type}")
    else:
        element = qualify(ET.fromstring(block.markup), HL7_NS)  # noqa: S314
    element.tail = block.tail
    return element
