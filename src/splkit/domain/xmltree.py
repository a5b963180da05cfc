"""Namespace-agnostic helpers over ``xml.etree`` trees."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections import Counter
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

_WHITESPACE = re.compile(r"\s+")


def local_name(tag: str) -> str:
    """``{urn:hl7-org:v3}section`` -> ``section``."""
    if tag.startswith("{"):
        return tag.rpartition("}")[2]
    return tag


def namespace_of(tag: str) -> str | None:
    if tag.startswith("{"):
        return tag[1:].partition("}")[0]
    return None


def attribute_name(name: str) -> str:
    """Render a Clark-notation attribute with a stable prefix (``xsi:type``)."""
    namespace = namespace_of(name)
    if namespace is None:
        return name
    prefix = _PREFIXES.get(namespace, namespace)
    return f"{prefix}:{local_name(name)}"


_PREFIXES = {
    "http://www.w3.org/2001/XMLSchema-instance": "xsi",
    "http://www.w3.org/XML/1998/namespace": "xml",
}


def collapse(value: str | None) -> str | None:
    """Whitespace-only runs vanish; any other run of whitespace becomes one space."""
    if value is None or not value.strip():
        return None
    return _WHITESPACE.sub(" ", value)


def collapse_inline(value: str | None) -> str | None:
    """Like ``collapse``, but a whitespace-only run stays as one space.

    Inside mixed content the blank between two inline elements separates words.
    """
    if not value:
        return None
    return _WHITESPACE.sub(" ", value)


def squash(value: str | None) -> str:
    """Collapsed and stripped; used where leading/trailing blanks carry no meaning."""
    if value is None:
        return ""
    return " ".join(value.split())


def child(parent: ET.Element, name: str) -> ET.Element | None:
    for element in parent:
        if isinstance(element.tag, str) and local_name(element.tag) == name:
            return element
    return None


def children(parent: ET.Element, name: str) -> list[ET.Element]:
    return [
        element
        for element in parent
        if isinstance(element.tag, str) and local_name(element.tag) == name
    ]


def descend(parent: ET.Element, *names: str) -> ET.Element | None:
    """Follow the first child of each name in turn."""
    node: ET.Element | None = parent
    for name in names:
        if node is None:
            return None
        node = child(node, name)
    return node


def text_of(element: ET.Element | None) -> str | None:
    if element is None:
        return None
    value = squash("".join(element.itertext()))
    return value or None


def sibling_positions(root: ET.Element) -> dict[ET.Element, int]:
    """1-based position of every element among its same-named siblings."""
    positions: dict[ET.Element, int] = {root: 1}
    for parent in root.iter():
        seen: Counter[str] = Counter()
        for element in parent:
            if not isinstance(element.tag, str):
                continue
            name = local_name(element.tag)
            seen[name] += 1
            positions[element] = seen[name]
    return positions


def iter_paths(root: ET.Element) -> Iterator[tuple[str, ET.Element, tuple[ET.Element, ...]]]:
    """Yield ``(path, element, ancestors)`` in document order.

    Paths use local names with a positional index on every step, e.g.
    ``/document[1]/component[1]/structuredBody[1]``.
    """
    positions = sibling_positions(root)

    def walk(
        element: ET.Element, prefix: str, ancestors: tuple[ET.Element, ...]
    ) -> Iterator[tuple[str, ET.Element, tuple[ET.Element, ...]]]:
        path = f"{prefix}/{local_name(element.tag)}[{positions[element]}]"
        yield path, element, ancestors
        for nested in element:
            if isinstance(nested.tag, str):
                yield from walk(nested, path, (*ancestors, element))

    yield from walk(root, "", ())


def strip_namespaces(element: ET.Element) -> ET.Element:
    """Rewrite element tags of ``element`` and its subtree to local names, in place."""
    for node in element.iter():
        if isinstance(node.tag, str):
            node.tag = local_name(node.tag)
    return element


def qualify(element: ET.Element, namespace: str) -> ET.Element:
    """Inverse of ``strip_namespaces`` for unqualified tags."""
    for node in element.iter():
        if isinstance(node.tag, str) and not node.tag.startswith("{"):
            node.tag = f"{{{namespace}}}{node.tag}"
    return element


def normalize_whitespace(element: ET.Element) -> ET.Element:
    """Collapse whitespace runs of a mixed-content subtree, keeping word breaks."""
    for node in element.iter():
        node.text = collapse_inline(node.text)
        node.tail = collapse_inline(node.tail)
    return element
