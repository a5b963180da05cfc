"""Path-by-path diff of two SPL trees.

Both trees are keyed by element path (local names, positional index among
same-named siblings on every step), so namespace prefixes and attribute order
never count as differences. Outside narrative, text and tails are compared
with whitespace squashed; inside a narrative block a blank between inline
elements still counts as one space.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from splkit.domain.fidelity import FidelityReport, PathComparison, Verdict
from splkit.domain.model import EntityType, IngredientClass
from splkit.domain.ports import NullControl
from splkit.domain.xmltree import (
    attribute_name,
    child,
    collapse_inline,
    iter_paths,
    local_name,
    squash,
)

from .reader import parse_xml
from .vocabulary import CONTRAINDICATION_ISSUE

if TYPE_CHECKING:
    import xml.etree.ElementTree as ET

    from splkit.domain.ports import OperationControl

CHECK_EVERY = 500

# innermost match wins; tags not listed inherit their ancestor's kind
_KIND_BY_TAG: dict[str, EntityType] = {
    "document": EntityType.DOCUMENT,
    "author": EntityType.DOCUMENT_AUTHOR,
    "representedOrganization": EntityType.ORGANIZATION,
    "assignedOrganization": EntityType.ORGANIZATION,
    "actDefinition": EntityType.BUSINESS_OPERATION,
    "manufacturedMaterialKind": EntityType.OPERATION_PRODUCT,
    "section": EntityType.SECTION,
    "text": EntityType.CONTENT_BLOCK,
    "manufacturedProduct": EntityType.PRODUCT,
    "consumedIn": EntityType.PRODUCT_ROUTE,
    "activeMoiety": EntityType.ACTIVE_MOIETY,
    "approval": EntityType.MARKETING_CATEGORY,
    "marketingAct": EntityType.MARKETING_STATUS,
    "asContent": EntityType.PACKAGING_LEVEL,
    "characteristic": EntityType.PRODUCT_CHARACTERISTIC,
    "identifiedSubstance": EntityType.INDEXED_SUBSTANCE,
    "generalizedMaterialKind": EntityType.PHARMACOLOGIC_CLASS,
}

type _Indexed = dict[str, tuple[ET.Element, tuple[ET.Element, ...]]]


def _kind_of(element: ET.Element, ancestors: tuple[ET.Element, ...]) -> str:
    for node in (element, *reversed(ancestors)):
        name = local_name(node.tag)
        if name == "ingredient":
            class_code = node.get("classCode", "")
            active = class_code in IngredientClass and IngredientClass(class_code).is_active
            return (EntityType.ACTIVE_INGREDIENT if active else EntityType.INACTIVE_INGREDIENT).value
        if name == "issue":
            code = child(node, "code")
            contraindication = code is not None and code.get("code") == CONTRAINDICATION_ISSUE
            return (
                EntityType.CONTRAINDICATED_DRUG if contraindication else EntityType.DRUG_INTERACTION
            ).value
        kind = _KIND_BY_TAG.get(name)
        if kind is not None:
            return kind.value
    return EntityType.DOCUMENT.value


def _section_code(element: ET.Element, ancestors: tuple[ET.Element, ...]) -> str | None:
    for node in (element, *reversed(ancestors)):
        if local_name(node.tag) == "section":
            code = child(node, "code")
            return code.get("code") if code is not None else None
    return None


def _attributes(element: ET.Element) -> dict[str, str]:
    return {attribute_name(name): value for name, value in element.attrib.items()}


def _narrative_depth(ancestors: tuple[ET.Element, ...]) -> int:
    """How far below a section's ``text`` an element sits; 0 outside narrative.

    A block (direct child of ``text``) is at depth 1.
    """
    for index in range(len(ancestors) - 1, 0, -1):
        name, parent = local_name(ancestors[index].tag), local_name(ancestors[index - 1].tag)
        if name == "text" and parent == "section":
            return len(ancestors) - index
    return 0


def _inline(value: str | None) -> str:
    return collapse_inline(value) or ""


def _differences(
    source: ET.Element, regenerated: ET.Element, ancestors: tuple[ET.Element, ...]
) -> list[str]:
    details: list[str] = []
    left, right = _attributes(source), _attributes(regenerated)
    for name in sorted(left.keys() | right.keys()):
        if left.get(name) != right.get(name):
            details.append(f"@{name}: {left.get(name)!r} != {right.get(name)!r}")
    # inside a block whitespace separates words; at block boundaries it is layout
    depth = _narrative_depth(ancestors)
    text = _inline if depth >= 1 else squash
    tail = _inline if depth >= 2 else squash  # noqa: PLR2004
    if text(source.text) != text(regenerated.text):
        details.append(f"text: {text(source.text)!r} != {text(regenerated.text)!r}")
    if tail(source.tail) != tail(regenerated.tail):
        details.append(f"tail: {tail(source.tail)!r} != {tail(regenerated.tail)!r}")
    return details


def _index(root: ET.Element) -> _Indexed:
    return {path: (element, ancestors) for path, element, ancestors in iter_paths(root)}


def _as_bytes(payload: bytes | str) -> bytes:
    return payload.encode("utf-8") if isinstance(payload, str) else payload


class SplComparer:
    """Compares a source SPL payload with its regenerated form."""

    def __call__(
        self,
        source: bytes | str,
        regenerated: bytes | str,
        *,
        control: OperationControl | None = None,
    ) -> FidelityReport:
        control = control or NullControl()
        left = _index(parse_xml(_as_bytes(source)))
        right = _index(parse_xml(_as_bytes(regenerated)))
        control.report(20)

        total = max(len(left) + len(right), 1)
        entries: list[PathComparison] = []
        for count, (path, (element, ancestors)) in enumerate(left.items(), start=1):
            if count % CHECK_EVERY == 0:
                control.raise_if_cancelled()
                control.report(20 + 80 * count // total)
            kind = _kind_of(element, ancestors)
            section = _section_code(element, ancestors)
            counterpart = right.get(path)
            if counterpart is None:
                entries.append(PathComparison(path, Verdict.MISSING, kind, section))
                continue
            details = _differences(element, counterpart[0], ancestors)
            if details:
                entries.append(
                    PathComparison(path, Verdict.VALUE_MISMATCH, kind, section, "; ".join(details))
                )
            else:
                entries.append(PathComparison(path, Verdict.MATCH, kind, section))

        for path, (element, ancestors) in right.items():
            if path not in left:
                entries.append(
                    PathComparison(
                        path,
                        Verdict.EXTRA,
                        _kind_of(element, ancestors),
                        _section_code(element, ancestors),
                    )
                )
        control.raise_if_cancelled()
        control.report(100)
        return FidelityReport(entries=entries)
