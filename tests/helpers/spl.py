"""Builders for small SPL payloads used across tests."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

if TYPE_CHECKING:
    from collections.abc import Iterable

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

LOINC = "2.16.840.1.113883.6.1"
NDC = "2.16.840.1.113883.6.69"
UNII = "2.16.840.1.113883.4.9"
NCI = "2.16.840.1.113883.3.26.1.1"
DUNS = "1.3.6.1.4.1.519.1"
CHARACTERISTIC = "2.16.840.1.113883.1.11.19255"
MED_RT = "2.16.840.1.113883.6.345"

PENICILLAMINE_SET = "1f3c6a0e-8b7d-4c2e-a5f9-0d4e2b6c8a31"
PENICILLAMINE_DOCUMENT = "6d2b8a5e-2f44-4a7e-9f0e-3c1a6f2b7d10"


def penicillamine_payload() -> bytes:
    return (DATA_DIR / "penicillamine.xml").read_bytes()


def new_guid() -> str:
    return str(uuid4())


def ingredient_xml(
    code: str | None,
    name: str,
    *,
    class_code: str = "ACTIB",
    moiety: tuple[str, str] | None = None,
    strength: tuple[str, str] | None = ("250", "mg"),
) -> str:
    quantity = ""
    if strength is not None:
        quantity = (
            f'<quantity><numerator value="{strength[0]}" unit="{strength[1]}"/>'
            '<denominator value="1" unit="1"/></quantity>'
        )
    code_el = f'<code code="{code}" codeSystem="{UNII}"/>' if code else ""
    moiety_el = ""
    if moiety is not None:
        moiety_el = (
            f'<activeMoiety><activeMoiety><code code="{moiety[0]}" codeSystem="{UNII}"/>'
            f"<name>{moiety[1]}</name></activeMoiety></activeMoiety>"
        )
    return (
        f'<ingredient classCode="{class_code}">{quantity}'
        f"<ingredientSubstance>{code_el}<name>{name}</name>{moiety_el}</ingredientSubstance>"
        "</ingredient>"
    )


def package_xml(code: str | None, *nested: str, form: str = "BOTTLE") -> str:
    code_el = f'<code code="{code}" codeSystem="{NDC}"/>' if code else ""
    return (
        '<asContent><quantity><numerator value="1" unit="1"/><denominator value="1" unit="1"/>'
        f"</quantity><containerPackagedProduct>{code_el}"
        f'<formCode code="C43169" codeSystem="{NCI}" displayName="{form}"/>'
        f"{''.join(nested)}</containerPackagedProduct></asContent>"
    )


def issue_xml(target_code: str, target_name: str, *, contraindication: bool = False) -> str:
    issue_code, display = ("C54707", "CONTRAINDICATION") if contraindication else ("C54708", "INTERACTION")
    return (
        "<subjectOf><issue>"
        f'<code code="{issue_code}" codeSystem="{NCI}" displayName="{display}"/>'
        "<subject><substanceAdministrationCriterion><consumable><administrableMaterial>"
        f'<playingMaterialKind><code code="{target_code}" codeSystem="{UNII}"/>'
        f"<name>{target_name}</name></playingMaterialKind>"
        "</administrableMaterial></consumable></substanceAdministrationCriterion></subject>"
        "</issue></subjectOf>"
    )


def product_xml(
    name: str = "Depen",
    code: str = "0037-4401",
    *,
    ingredients: Iterable[str] | None = None,
    packages: Iterable[str] | None = None,
    subjects: Iterable[str] = (),
    form_codes: int = 1,
    route: bool = True,
) -> str:
    ingredient_part = "".join(
        ingredients
        if ingredients is not None
        else [ingredient_xml("GNN1DV99GX", "Penicillamine", moiety=("GNN1DV99GX", "Penicillamine"))]
    )
    package_part = "".join(
        packages if packages is not None else [package_xml(f"{code}-01")]
    )
    forms = "".join(
        f'<formCode code="C42998" codeSystem="{NCI}" displayName="TABLET"/>' for _ in range(form_codes)
    )
    route_part = ""
    if route:
        route_part = (
            "<consumedIn><substanceAdministration>"
            f'<routeCode code="C38288" codeSystem="{NCI}" displayName="ORAL"/>'
            "</substanceAdministration></consumedIn>"
        )
    return (
        "<subject><manufacturedProduct><manufacturedProduct>"
        f'<code code="{code}" codeSystem="{NDC}"/><name>{name}</name>{forms}'
        f"{ingredient_part}{package_part}</manufacturedProduct>"
        f"{''.join(subjects)}{route_part}</manufacturedProduct></subject>"
    )


def section_xml(
    code: str = "34067-9",
    title: str = "INDICATIONS AND USAGE",
    *,
    paragraphs: Iterable[str] = (),
    products: Iterable[str] = (),
    subsections: Iterable[str] = (),
) -> str:
    text = ""
    paragraph_list = list(paragraphs)
    if paragraph_list:
        text = "<text>" + "".join(f"<paragraph>{p}</paragraph>" for p in paragraph_list) + "</text>"
    nested = "".join(f"<component>{s}</component>" for s in subsections)
    return (
        f'<section><id root="{new_guid()}"/><code code="{code}" codeSystem="{LOINC}"/>'
        f"<title>{title}</title>{text}{''.join(products)}{nested}</section>"
    )


def build_spl(
    *,
    document_guid: str | None = None,
    set_guid: str | None = None,
    version: int | str | None = 1,
    sections: Iterable[str] | None = None,
    title: str = "Example label",
    authors: Iterable[str] | None = None,
) -> str:
    """Assemble a complete SPL document around the given section fragments."""

    section_list = list(sections) if sections is not None else [section_xml(products=[product_xml()])]
    author_part = "".join(
        authors
        if authors is not None
        else [
            "<author><time/><assignedEntity><representedOrganization>"
            f'<id extension="001234567" root="{DUNS}"/><name>Meda Pharmaceuticals Inc.</name>'
            "</representedOrganization></assignedEntity></author>"
        ]
    )
    id_el = f'<id root="{document_guid or new_guid()}"/>' if document_guid != "" else ""
    set_el = f'<setId root="{set_guid or new_guid()}"/>' if set_guid != "" else ""
    version_el = f'<versionNumber value="{version}"/>' if version is not None else ""
    body = "".join(f"<component>{s}</component>" for s in section_list)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<document xmlns="urn:hl7-org:v3" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
        f'{id_el}<code code="34391-3" codeSystem="{LOINC}"/><title>{title}</title>'
        f'<effectiveTime value="20240115"/>{set_el}{version_el}{author_part}'
        f"<component><structuredBody>{body}</structuredBody></component>"
        "</document>"
    )


def author_xml(*listed_products: str, labeler: str = "Meda Pharmaceuticals Inc.") -> str:
    """Labeler > registrant > establishment, the establishment manufacturing ``listed_products``."""

    listed = "".join(
        "<product><manufacturedProduct><manufacturedMaterialKind>"
        f'<code code="{code}" codeSystem="{NDC}"/>'
        "</manufacturedMaterialKind></manufacturedProduct></product>"
        for code in listed_products
    )
    performance = ""
    if listed_products:
        performance = (
            "<performance><actDefinition>"
            f'<code code="C43360" codeSystem="{NCI}" displayName="MANUFACTURE"/>'
            f"{listed}</actDefinition></performance>"
        )
    return (
        "<author><time/><assignedEntity><representedOrganization>"
        f'<id extension="001234567" root="{DUNS}"/><name>{labeler}</name>'
        "<assignedEntity><assignedOrganization>"
        f'<id extension="111111111" root="{DUNS}"/><name>Meda Registrant</name>'
        "<assignedEntity><assignedOrganization>"
        f'<id extension="222222222" root="{DUNS}"/><name>Meda Plant</name>'
        f"</assignedOrganization>{performance}</assignedEntity>"
        "</assignedOrganization></assignedEntity>"
        "</representedOrganization></assignedEntity></author>"
    )


def characteristic_xml(code: str, value: str) -> str:
    """``value`` is the complete ``<value>`` element, ``xsi:type`` included."""
    return (
        "<subjectOf><characteristic>"
        f'<code code="{code}" codeSystem="{CHARACTERISTIC}"/>{value}'
        "</characteristic></subjectOf>"
    )


def indexing_xml(substance_code: str, *classes: tuple[str, str], name: str | None = None) -> str:
    """A section subject indexing ``substance_code`` under the given (code, display) classes."""

    name_el = f"<name>{name}</name>" if name else ""
    kinds = "".join(
        "<asSpecializedKind><generalizedMaterialKind>"
        f'<code code="{code}" codeSystem="{MED_RT}" displayName="{display}"/>'
        "</generalizedMaterialKind></asSpecializedKind>"
        for code, display in classes
    )
    return (
        "<subject><identifiedSubstance><identifiedSubstance>"
        f'<code code="{substance_code}" codeSystem="{UNII}"/>{name_el}{kinds}'
        "</identifiedSubstance></identifiedSubstance></subject>"
    )
