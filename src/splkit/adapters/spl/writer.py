"""Stored document graph -> SPL XML in canonical element order.

Sequence numbers decide sibling order everywhere; only external codes are
written, never surrogate ids.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING

from splkit.domain.model import RiskKind, present
from splkit.domain.xmltree import local_name

from . import narrative
from .vocabulary import (
    CONTRAINDICATION_ISSUE,
    INTERACTION_ISSUE,
    NCI_THESAURUS,
    TERRITORY,
    XSI_SCHEMA_LOCATION,
    XSI_TYPE,
    tag,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from splkit.domain.model import (
        CodedValue,
        ContraindicatedDrug,
        Document,
        DocumentAuthor,
        DrugInteraction,
        IndexedSubstance,
        Ingredient,
        MarketingCategory,
        MarketingStatus,
        PackagingLevel,
        Product,
        ProductCharacteristic,
        Ratio,
        Section,
        SequencedEntity,
    )

log = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
INDENT = "  "


def _ordered[T: SequencedEntity](items: Iterable[T]) -> list[T]:
    return sorted(items, key=lambda item: item.sequence_number)


def _sub(parent: ET.Element, name: str, **attributes: str | None) -> ET.Element:
    element = ET.SubElement(parent, tag(name))
    for key, value in attributes.items():
        if value is not None:
            element.set(key, value)
    return element


def _text(parent: ET.Element, name: str, value: str | None) -> ET.Element | None:
    if value is None:
        return None
    element = _sub(parent, name)
    element.text = value
    return element


def _code(parent: ET.Element, name: str, value: CodedValue | None) -> ET.Element | None:
    value = present(value)
    if value is None:
        return None
    return _sub(
        parent,
        name,
        code=value.code,
        codeSystem=value.code_system,
        displayName=value.display_name,
    )


def _indent(element: ET.Element, level: int = 0) -> None:
    """Like ``ET.indent``, but narrative blocks are written exactly as stored.

    Whitespace inside a block of section ``text`` is content; only the blocks
    themselves are placed on their own lines.
    """
    if not len(element):
        return
    inner = "\n" + INDENT * (level + 1)
    if not element.text or not element.text.strip():
        element.text = inner
    in_text = local_name(element.tag) == "text"
    for nested in element:
        if not nested.tail or not nested.tail.strip():
            nested.tail = inner
        if not in_text:
            _indent(nested, level + 1)
    last = element[-1]
    if not last.tail or not last.tail.strip():
        last.tail = "\n" + INDENT * level


def _ratio(parent: ET.Element, name: str, value: Ratio | None) -> ET.Element | None:
    value = present(value)
    if value is None:
        return None
    element = _sub(parent, name)
    if value.numerator_value is not None or value.numerator_unit is not None:
        _sub(element, "numerator", value=value.numerator_value, unit=value.numerator_unit)
    if value.denominator_value is not None or value.denominator_unit is not None:
        _sub(element, "denominator", value=value.denominator_value, unit=value.denominator_unit)
    return element


class SplWriter:
    """Renders a stored ``Document`` as SPL XML (pretty or minified)."""

    def __call__(self, document: Document, *, minify: bool = False) -> str:
        root = self.build(document)
        if not minify:
            _indent(root)
        body = ET.tostring(root, encoding="unicode")
        separator = "" if minify else "\n"
        log.debug("Rendered document %s (%d characters)", document.document_guid, len(body))
        return f"{XML_DECLARATION}{separator}{body}{separator}"

    def build(self, document: Document) -> ET.Element:
        root = ET.Element(tag("document"))
        if document.schema_location:
            root.set(XSI_SCHEMA_LOCATION, document.schema_location)
        _sub(root, "id", root=document.document_guid)
        _code(root, "code", document.document_type)
        _text(root, "title", document.title)
        if document.effective_time is not None:
            _sub(root, "effectiveTime", value=document.effective_time)
        _sub(root, "setId", root=document.set_guid)
        _sub(root, "versionNumber", value=str(document.version_number))

        for author in document.authors:
            element = _sub(root, "author")
            _sub(element, "time", value=author.time)
            assigned = _sub(element, "assignedEntity")
            self._organization(assigned, "representedOrganization", author)

        sections = document.sections
        if sections:
            body = _sub(_sub(root, "component"), "structuredBody")
            for section in sections:
                self._section(_sub(body, "component"), section)
        return root

    # Authors --------------------------------------------------------------

    def _organization(self, parent: ET.Element, name: str, author: DocumentAuthor) -> None:
        element = _sub(parent, name)
        organization = author.organization
        if organization.identifier is not None or organization.identifier_root is not None:
            _sub(element, "id", extension=organization.identifier, root=organization.identifier_root)
        _text(element, "name", author.declared_name)
        for nested in _ordered(author.children):
            assigned = _sub(element, "assignedEntity")
            self._organization(assigned, "assignedOrganization", nested)
            for operation in _ordered(nested.operations):
                definition = _sub(_sub(assigned, "performance"), "actDefinition")
                _code(definition, "code", operation.operation)
                for link in _ordered(operation.products):
                    product = _sub(_sub(definition, "product"), "manufacturedProduct")
                    kind = _sub(product, "manufacturedMaterialKind")
                    _code(kind, "code", link.product_code)

    # Sections -------------------------------------------------------------

    def _section(self, parent: ET.Element, section: Section) -> None:
        element = _sub(parent, "section", ID=section.anchor_id)
        if section.section_guid is not None:
            _sub(element, "id", root=section.section_guid)
        _code(element, "code", section.code)
        _text(element, "title", section.title)
        blocks = _ordered(section.blocks)
        if blocks:
            text = _sub(element, "text")
            for block in blocks:
                if block.is_text_run:
                    text.text = block.markup
                else:
                    text.append(narrative.restore(block))
        if section.effective_time is not None:
            _sub(element, "effectiveTime", value=section.effective_time)
        for product in _ordered(section.products):
            self._product(_sub(element, "subject"), product)
        for substance in _ordered(section.substances):
            self._indexed_substance(_sub(element, "subject"), substance)
        for nested in _ordered(section.children):
            self._section(_sub(element, "component"), nested)

    def _indexed_substance(self, parent: ET.Element, substance: IndexedSubstance) -> None:
        inner = _sub(_sub(parent, "identifiedSubstance"), "identifiedSubstance")
        _code(inner, "code", substance.code)
        _text(inner, "name", substance.name)
        for link in _ordered(substance.class_links):
            kind = _sub(_sub(inner, "asSpecializedKind"), "generalizedMaterialKind")
            _code(kind, "code", link.pharmacologic_class.code)

    # Products -------------------------------------------------------------

    def _product(self, parent: ET.Element, product: Product) -> None:
        role = _sub(parent, "manufacturedProduct")
        entity = _sub(role, "manufacturedProduct")
        for identifier in _ordered(product.identifiers):
            _code(entity, "code", identifier.code)
        _text(entity, "name", product.name)
        _code(entity, "formCode", product.dosage_form)
        if product.generic_name is not None:
            generic = _sub(_sub(entity, "asEntityWithGeneric"), "genericMedicine")
            _text(generic, "name", product.generic_name)
        for ingredient in _ordered(product.active_ingredients):
            self._ingredient(entity, ingredient)
        for ingredient in _ordered(product.inactive_ingredients):
            self._ingredient(entity, ingredient)
        for level in product.packaging:
            self._packaging(entity, level)

        for category in _ordered(product.marketing_categories):
            self._approval(_sub(role, "subjectOf"), category)
        for status in _ordered(product.marketing_statuses):
            self._marketing_act(_sub(role, "subjectOf"), status)
        for characteristic in _ordered(product.characteristics):
            self._characteristic(_sub(role, "subjectOf"), characteristic)
        for interaction in _ordered(product.interactions):
            self._issue(_sub(role, "subjectOf"), RiskKind.INTERACTION, interaction)
        for contraindication in _ordered(product.contraindications):
            self._issue(_sub(role, "subjectOf"), RiskKind.CONTRAINDICATION, contraindication)
        for route in _ordered(product.routes):
            administration = _sub(_sub(role, "consumedIn"), "substanceAdministration")
            _code(administration, "routeCode", route.route)

    def _ingredient(self, parent: ET.Element, ingredient: Ingredient) -> None:
        element = _sub(parent, "ingredient", classCode=ingredient.class_code or None)
        _ratio(element, "quantity", ingredient.strength)
        substance = _sub(element, "ingredientSubstance")
        _code(substance, "code", ingredient.substance_code)
        _text(substance, "name", ingredient.substance_name)
        moiety = getattr(ingredient, "moiety", None)
        if moiety is not None:
            inner = _sub(_sub(substance, "activeMoiety"), "activeMoiety")
            _code(inner, "code", moiety.code)
            _text(inner, "name", moiety.name)

    def _packaging(self, parent: ET.Element, level: PackagingLevel) -> None:
        element = _sub(parent, "asContent")
        _ratio(element, "quantity", level.quantity)
        container = _sub(element, "containerPackagedProduct")
        for identifier in _ordered(level.identifiers):
            _code(container, "code", identifier.code)
        _code(container, "formCode", level.form)
        for nested in level.contents:
            self._packaging(container, nested)
        for status in _ordered(level.marketing_statuses):
            self._marketing_act(_sub(element, "subjectOf"), status)

    def _approval(self, parent: ET.Element, category: MarketingCategory) -> None:
        approval = _sub(parent, "approval")
        if category.application_number is not None or category.application_root is not None:
            _sub(approval, "id", extension=category.application_number, root=category.application_root)
        _code(approval, "code", category.category)
        if category.territory_code is not None:
            territory = _sub(_sub(_sub(approval, "author"), "territorialAuthority"), "territory")
            _sub(territory, "code", code=category.territory_code, codeSystem=TERRITORY)

    def _marketing_act(self, parent: ET.Element, status: MarketingStatus) -> None:
        act = _sub(parent, "marketingAct")
        _code(act, "code", status.activity)
        if status.status_code is not None:
            _sub(act, "statusCode", code=status.status_code)
        if status.effective_low is not None or status.effective_high is not None:
            effective = _sub(act, "effectiveTime")
            if status.effective_low is not None:
                _sub(effective, "low", value=status.effective_low)
            if status.effective_high is not None:
                _sub(effective, "high", value=status.effective_high)

    def _characteristic(self, parent: ET.Element, characteristic: ProductCharacteristic) -> None:
        element = _sub(parent, "characteristic")
        _code(element, "code", characteristic.code)
        if characteristic.is_coded:
            value = _code(element, "value", characteristic.value) or _sub(element, "value")
        elif characteristic.value_type == "ST":
            value = _text(element, "value", characteristic.value_text) or _sub(element, "value")
        elif characteristic.value_type is None and characteristic.value_text is None:
            return
        else:
            value = _sub(
                element, "value", value=characteristic.value_text, unit=characteristic.value_unit
            )
        if characteristic.value_type is not None:
            value.set(XSI_TYPE, characteristic.value_type)

    def _issue(
        self,
        parent: ET.Element,
        kind: RiskKind,
        risk: DrugInteraction | ContraindicatedDrug,
    ) -> None:
        issue = _sub(parent, "issue")
        if kind is RiskKind.CONTRAINDICATION:
            code, display = CONTRAINDICATION_ISSUE, "CONTRAINDICATION"
        else:
            code, display = INTERACTION_ISSUE, "INTERACTION"
        _sub(issue, "code", code=code, codeSystem=NCI_THESAURUS, displayName=display)
        criterion = _sub(_sub(issue, "subject"), "substanceAdministrationCriterion")
        material = _sub(_sub(_sub(criterion, "consumable"), "administrableMaterial"), "playingMaterialKind")
        _code(material, "code", risk.target)
        _text(material, "name", risk.target_name)
        consequence_type = getattr(risk, "consequence_type", None)
        consequence = getattr(risk, "consequence", None)
        if present(consequence_type) is None and present(consequence) is None:
            return
        observation = _sub(_sub(issue, "risk"), "consequenceObservation")
        _code(observation, "code", consequence_type)
        value = _code(observation, "value", consequence)
        if value is not None:
            value.set(XSI_TYPE, "CE")
