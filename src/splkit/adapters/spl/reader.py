"""First reading pass: SPL XML -> detached domain graph.

The reader walks the tree depth first in document order, validates
cardinality rules before creating each entity and records breaches as
``SchemaViolation``s. Codes that other parts of the payload may refer to are
collected into a ``ReferenceIndex`` and resolved afterwards (see
``references``). Only problems that make the graph impossible to place or to
keep acyclic are raised.
"""

from __future__ import annotations

import hashlib
import logging
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING, Any

from splkit.domain.errors import MalformedDocument, ReferentialIntegrityError, SchemaViolation
from splkit.domain.model import (
    CodedValue,
    ContentBlock,
    Document,
    IngredientClass,
    MarketingStatus,
    Organization,
    PackagingLevel,
    Product,
    ProductCharacteristic,
    Ratio,
    RiskKind,
    Section,
)
from splkit.domain.ports import NullControl, ParsedDocument
from splkit.domain.xmltree import (
    child,
    children,
    collapse,
    descend,
    local_name,
    namespace_of,
    sibling_positions,
    text_of,
)

from . import narrative
from .references import MoietyDeclaration, ReferenceIndex, resolve_references
from .vocabulary import (
    CONTRAINDICATION_ISSUE,
    HL7_NS,
    INTERACTION_ISSUE,
    XSI_SCHEMA_LOCATION,
    XSI_TYPE,
)

if TYPE_CHECKING:
    from splkit.domain.model import DocumentAuthor
    from splkit.domain.ports import OperationControl

log = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
# how many visited elements between progress reports / cancellation checks
CHECK_EVERY = 200
# characteristic value types kept in full; others keep only their value/unit attributes
READABLE_VALUE_TYPES = frozenset({*ProductCharacteristic.CODED_TYPES, "ST", "PQ", "INT", "BL"})


def content_hash(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def parse_xml(payload: bytes, control: OperationControl | None = None) -> ET.Element:
    """Feed ``payload`` to the parser in chunks; raises ``MalformedDocument``."""
    control = control or NullControl()
    parser = ET.XMLParser()  # noqa: S314
    total = max(len(payload), 1)
    try:
        for offset in range(0, len(payload), CHUNK_SIZE):
            control.raise_if_cancelled()
            parser.feed(payload[offset : offset + CHUNK_SIZE])
            control.report(min(offset + CHUNK_SIZE, total) * 100 // total)
        return parser.close()
    except ET.ParseError as exc:
        line, column = exc.position
        raise MalformedDocument(
            f"payload is not well-formed XML: {exc}", location=f"line {line}, column {column}"
        ) from exc


class _ReadState:
    """Per-payload bookkeeping: element paths, findings, first-pass index."""

    def __init__(self, root: ET.Element, control: OperationControl) -> None:
        self.positions = sibling_positions(root)
        self.parents = {nested: parent for parent in root.iter() for nested in parent}
        self.order = {element: i for i, element in enumerate(root.iter())}
        self.total = max(len(self.order), 1)
        self.visited = 0
        self.control = control
        self.violations: list[SchemaViolation] = []
        self.index = ReferenceIndex()

    def location(self, element: ET.Element) -> str:
        steps: list[str] = []
        node: ET.Element | None = element
        while node is not None:
            position = self.positions.get(node, 1)
            name = local_name(node.tag)
            steps.append(f"{name}[{position}]" if position > 1 else name)
            node = self.parents.get(node)
        return "/" + "/".join(reversed(steps))

    def violation(self, rule: str, message: str, element: ET.Element) -> None:
        self.violations.append(SchemaViolation(rule, message, self.location(element)))

    def visit(self, element: ET.Element) -> None:
        self.visited += 1
        if self.visited % CHECK_EVERY:
            return
        self.control.raise_if_cancelled()
        self.control.report(self.order.get(element, 0) * 100 // self.total)


def _coded(element: ET.Element | None) -> CodedValue | None:
    if element is None:
        return None
    value = CodedValue(
        code=element.get("code"),
        code_system=element.get("codeSystem"),
        display_name=element.get("displayName"),
    )
    return None if value.is_empty else value


def _ratio(element: ET.Element | None) -> Ratio | None:
    if element is None:
        return None
    numerator = child(element, "numerator")
    denominator = child(element, "denominator")
    value = Ratio(
        numerator_value=numerator.get("value") if numerator is not None else None,
        numerator_unit=numerator.get("unit") if numerator is not None else None,
        denominator_value=denominator.get("value") if denominator is not None else None,
        denominator_unit=denominator.get("unit") if denominator is not None else None,
    )
    return None if value.is_empty else value


def _ingredient_class(class_code: str | None) -> IngredientClass | None:
    try:
        return IngredientClass(class_code)
    except ValueError:
        return None


def _attr(element: ET.Element | None, name: str) -> str | None:
    return element.get(name) if element is not None else None


class SplReader:
    """Reads one SPL payload into a ``ParsedDocument`` (both passes)."""

    def __call__(
        self,
        payload: bytes | str,
        *,
        control: OperationControl | None = None,
    ) -> ParsedDocument:
        control = control or NullControl()
        raw = payload.encode("utf-8") if isinstance(payload, str) else payload

        root = parse_xml(raw, control.scaled(0, 30))
        if local_name(root.tag) != "document" or namespace_of(root.tag) != HL7_NS:
            raise MalformedDocument(
                f"expected an HL7 v3 document root, found {root.tag!r}", location="/"
            )

        state = _ReadState(root, control.scaled(30, 90))
        document, set_guid = self._read_document(root, state)
        control.raise_if_cancelled()

        resolve_references(document, state.index, state.violations)
        control.report(95)

        document.content_hash = content_hash(raw)
        document.source_payload = raw
        log.info(
            "Read document %s (set %s, version %d): %d sections, %d products, %d violations",
            document.document_guid,
            set_guid,
            document.version_number,
            len(document.all_sections),
            len(document.products),
            len(state.violations),
        )
        return ParsedDocument(document=document, set_guid=set_guid, violations=state.violations)

    # Document -------------------------------------------------------------

    def _read_document(self, root: ET.Element, state: _ReadState) -> tuple[Document, str]:
        id_el = child(root, "id")
        document_guid = _attr(id_el, "root")
        if not document_guid:
            raise MalformedDocument("document has no id", location=state.location(root))
        set_id_el = child(root, "setId")
        set_guid = _attr(set_id_el, "root")
        if not set_guid:
            raise MalformedDocument("document has no setId", location=state.location(root))
        version_el = child(root, "versionNumber")
        raw_version = _attr(version_el, "value")
        try:
            version_number = int(raw_version) if raw_version is not None else None
        except ValueError:
            version_number = None
        if version_number is None or version_number < 0:
            where = version_el if version_el is not None else root
            raise MalformedDocument(
                f"document version number {raw_version!r} is not a non-negative integer",
                location=state.location(where),
            )

        document = Document(
            document_guid=document_guid,
            version_number=version_number,
            document_type=_coded(child(root, "code")),
            title=text_of(child(root, "title")),
            effective_time=_attr(child(root, "effectiveTime"), "value"),
            schema_location=root.get(XSI_SCHEMA_LOCATION),
        )

        for author_el in children(root, "author"):
            state.visit(author_el)
            organization_el = descend(author_el, "assignedEntity", "representedOrganization")
            if organization_el is None:
                state.violation("author.organization", "author has no represented organization", author_el)
                continue
            author = self._read_organization(organization_el, None, document, state)
            author.time = _attr(child(author_el, "time"), "value")

        body = descend(root, "component", "structuredBody")
        if body is None:
            state.violation("document.body", "document has no structured body", root)
        else:
            for component in children(body, "component"):
                section_el = child(component, "section")
                if section_el is not None:
                    self._read_section(section_el, None, document, state)
        return document, set_guid

    # Authors ----------------------------------------------------------------

    def _read_organization(
        self,
        element: ET.Element,
        parent: DocumentAuthor | None,
        document: Document,
        state: _ReadState,
    ) -> DocumentAuthor:
        id_el = next((i for i in children(element, "id") if i.get("extension")), None)
        name = text_of(child(element, "name"))
        organization = Organization(
            name=name,
            identifier=_attr(id_el, "extension"),
            identifier_root=_attr(id_el, "root"),
        )
        if parent is None:
            author = document.add_author(organization, declared_name=name)
        else:
            author = parent.add_child(organization, declared_name=name)

        for assigned in children(element, "assignedEntity"):
            state.visit(assigned)
            nested = child(assigned, "assignedOrganization")
            if nested is None:
                continue
            nested_author = self._read_organization(nested, author, document, state)
            for performance in children(assigned, "performance"):
                self._read_performance(performance, nested_author, state)
        return author

    def _read_performance(
        self, element: ET.Element, author: DocumentAuthor, state: _ReadState
    ) -> None:
        definition = child(element, "actDefinition")
        if definition is None:
            state.violation("performance.act", "performance without actDefinition", element)
            return
        operation = author.add_operation(_coded(child(definition, "code")))
        for product_el in children(definition, "product"):
            code_el = descend(product_el, "manufacturedProduct", "manufacturedMaterialKind", "code")
            code = _coded(code_el)
            if code is None or not code.code:
                state.violation("performance.product", "listed product has no code", product_el)
                continue
            link = operation.add_product_code(code)
            state.index.operation_products.append((link, state.location(product_el)))

    # Sections -------------------------------------------------------------

    def _read_section(
        self,
        element: ET.Element,
        parent: Section | None,
        document: Document,
        state: _ReadState,
    ) -> Section:
        state.visit(element)
        section = Section(
            section_guid=_attr(child(element, "id"), "root"),
            anchor_id=element.get("ID"),
            code=_coded(child(element, "code")),
            title=text_of(child(element, "title")),
            effective_time=_attr(child(element, "effectiveTime"), "value"),
        )
        if parent is None:
            document.add_section(section)
        else:
            parent.add_subsection(section)

        text_el = child(element, "text")
        if text_el is not None:
            self._read_text(text_el, section)

        for subject in children(element, "subject"):
            role = child(subject, "manufacturedProduct")
            if role is not None:
                self._read_product(role, section, state)
                continue
            identified = descend(subject, "identifiedSubstance", "identifiedSubstance")
            if identified is not None:
                self._read_indexed_substance(identified, section, state)

        for component in children(element, "component"):
            nested = child(component, "section")
            if nested is not None:
                self._read_section(nested, section, document, state)
        return section

    def _read_text(self, element: ET.Element, section: Section) -> None:
        leading = collapse(element.text)
        if leading is not None:
            section.add_block(block_type=ContentBlock.TEXT_RUN, markup=leading)
        for block in element:
            block_type, markup, tail = narrative.capture(block)
            section.add_block(block_type=block_type, markup=markup, tail=tail)

    def _read_indexed_substance(
        self, element: ET.Element, section: Section, state: _ReadState
    ) -> None:
        state.visit(element)
        code = _coded(child(element, "code"))
        if code is None or not code.code:
            state.violation("indexing.substance", "indexed substance has no code", element)
        substance = section.add_indexed_substance(code=code, name=text_of(child(element, "name")))
        for specialized in children(element, "asSpecializedKind"):
            class_code = _coded(descend(specialized, "generalizedMaterialKind", "code"))
            if class_code is None or not class_code.code:
                state.violation(
                    "indexing.class", "pharmacologic class has no code", specialized
                )
                continue
            substance.add_class(state.index.pharmacologic_class(class_code))

    # Products -------------------------------------------------------------

    def _read_product(self, role: ET.Element, section: Section, state: _ReadState) -> Product | None:
        state.visit(role)
        entity = child(role, "manufacturedProduct")
        if entity is None:
            state.violation("product.entity", "product role without manufactured product", role)
            return None

        form_codes = children(entity, "formCode")
        if len(form_codes) != 1:
            state.violation(
                "product.form_code",
                f"product must declare exactly one formCode, found {len(form_codes)}",
                entity,
            )
        routes = [
            route
            for consumed in children(role, "consumedIn")
            if (route := descend(consumed, "substanceAdministration", "routeCode")) is not None
        ]
        if not routes:
            state.violation("product.route", "product declares no route of administration", role)

        product = Product(
            name=text_of(child(entity, "name")),
            generic_name=text_of(descend(entity, "asEntityWithGeneric", "genericMedicine", "name")),
            dosage_form=_coded(form_codes[0]) if form_codes else None,
        )
        section.place_product(product)

        for code_el in children(entity, "code"):
            code = _coded(code_el)
            if code is None:
                continue
            product.add_identifier(code)
            if code.code and not state.index.declare_product(code.code, product):
                state.violation(
                    "product.code", f"product code {code.code} declared twice", code_el
                )

        for ingredient_el in children(entity, "ingredient"):
            self._read_ingredient(ingredient_el, product, state)

        for content in children(entity, "asContent"):
            self._read_packaging(content, product, None, (), state)

        for subject in children(role, "subjectOf"):
            self._read_product_subject(subject, product, state)

        for route in routes:
            code = _coded(route)
            if code is not None:
                product.add_route(code)
        return product

    def _read_ingredient(self, element: ET.Element, product: Product, state: _ReadState) -> None:
        class_code = element.get("classCode")
        ingredient_class = _ingredient_class(class_code)
        if ingredient_class is None:
            state.violation(
                "ingredient.class_code", f"unknown ingredient class code {class_code!r}", element
            )
        substance = child(element, "ingredientSubstance")
        substance_code = _coded(child(substance, "code")) if substance is not None else None
        if substance_code is None or not substance_code.code:
            state.violation("ingredient.substance", "ingredient has no substance code", element)
        else:
            state.index.substance_codes.add(substance_code.code)

        fields = {
            "substance_code": substance_code or CodedValue(),
            "substance_name": text_of(child(substance, "name")) if substance is not None else None,
            "class_code": class_code or "",
            "strength": _ratio(child(element, "quantity")),
        }
        if ingredient_class is None or not ingredient_class.is_active:
            product.add_inactive_ingredient(**fields)
            return

        ingredient = product.add_active_ingredient(**fields)
        moiety_el = descend(substance, "activeMoiety", "activeMoiety") if substance is not None else None
        if moiety_el is not None:
            code = _coded(child(moiety_el, "code"))
            state.index.moieties.append(
                MoietyDeclaration(
                    ingredient=ingredient,
                    code=code,
                    name=text_of(child(moiety_el, "name")),
                    location=state.location(moiety_el),
                )
            )

    def _read_packaging(
        self,
        element: ET.Element,
        product: Product,
        outer: PackagingLevel | None,
        ancestor_codes: tuple[str, ...],
        state: _ReadState,
    ) -> PackagingLevel:
        state.visit(element)
        container = child(element, "containerPackagedProduct")
        level = PackagingLevel(
            quantity=_ratio(child(element, "quantity")),
            form=_coded(child(container, "formCode")) if container is not None else None,
        )
        if outer is None:
            product.add_packaging(level)
        else:
            outer.add_item(level)

        own_codes: list[str] = []
        nested: list[ET.Element] = []
        if container is not None:
            for code_el in children(container, "code"):
                code = _coded(code_el)
                if code is None:
                    continue
                if code.code in ancestor_codes:
                    raise ReferentialIntegrityError(
                        f"package {code.code} contains itself", location=state.location(code_el)
                    )
                level.add_identifier(code)
                if code.code:
                    own_codes.append(code.code)
            nested = children(container, "asContent")
        if not nested and not own_codes:
            state.violation("package.identifier", "innermost package has no package code", element)

        for content in nested:
            self._read_packaging(content, product, level, (*ancestor_codes, *own_codes), state)

        for subject in children(element, "subjectOf"):
            act = child(subject, "marketingAct")
            if act is not None:
                level.add_marketing_status(self._marketing_status(act))
        return level

    def _read_product_subject(self, subject: ET.Element, product: Product, state: _ReadState) -> None:
        approval = child(subject, "approval")
        if approval is not None:
            id_el = child(approval, "id")
            product.add_marketing_category(
                category=_coded(child(approval, "code")),
                application_number=_attr(id_el, "extension"),
                application_root=_attr(id_el, "root"),
                territory_code=_attr(
                    descend(approval, "author", "territorialAuthority", "territory", "code"), "code"
                ),
            )
            return
        act = child(subject, "marketingAct")
        if act is not None:
            product.add_marketing_status(self._marketing_status(act))
            return
        characteristic = child(subject, "characteristic")
        if characteristic is not None:
            self._read_characteristic(characteristic, product, state)
            return
        issue = child(subject, "issue")
        if issue is not None:
            self._read_issue(issue, product, state)

    def _read_characteristic(self, element: ET.Element, product: Product, state: _ReadState) -> None:
        value_el = child(element, "value")
        value_type = _attr(value_el, XSI_TYPE)
        if value_el is not None and value_type not in READABLE_VALUE_TYPES:
            state.violation(
                "characteristic.value",
                f"unsupported characteristic value type {value_type!r}",
                value_el,
            )
        fields: dict[str, Any] = {}
        if value_type in ProductCharacteristic.CODED_TYPES:
            fields["value"] = _coded(value_el)
        elif value_type == "ST":
            fields["value_text"] = text_of(value_el)
        else:
            fields["value_text"] = _attr(value_el, "value")
            fields["value_unit"] = _attr(value_el, "unit")
        product.add_characteristic(
            code=_coded(child(element, "code")), value_type=value_type, **fields
        )

    def _marketing_status(self, act: ET.Element) -> MarketingStatus:
        effective = child(act, "effectiveTime")
        return MarketingStatus(
            activity=_coded(child(act, "code")),
            status_code=_attr(child(act, "statusCode"), "code"),
            effective_low=_attr(child(effective, "low"), "value") if effective is not None else None,
            effective_high=_attr(child(effective, "high"), "value") if effective is not None else None,
        )

    def _read_issue(self, issue: ET.Element, product: Product, state: _ReadState) -> None:
        issue_code = _attr(child(issue, "code"), "code")
        if issue_code == CONTRAINDICATION_ISSUE:
            kind = RiskKind.CONTRAINDICATION
        else:
            kind = RiskKind.INTERACTION
            if issue_code != INTERACTION_ISSUE:
                state.violation("issue.code", f"unknown issue code {issue_code!r}", issue)

        material = descend(
            issue,
            "subject",
            "substanceAdministrationCriterion",
            "consumable",
            "administrableMaterial",
            "playingMaterialKind",
        )
        target = _coded(child(material, "code")) if material is not None else None
        if target is None or not target.code:
            state.violation("issue.target", "interaction names no substance code", issue)
            return

        observation = descend(issue, "risk", "consequenceObservation")
        risk = product.add_interaction(
            kind=kind,
            target=target,
            target_name=text_of(child(material, "name")) if material is not None else None,
            consequence_type=_coded(child(observation, "code")) if observation is not None else None,
            consequence=_coded(child(observation, "value")) if observation is not None else None,
        )
        state.index.risks.append((risk, state.location(material)))
