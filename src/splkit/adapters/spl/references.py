"""Second reading pass: resolve cross-references against the first pass index.

Forward references are legal in SPL (an establishment may list a product
declared further down, an interaction may name a substance of a later
product), so nothing here runs before the whole tree has been read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from splkit.domain.errors import SchemaViolation
from splkit.domain.model import ActiveMoiety, PharmacologicClass

if TYPE_CHECKING:
    from splkit.domain.model import (
        ActiveIngredient,
        CodedValue,
        ContraindicatedDrug,
        Document,
        DrugInteraction,
        OperationProduct,
        Product,
    )

log = logging.getLogger(__name__)


@dataclass(slots=True)
class MoietyDeclaration:
    ingredient: ActiveIngredient
    code: CodedValue | None
    name: str | None
    location: str


@dataclass(slots=True)
class ReferenceIndex:
    """Codes declared anywhere in the payload, collected by the first pass."""

    substance_codes: set[str] = field(default_factory=set[str])
    product_codes: dict[str, Product] = field(default_factory=dict[str, "Product"])
    moieties: list[MoietyDeclaration] = field(default_factory=list[MoietyDeclaration])
    risks: list[tuple[DrugInteraction | ContraindicatedDrug, str]] = field(
        default_factory=list[tuple["DrugInteraction | ContraindicatedDrug", str]]
    )
    operation_products: list[tuple[OperationProduct, str]] = field(
        default_factory=list[tuple["OperationProduct", str]]
    )
    # one object per class code within a payload
    pharmacologic_classes: dict[tuple[str | None, str], PharmacologicClass] = field(
        default_factory=dict[tuple[str | None, str], PharmacologicClass]
    )

    def declare_product(self, code: str, product: Product) -> bool:
        """Returns False if another product already declared ``code``."""
        if code in self.product_codes and self.product_codes[code] is not product:
            return False
        self.product_codes[code] = product
        return True

    def pharmacologic_class(self, code: CodedValue) -> PharmacologicClass:
        key = (code.code_system, code.code or "")
        known = self.pharmacologic_classes.get(key)
        if known is None:
            known = self.pharmacologic_classes[key] = PharmacologicClass(code=code)
        return known


def resolve_references(
    document: Document, index: ReferenceIndex, violations: list[SchemaViolation]
) -> None:
    _resolve_moieties(document, index, violations)
    _resolve_risk_targets(document, index, violations)
    _resolve_operation_products(index, violations)


def _resolve_moieties(
    document: Document, index: ReferenceIndex, violations: list[SchemaViolation]
) -> None:
    for declaration in index.moieties:
        candidate = ActiveMoiety(code=declaration.code, name=declaration.name)
        moiety = document.find_moiety(candidate.key)
        if moiety is None:
            moiety = document.add_moiety(candidate)
        elif declaration.name and moiety.name and declaration.name != moiety.name:
            violations.append(
                SchemaViolation(
                    "active_moiety.name",
                    f"moiety {candidate.key} declared as {declaration.name!r}, "
                    f"first declared as {moiety.name!r}",
                    declaration.location,
                )
            )
        declaration.ingredient.link_moiety(moiety)


def _resolve_risk_targets(
    document: Document, index: ReferenceIndex, violations: list[SchemaViolation]
) -> None:
    known = set(index.substance_codes)
    known.update(m.code.code for m in document.moieties if m.code is not None and m.code.code)
    for risk, location in index.risks:
        code = risk.target.code
        if code in known:
            risk.resolved = True
            continue
        risk.resolved = False
        violations.append(
            SchemaViolation(
                "cross_reference.unresolved",
                f"substance {code} is not declared in this document",
                location,
            )
        )


def _resolve_operation_products(index: ReferenceIndex, violations: list[SchemaViolation]) -> None:
    for link, location in index.operation_products:
        code = link.product_code.code
        product = index.product_codes.get(code) if code else None
        if product is None:
            violations.append(
                SchemaViolation(
                    "cross_reference.unresolved",
                    f"establishment lists product {code} which is not declared in this document",
                    location,
                )
            )
            continue
        link.link(product)
    log.debug("Resolved %d establishment product links", len(index.operation_products))
