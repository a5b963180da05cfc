"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityType(StrEnum):
    """Typed-handle discriminator; every persisted entity carries one."""

    DOCUMENT_SET = "document_set"
    DOCUMENT = "document"
    ORGANIZATION = "organization"
    DOCUMENT_AUTHOR = "document_author"
    BUSINESS_OPERATION = "business_operation"
    OPERATION_PRODUCT = "operation_product"

    SECTION = "section"
    CONTENT_BLOCK = "content_block"
    INDEXED_SUBSTANCE = "indexed_substance"
    PHARMACOLOGIC_CLASS = "pharmacologic_class"
    PHARMACOLOGIC_CLASS_LINK = "pharmacologic_class_link"

    PRODUCT = "product"
    PRODUCT_ROUTE = "product_route"
    PRODUCT_IDENTIFIER = "product_identifier"
    PRODUCT_CHARACTERISTIC = "product_characteristic"
    ACTIVE_INGREDIENT = "active_ingredient"
    INACTIVE_INGREDIENT = "inactive_ingredient"
    ACTIVE_MOIETY = "active_moiety"
    MARKETING_CATEGORY = "marketing_category"
    MARKETING_STATUS = "marketing_status"
    PACKAGING_LEVEL = "packaging_level"
    PACKAGE_IDENTIFIER = "package_identifier"
    PACKAGE_ITEM = "package_item"
    DRUG_INTERACTION = "drug_interaction"
    CONTRAINDICATED_DRUG = "contraindicated_drug"


class AuthorRole(StrEnum):
    """Position of an organization in the document's author hierarchy."""

    LABELER = "labeler"
    REGISTRANT = "registrant"
    ESTABLISHMENT = "establishment"

    @classmethod
    def for_depth(cls, depth: int) -> AuthorRole:
        if depth <= 0:
            return cls.LABELER
        if depth == 1:
            return cls.REGISTRANT
        return cls.ESTABLISHMENT


class IngredientClass(StrEnum):
    """HL7 ingredient class codes (``classCode`` attribute)."""

    ACTIVE_BASIS_OF_STRENGTH = "ACTIB"
    ACTIVE_MOIETY_BASIS = "ACTIM"
    ACTIVE_REFERENCE_BASIS = "ACTIR"
    ACTIVE = "ACTI"
    INACTIVE = "IACT"
    COLOR = "COLR"
    FLAVOR = "FLVR"
    CONTAINED = "CNTM"

    @property
    def is_active(self) -> bool:
        return self.value.startswith("ACTI")


class RiskKind(StrEnum):
    """What a product-level ``issue`` declares about another substance."""

    INTERACTION = "interaction"
    CONTRAINDICATION = "contraindication"
