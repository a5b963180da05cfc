"""Public domain model surface."""

from __future__ import annotations

from splkit.domain.model.document import (
    BusinessOperation,
    Document,
    DocumentAuthor,
    DocumentSet,
    OperationProduct,
    Organization,
)
from splkit.domain.model.entity import Entity, EntityRef, SequencedEntity
from splkit.domain.model.enums import AuthorRole, EntityType, IngredientClass, RiskKind
from splkit.domain.model.indexing import IndexedSubstance, PharmacologicClass, PharmacologicClassLink
from splkit.domain.model.handles import (
    ComponentHandle,
    DocumentHandle,
    DocumentSetHandle,
    Handle,
    InvalidHandle,
    OrganizationHandle,
    PackagingHandle,
    ProductHandle,
    SectionHandle,
    handle_type_for,
)
from splkit.domain.model.primitives import (
    CodedValue,
    Guid,
    HL7Timestamp,
    NdcCode,
    Oid,
    Quantity,
    Ratio,
    Unii,
    present,
)
from splkit.domain.model.product import (
    ActiveIngredient,
    ActiveMoiety,
    ContraindicatedDrug,
    DrugInteraction,
    InactiveIngredient,
    Ingredient,
    MarketingCategory,
    MarketingStatus,
    PackageIdentifier,
    PackageItem,
    PackagingLevel,
    Product,
    ProductCharacteristic,
    ProductIdentifier,
    ProductRoute,
)
from splkit.domain.model.section import ContentBlock, Section

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "EntityRef",
    "SequencedEntity",
    # handles
    "Handle",
    "InvalidHandle",
    "DocumentSetHandle",
    "DocumentHandle",
    "OrganizationHandle",
    "SectionHandle",
    "ProductHandle",
    "PackagingHandle",
    "ComponentHandle",
    "handle_type_for",
    # document
    "DocumentSet",
    "Document",
    "Organization",
    "DocumentAuthor",
    "BusinessOperation",
    "OperationProduct",
    # sections
    "Section",
    "ContentBlock",
    # indexing
    "IndexedSubstance",
    "PharmacologicClass",
    "PharmacologicClassLink",
    # products
    "Product",
    "ProductIdentifier",
    "ProductRoute",
    "ProductCharacteristic",
    "Ingredient",
    "ActiveIngredient",
    "InactiveIngredient",
    "ActiveMoiety",
    "MarketingCategory",
    "MarketingStatus",
    "PackagingLevel",
    "PackageIdentifier",
    "PackageItem",
    "DrugInteraction",
    "ContraindicatedDrug",
    # enums
    "AuthorRole",
    "EntityType",
    "IngredientClass",
    "RiskKind",
    # primitives
    "CodedValue",
    "Guid",
    "HL7Timestamp",
    "NdcCode",
    "Oid",
    "Quantity",
    "Ratio",
    "Unii",
    "present",
]
