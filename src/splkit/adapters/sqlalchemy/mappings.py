"""SQLAlchemy mapping metadata for the splkit domain model."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import Final

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import composite, configure_mappers, relationship

from splkit.domain.model import (
    ActiveIngredient,
    ActiveMoiety,
    AuthorRole,
    BusinessOperation,
    CodedValue,
    ContentBlock,
    ContraindicatedDrug,
    Document,
    DocumentAuthor,
    DocumentSet,
    DrugInteraction,
    Entity,
    EntityType,
    InactiveIngredient,
    IndexedSubstance,
    MarketingCategory,
    MarketingStatus,
    OperationProduct,
    Organization,
    PackageIdentifier,
    PackageItem,
    PackagingLevel,
    PharmacologicClass,
    PharmacologicClassLink,
    Product,
    ProductCharacteristic,
    ProductIdentifier,
    ProductRoute,
    Ratio,
    Section,
)

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _id() -> Column[uuid.UUID]:
    return Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4)


def _owner(name: str, target: str, *, nullable: bool = False) -> Column[uuid.UUID]:
    return Column(
        name,
        UUIDColumnType,
        ForeignKey(f"{target}.id", ondelete="CASCADE"),
        nullable=nullable,
    )


def _sequence() -> Column[int]:
    return Column("sequence_number", Integer, nullable=False, default=0)


def _coded(prefix: str) -> list[Column[str]]:
    return [
        Column(f"{prefix}_code", String, nullable=True),
        Column(f"{prefix}_code_system", String, nullable=True),
        Column(f"{prefix}_display_name", String, nullable=True),
    ]


def _ratio(prefix: str) -> list[Column[str]]:
    return [
        Column(f"{prefix}_numerator_value", String, nullable=True),
        Column(f"{prefix}_numerator_unit", String, nullable=True),
        Column(f"{prefix}_denominator_value", String, nullable=True),
        Column(f"{prefix}_denominator_unit", String, nullable=True),
    ]


# Document level ----------------------------------------------------------------

document_set_table = Table(
    "document_set",
    mapper_registry.metadata,
    _id(),
    Column("set_guid", String, nullable=False, unique=True),
    Column("last_handle", Integer, nullable=False, default=0),
)

document_table = Table(
    "document",
    mapper_registry.metadata,
    _id(),
    _owner("document_set_id", "document_set"),
    Column("document_guid", String, nullable=False, unique=True),
    Column("version_number", Integer, nullable=False),
    Column("title", Text, nullable=True),
    *_coded("document_type"),
    Column("effective_time", String(32), nullable=True),
    Column("schema_location", String, nullable=True),
    Column("content_hash", String(64), nullable=False),
    Column("source_payload", LargeBinary, nullable=True),
    Column("imported_at", UTCDateTime(), nullable=True),
    UniqueConstraint("document_set_id", "version_number"),
)

organization_table = Table(
    "organization",
    mapper_registry.metadata,
    _id(),
    Column("name", String, nullable=True),
    Column("identifier", String, nullable=True),
    Column("identifier_root", String, nullable=True),
    Index("ix_organization_identifier", "identifier_root", "identifier"),
)

document_author_table = Table(
    "document_author",
    mapper_registry.metadata,
    _id(),
    _owner("document_id", "document"),
    Column("organization_id", UUIDColumnType, ForeignKey("organization.id"), nullable=False),
    _owner("parent_id", "document_author", nullable=True),
    Column("role", Enum(AuthorRole, native_enum=False), nullable=False),
    Column("declared_name", String, nullable=True),
    Column("time", String(32), nullable=True),
    _sequence(),
)

business_operation_table = Table(
    "business_operation",
    mapper_registry.metadata,
    _id(),
    _owner("author_id", "document_author"),
    *_coded("operation"),
    _sequence(),
)

operation_product_table = Table(
    "operation_product",
    mapper_registry.metadata,
    _id(),
    _owner("operation_id", "business_operation"),
    Column(
        "product_id",
        UUIDColumnType,
        ForeignKey("product.id", ondelete="SET NULL"),
        nullable=True,
    ),
    *_coded("product_code"),
    _sequence(),
)

# Narrative ------------------------------------------------------------------------

section_table = Table(
    "section",
    mapper_registry.metadata,
    _id(),
    _owner("document_id", "document"),
    _owner("parent_id", "section", nullable=True),
    Column("section_guid", String, nullable=True),
    Column("anchor_id", String, nullable=True),
    *_coded("section"),
    Column("title", Text, nullable=True),
    Column("effective_time", String(32), nullable=True),
    _sequence(),
)

content_block_table = Table(
    "content_block",
    mapper_registry.metadata,
    _id(),
    _owner("section_id", "section"),
    Column("block_type", String, nullable=False),
    Column("markup", Text, nullable=True),
    Column("tail", Text, nullable=True),
    _sequence(),
)

indexed_substance_table = Table(
    "indexed_substance",
    mapper_registry.metadata,
    _id(),
    _owner("section_id", "section"),
    *_coded("substance"),
    Column("name", String, nullable=True),
    _sequence(),
)

pharmacologic_class_table = Table(
    "pharmacologic_class",
    mapper_registry.metadata,
    _id(),
    *_coded("class"),
    Index("ix_pharmacologic_class_code", "class_code_system", "class_code"),
)

pharmacologic_class_link_table = Table(
    "pharmacologic_class_link",
    mapper_registry.metadata,
    _id(),
    _owner("substance_id", "indexed_substance"),
    Column(
        "pharmacologic_class_id",
        UUIDColumnType,
        ForeignKey("pharmacologic_class.id"),
        nullable=False,
    ),
    _sequence(),
)

# Products -------------------------------------------------------------------------

product_table = Table(
    "product",
    mapper_registry.metadata,
    _id(),
    _owner("document_id", "document"),
    _owner("section_id", "section"),
    Column("name", String, nullable=True),
    Column("generic_name", String, nullable=True),
    *_coded("dosage_form"),
    _sequence(),
)

product_identifier_table = Table(
    "product_identifier",
    mapper_registry.metadata,
    _id(),
    _owner("product_id", "product"),
    *_coded("identifier"),
    _sequence(),
    Index("ix_product_identifier_code", "identifier_code"),
)

product_route_table = Table(
    "product_route",
    mapper_registry.metadata,
    _id(),
    _owner("product_id", "product"),
    *_coded("route"),
    _sequence(),
)

active_moiety_table = Table(
    "active_moiety",
    mapper_registry.metadata,
    _id(),
    _owner("document_id", "document"),
    *_coded("moiety"),
    Column("name", String, nullable=True),
)

active_ingredient_table = Table(
    "active_ingredient",
    mapper_registry.metadata,
    _id(),
    _owner("product_id", "product"),
    Column("moiety_id", UUIDColumnType, ForeignKey("active_moiety.id"), nullable=True),
    *_coded("substance_code"),
    Column("substance_name", String, nullable=True),
    Column("class_code", String(8), nullable=False),
    *_ratio("strength"),
    _sequence(),
)

inactive_ingredient_table = Table(
    "inactive_ingredient",
    mapper_registry.metadata,
    _id(),
    _owner("product_id", "product"),
    *_coded("substance_code"),
    Column("substance_name", String, nullable=True),
    Column("class_code", String(8), nullable=False),
    *_ratio("strength"),
    _sequence(),
)

marketing_category_table = Table(
    "marketing_category",
    mapper_registry.metadata,
    _id(),
    _owner("product_id", "product"),
    *_coded("category"),
    Column("application_number", String, nullable=True),
    Column("application_root", String, nullable=True),
    Column("territory_code", String(8), nullable=True),
    _sequence(),
)

packaging_level_table = Table(
    "packaging_level",
    mapper_registry.metadata,
    _id(),
    _owner("product_id", "product"),
    *_ratio("quantity"),
    *_coded("form"),
    _sequence(),
)

package_identifier_table = Table(
    "package_identifier",
    mapper_registry.metadata,
    _id(),
    _owner("packaging_level_id", "packaging_level"),
    *_coded("identifier"),
    _sequence(),
)

package_item_table = Table(
    "package_item",
    mapper_registry.metadata,
    _id(),
    _owner("outer_id", "packaging_level"),
    _owner("inner_id", "packaging_level"),
    _sequence(),
    # an inner package sits in exactly one outer package
    UniqueConstraint("inner_id"),
)

marketing_status_table = Table(
    "marketing_status",
    mapper_registry.metadata,
    _id(),
    _owner("product_id", "product", nullable=True),
    _owner("packaging_level_id", "packaging_level", nullable=True),
    *_coded("activity"),
    Column("status_code", String(32), nullable=True),
    Column("effective_low", String(32), nullable=True),
    Column("effective_high", String(32), nullable=True),
    _sequence(),
)

drug_interaction_table = Table(
    "drug_interaction",
    mapper_registry.metadata,
    _id(),
    _owner("product_id", "product"),
    *_coded("target"),
    Column("target_name", String, nullable=True),
    *_coded("consequence_type"),
    *_coded("consequence"),
    Column("resolved", Boolean, nullable=False, default=False),
    _sequence(),
)

contraindicated_drug_table = Table(
    "contraindicated_drug",
    mapper_registry.metadata,
    _id(),
    _owner("product_id", "product"),
    *_coded("target"),
    Column("target_name", String, nullable=True),
    Column("resolved", Boolean, nullable=False, default=False),
    _sequence(),
)

product_characteristic_table = Table(
    "product_characteristic",
    mapper_registry.metadata,
    _id(),
    _owner("product_id", "product"),
    *_coded("characteristic"),
    Column("value_type", String(16), nullable=True),
    *_coded("value"),
    Column("value_text", Text, nullable=True),
    Column("value_unit", String, nullable=True),
    _sequence(),
)

CLASS_BY_ENTITY_TYPE: Final[dict[EntityType, type[Entity]]] = {
    EntityType.DOCUMENT_SET: DocumentSet,
    EntityType.DOCUMENT: Document,
    EntityType.ORGANIZATION: Organization,
    EntityType.DOCUMENT_AUTHOR: DocumentAuthor,
    EntityType.BUSINESS_OPERATION: BusinessOperation,
    EntityType.OPERATION_PRODUCT: OperationProduct,
    EntityType.SECTION: Section,
    EntityType.CONTENT_BLOCK: ContentBlock,
    EntityType.INDEXED_SUBSTANCE: IndexedSubstance,
    EntityType.PHARMACOLOGIC_CLASS: PharmacologicClass,
    EntityType.PHARMACOLOGIC_CLASS_LINK: PharmacologicClassLink,
    EntityType.PRODUCT: Product,
    EntityType.PRODUCT_ROUTE: ProductRoute,
    EntityType.PRODUCT_IDENTIFIER: ProductIdentifier,
    EntityType.PRODUCT_CHARACTERISTIC: ProductCharacteristic,
    EntityType.ACTIVE_INGREDIENT: ActiveIngredient,
    EntityType.INACTIVE_INGREDIENT: InactiveIngredient,
    EntityType.ACTIVE_MOIETY: ActiveMoiety,
    EntityType.MARKETING_CATEGORY: MarketingCategory,
    EntityType.MARKETING_STATUS: MarketingStatus,
    EntityType.PACKAGING_LEVEL: PackagingLevel,
    EntityType.PACKAGE_IDENTIFIER: PackageIdentifier,
    EntityType.PACKAGE_ITEM: PackageItem,
    EntityType.DRUG_INTERACTION: DrugInteraction,
    EntityType.CONTRAINDICATED_DRUG: ContraindicatedDrug,
}


def _coded_composite(table: Table, prefix: str) -> orm.Composite[CodedValue]:
    return composite(
        CodedValue,
        table.c[f"{prefix}_code"],
        table.c[f"{prefix}_code_system"],
        table.c[f"{prefix}_display_name"],
    )


def _ratio_composite(table: Table, prefix: str) -> orm.Composite[Ratio]:
    return composite(
        Ratio,
        table.c[f"{prefix}_numerator_value"],
        table.c[f"{prefix}_numerator_unit"],
        table.c[f"{prefix}_denominator_value"],
        table.c[f"{prefix}_denominator_unit"],
    )


def _owned[T](
    target: type[T], back_populates: str, table: Table
) -> orm.RelationshipProperty[T]:
    """One-to-many ownership ordered by the child's sequence number."""
    return relationship(
        target,
        back_populates=back_populates,
        cascade="all, delete-orphan",
        order_by=table.c.sequence_number,
    )


@cache
def start_mappers() -> orm.registry:  # noqa: PLR0915
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        DocumentSet,
        document_set_table,
        properties={
            "_documents": relationship(
                Document,
                back_populates="_document_set",
                cascade="all, delete-orphan",
                order_by=document_table.c.version_number,
            ),
        },
    )

    mapper_registry.map_imperatively(
        Document,
        document_table,
        properties={
            "_document_set": relationship(DocumentSet, back_populates="_documents"),
            "document_type": _coded_composite(document_table, "document_type"),
            "_authors": _owned(DocumentAuthor, "_document", document_author_table),
            "_sections": _owned(Section, "_document", section_table),
            "_products": _owned(Product, "_document", product_table),
            "_moieties": relationship(
                ActiveMoiety,
                back_populates="_document",
                cascade="all, delete-orphan",
            ),
        },
    )

    mapper_registry.map_imperatively(Organization, organization_table)

    mapper_registry.map_imperatively(
        DocumentAuthor,
        document_author_table,
        properties={
            "_document": relationship(Document, back_populates="_authors"),
            "_organization": relationship(Organization),
            "_parent": relationship(
                DocumentAuthor,
                back_populates="_children",
                remote_side=[document_author_table.c.id],
            ),
            "_children": relationship(
                DocumentAuthor,
                back_populates="_parent",
                cascade="all",
                order_by=document_author_table.c.sequence_number,
            ),
            "_operations": _owned(BusinessOperation, "_author", business_operation_table),
        },
    )

    mapper_registry.map_imperatively(
        BusinessOperation,
        business_operation_table,
        properties={
            "_author": relationship(DocumentAuthor, back_populates="_operations"),
            "operation": _coded_composite(business_operation_table, "operation"),
            "_products": _owned(OperationProduct, "_operation", operation_product_table),
        },
    )

    mapper_registry.map_imperatively(
        OperationProduct,
        operation_product_table,
        properties={
            "_operation": relationship(BusinessOperation, back_populates="_products"),
            "_product": relationship(Product),
            "product_code": _coded_composite(operation_product_table, "product_code"),
        },
    )

    mapper_registry.map_imperatively(
        Section,
        section_table,
        properties={
            "_document": relationship(Document, back_populates="_sections"),
            "_parent": relationship(
                Section,
                back_populates="_children",
                remote_side=[section_table.c.id],
            ),
            "_children": relationship(
                Section,
                back_populates="_parent",
                cascade="all",
                order_by=section_table.c.sequence_number,
            ),
            "code": _coded_composite(section_table, "section"),
            "_blocks": _owned(ContentBlock, "_section", content_block_table),
            "_substances": _owned(IndexedSubstance, "_section", indexed_substance_table),
            "_products": relationship(
                Product,
                back_populates="_section",
                cascade="all",
                order_by=product_table.c.sequence_number,
            ),
        },
    )

    mapper_registry.map_imperatively(
        ContentBlock,
        content_block_table,
        properties={"_section": relationship(Section, back_populates="_blocks")},
    )

    mapper_registry.map_imperatively(
        IndexedSubstance,
        indexed_substance_table,
        properties={
            "_section": relationship(Section, back_populates="_substances"),
            "code": _coded_composite(indexed_substance_table, "substance"),
            "_class_links": _owned(
                PharmacologicClassLink, "_substance", pharmacologic_class_link_table
            ),
        },
    )

    mapper_registry.map_imperatively(
        PharmacologicClass,
        pharmacologic_class_table,
        properties={"code": _coded_composite(pharmacologic_class_table, "class")},
    )

    mapper_registry.map_imperatively(
        PharmacologicClassLink,
        pharmacologic_class_link_table,
        properties={
            "_substance": relationship(IndexedSubstance, back_populates="_class_links"),
            "_pharmacologic_class": relationship(PharmacologicClass),
        },
    )

    mapper_registry.map_imperatively(
        Product,
        product_table,
        properties={
            "_document": relationship(Document, back_populates="_products"),
            "_section": relationship(Section, back_populates="_products"),
            "dosage_form": _coded_composite(product_table, "dosage_form"),
            "_identifiers": _owned(ProductIdentifier, "_product", product_identifier_table),
            "_routes": _owned(ProductRoute, "_product", product_route_table),
            "_active_ingredients": _owned(ActiveIngredient, "_product", active_ingredient_table),
            "_inactive_ingredients": _owned(
                InactiveIngredient, "_product", inactive_ingredient_table
            ),
            "_marketing_categories": _owned(
                MarketingCategory, "_product", marketing_category_table
            ),
            "_marketing_statuses": _owned(MarketingStatus, "_product", marketing_status_table),
            "_packaging_levels": _owned(PackagingLevel, "_product", packaging_level_table),
            "_interactions": _owned(DrugInteraction, "_product", drug_interaction_table),
            "_contraindications": _owned(
                ContraindicatedDrug, "_product", contraindicated_drug_table
            ),
            "_characteristics": _owned(
                ProductCharacteristic, "_product", product_characteristic_table
            ),
        },
    )

    mapper_registry.map_imperatively(
        ProductIdentifier,
        product_identifier_table,
        properties={
            "_product": relationship(Product, back_populates="_identifiers"),
            "code": _coded_composite(product_identifier_table, "identifier"),
        },
    )

    mapper_registry.map_imperatively(
        ProductRoute,
        product_route_table,
        properties={
            "_product": relationship(Product, back_populates="_routes"),
            "route": _coded_composite(product_route_table, "route"),
        },
    )

    mapper_registry.map_imperatively(
        ActiveMoiety,
        active_moiety_table,
        properties={
            "_document": relationship(Document, back_populates="_moieties"),
            "code": _coded_composite(active_moiety_table, "moiety"),
        },
    )

    mapper_registry.map_imperatively(
        ActiveIngredient,
        active_ingredient_table,
        properties={
            "_product": relationship(Product, back_populates="_active_ingredients"),
            "_moiety": relationship(ActiveMoiety),
            "substance_code": _coded_composite(active_ingredient_table, "substance_code"),
            "strength": _ratio_composite(active_ingredient_table, "strength"),
        },
    )

    mapper_registry.map_imperatively(
        InactiveIngredient,
        inactive_ingredient_table,
        properties={
            "_product": relationship(Product, back_populates="_inactive_ingredients"),
            "substance_code": _coded_composite(inactive_ingredient_table, "substance_code"),
            "strength": _ratio_composite(inactive_ingredient_table, "strength"),
        },
    )

    mapper_registry.map_imperatively(
        MarketingCategory,
        marketing_category_table,
        properties={
            "_product": relationship(Product, back_populates="_marketing_categories"),
            "category": _coded_composite(marketing_category_table, "category"),
        },
    )

    mapper_registry.map_imperatively(
        MarketingStatus,
        marketing_status_table,
        properties={
            "_product": relationship(Product, back_populates="_marketing_statuses"),
            "_packaging_level": relationship(
                PackagingLevel, back_populates="_marketing_statuses"
            ),
            "activity": _coded_composite(marketing_status_table, "activity"),
        },
    )

    mapper_registry.map_imperatively(
        PackagingLevel,
        packaging_level_table,
        properties={
            "_product": relationship(Product, back_populates="_packaging_levels"),
            "quantity": _ratio_composite(packaging_level_table, "quantity"),
            "form": _coded_composite(packaging_level_table, "form"),
            "_identifiers": _owned(
                PackageIdentifier, "_packaging_level", package_identifier_table
            ),
            "_items": relationship(
                PackageItem,
                back_populates="_outer",
                foreign_keys=[package_item_table.c.outer_id],
                cascade="all, delete-orphan",
                order_by=package_item_table.c.sequence_number,
            ),
            "_containers": relationship(
                PackageItem,
                back_populates="_inner",
                foreign_keys=[package_item_table.c.inner_id],
                cascade="all, delete-orphan",
            ),
            "_marketing_statuses": _owned(
                MarketingStatus, "_packaging_level", marketing_status_table
            ),
        },
    )

    mapper_registry.map_imperatively(
        PackageIdentifier,
        package_identifier_table,
        properties={
            "_packaging_level": relationship(PackagingLevel, back_populates="_identifiers"),
            "code": _coded_composite(package_identifier_table, "identifier"),
        },
    )

    mapper_registry.map_imperatively(
        PackageItem,
        package_item_table,
        properties={
            "_outer": relationship(
                PackagingLevel,
                back_populates="_items",
                foreign_keys=[package_item_table.c.outer_id],
            ),
            "_inner": relationship(
                PackagingLevel,
                back_populates="_containers",
                foreign_keys=[package_item_table.c.inner_id],
            ),
        },
    )

    mapper_registry.map_imperatively(
        DrugInteraction,
        drug_interaction_table,
        properties={
            "_product": relationship(Product, back_populates="_interactions"),
            "target": _coded_composite(drug_interaction_table, "target"),
            "consequence_type": _coded_composite(drug_interaction_table, "consequence_type"),
            "consequence": _coded_composite(drug_interaction_table, "consequence"),
        },
    )

    mapper_registry.map_imperatively(
        ContraindicatedDrug,
        contraindicated_drug_table,
        properties={
            "_product": relationship(Product, back_populates="_contraindications"),
            "target": _coded_composite(contraindicated_drug_table, "target"),
        },
    )

    mapper_registry.map_imperatively(
        ProductCharacteristic,
        product_characteristic_table,
        properties={
            "_product": relationship(Product, back_populates="_characteristics"),
            "code": _coded_composite(product_characteristic_table, "characteristic"),
            "value": _coded_composite(product_characteristic_table, "value"),
        },
    )

    configure_mappers()
    return mapper_registry
