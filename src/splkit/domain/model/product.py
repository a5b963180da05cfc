"""Product entities. Product is the aggregate root for everything below it.

Packaging forms a containment tree: every PackagingLevel belongs to one product,
top-level packages are ordered on the product, nested ones through PackageItem.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from splkit.domain.errors import ReferentialIntegrityError
from splkit.domain.model.entity import Entity, SequencedEntity
from splkit.domain.model.enums import EntityType, RiskKind

if TYPE_CHECKING:
    from collections.abc import Iterator

    from splkit.domain.model.document import Document
    from splkit.domain.model.primitives import CodedValue, HL7Timestamp, Oid, Ratio
    from splkit.domain.model.section import Section


@dataclass(eq=False, kw_only=True)
class Product(SequencedEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.PRODUCT

    name: str | None = None
    generic_name: str | None = None
    dosage_form: CodedValue | None = None

    _document: Document | None = field(default=None, repr=False)
    _section: Section | None = field(default=None, repr=False)

    # Owned children
    _identifiers: list[ProductIdentifier] = field(
        default_factory=list["ProductIdentifier"], repr=False
    )
    _routes: list[ProductRoute] = field(default_factory=list["ProductRoute"], repr=False)
    _active_ingredients: list[ActiveIngredient] = field(
        default_factory=list["ActiveIngredient"], repr=False
    )
    _inactive_ingredients: list[InactiveIngredient] = field(
        default_factory=list["InactiveIngredient"], repr=False
    )
    _marketing_categories: list[MarketingCategory] = field(
        default_factory=list["MarketingCategory"], repr=False
    )
    _marketing_statuses: list[MarketingStatus] = field(
        default_factory=list["MarketingStatus"], repr=False
    )
    _packaging_levels: list[PackagingLevel] = field(
        default_factory=list["PackagingLevel"], repr=False
    )
    _interactions: list[DrugInteraction] = field(
        default_factory=list["DrugInteraction"], repr=False
    )
    _contraindications: list[ContraindicatedDrug] = field(
        default_factory=list["ContraindicatedDrug"], repr=False
    )
    _characteristics: list[ProductCharacteristic] = field(
        default_factory=list["ProductCharacteristic"], repr=False
    )

    @property
    def document(self) -> Document | None:
        return self._document

    def _set_document(self, document: Document) -> None:
        self._document = document

    @property
    def section(self) -> Section | None:
        return self._section

    def _set_section(self, section: Section) -> None:
        self._section = section

    @property
    def identifiers(self) -> tuple[ProductIdentifier, ...]:
        return tuple(self._identifiers)

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(i.code.code for i in self._identifiers if i.code.code)

    @property
    def routes(self) -> tuple[ProductRoute, ...]:
        return tuple(self._routes)

    @property
    def active_ingredients(self) -> tuple[ActiveIngredient, ...]:
        return tuple(self._active_ingredients)

    @property
    def inactive_ingredients(self) -> tuple[InactiveIngredient, ...]:
        return tuple(self._inactive_ingredients)

    @property
    def marketing_categories(self) -> tuple[MarketingCategory, ...]:
        return tuple(self._marketing_categories)

    @property
    def marketing_statuses(self) -> tuple[MarketingStatus, ...]:
        return tuple(self._marketing_statuses)

    @property
    def packaging(self) -> tuple[PackagingLevel, ...]:
        """Top-level packages in document order."""
        return tuple(
            sorted(
                (p for p in self._packaging_levels if p.container is None),
                key=lambda p: p.sequence_number,
            )
        )

    @property
    def packaging_levels(self) -> tuple[PackagingLevel, ...]:
        return tuple(self._packaging_levels)

    @property
    def interactions(self) -> tuple[DrugInteraction, ...]:
        return tuple(self._interactions)

    @property
    def contraindications(self) -> tuple[ContraindicatedDrug, ...]:
        return tuple(self._contraindications)

    @property
    def characteristics(self) -> tuple[ProductCharacteristic, ...]:
        return tuple(self._characteristics)

    # Commands (ownership here)
    def add_identifier(self, code: CodedValue) -> ProductIdentifier:
        identifier = ProductIdentifier(
            _product=self, code=code, sequence_number=len(self._identifiers) + 1
        )
        if identifier not in self._identifiers:
            self._identifiers.append(identifier)
        return identifier

    def add_route(self, route: CodedValue) -> ProductRoute:
        item = ProductRoute(_product=self, route=route, sequence_number=len(self._routes) + 1)
        if item not in self._routes:
            self._routes.append(item)
        return item

    def add_active_ingredient(
        self,
        *,
        substance_code: CodedValue,
        substance_name: str | None,
        class_code: str,
        strength: Ratio | None = None,
    ) -> ActiveIngredient:
        ingredient = ActiveIngredient(
            _product=self,
            substance_code=substance_code,
            substance_name=substance_name,
            class_code=class_code,
            strength=strength,
            sequence_number=len(self._active_ingredients) + 1,
        )
        if ingredient not in self._active_ingredients:
            self._active_ingredients.append(ingredient)
        return ingredient

    def add_inactive_ingredient(
        self,
        *,
        substance_code: CodedValue,
        substance_name: str | None,
        class_code: str,
        strength: Ratio | None = None,
    ) -> InactiveIngredient:
        ingredient = InactiveIngredient(
            _product=self,
            substance_code=substance_code,
            substance_name=substance_name,
            class_code=class_code,
            strength=strength,
            sequence_number=len(self._inactive_ingredients) + 1,
        )
        if ingredient not in self._inactive_ingredients:
            self._inactive_ingredients.append(ingredient)
        return ingredient

    def add_marketing_category(
        self,
        *,
        category: CodedValue | None,
        application_number: str | None,
        application_root: Oid | None = None,
        territory_code: str | None = None,
    ) -> MarketingCategory:
        item = MarketingCategory(
            _product=self,
            category=category,
            application_number=application_number,
            application_root=application_root,
            territory_code=territory_code,
            sequence_number=len(self._marketing_categories) + 1,
        )
        if item not in self._marketing_categories:
            self._marketing_categories.append(item)
        return item

    def add_marketing_status(self, status: MarketingStatus) -> MarketingStatus:
        status.sequence_number = len(self._marketing_statuses) + 1
        status._product = self  # noqa: SLF001
        if status not in self._marketing_statuses:
            self._marketing_statuses.append(status)
        return status

    def add_packaging(self, level: PackagingLevel) -> PackagingLevel:
        self._attach_packaging_level(level)
        level.sequence_number = len(self.packaging)
        return level

    def add_interaction(
        self,
        *,
        kind: RiskKind,
        target: CodedValue,
        target_name: str | None,
        consequence_type: CodedValue | None = None,
        consequence: CodedValue | None = None,
    ) -> DrugInteraction | ContraindicatedDrug:
        if kind is RiskKind.CONTRAINDICATION:
            contraindication = ContraindicatedDrug(
                _product=self,
                target=target,
                target_name=target_name,
                sequence_number=len(self._contraindications) + 1,
            )
            if contraindication not in self._contraindications:
                self._contraindications.append(contraindication)
            return contraindication
        interaction = DrugInteraction(
            _product=self,
            target=target,
            target_name=target_name,
            consequence_type=consequence_type,
            consequence=consequence,
            sequence_number=len(self._interactions) + 1,
        )
        if interaction not in self._interactions:
            self._interactions.append(interaction)
        return interaction

    def add_characteristic(
        self,
        *,
        code: CodedValue | None,
        value_type: str | None,
        value: CodedValue | None = None,
        value_text: str | None = None,
        value_unit: str | None = None,
    ) -> ProductCharacteristic:
        characteristic = ProductCharacteristic(
            _product=self,
            code=code,
            value_type=value_type,
            value=value,
            value_text=value_text,
            value_unit=value_unit,
            sequence_number=len(self._characteristics) + 1,
        )
        if characteristic not in self._characteristics:
            self._characteristics.append(characteristic)
        return characteristic

    def owned_entities(self) -> Iterator[Entity]:
        yield from self._identifiers
        yield from self._routes
        yield from self._active_ingredients
        yield from self._inactive_ingredients
        yield from self._marketing_categories
        yield from self._marketing_statuses
        for level in self._packaging_levels:
            yield level
            yield from level.identifiers
            yield from level.items
            yield from level.marketing_statuses
        yield from self._interactions
        yield from self._contraindications
        yield from self._characteristics

    # Friend primitives (called only by owners)
    def _attach_packaging_level(self, level: PackagingLevel) -> None:
        if level.product is not None and level.product is not self:
            raise ReferentialIntegrityError("packaging level already belongs to another product")
        level._product = self  # noqa: SLF001
        if level not in self._packaging_levels:
            self._packaging_levels.append(level)


@dataclass(eq=False, kw_only=True)
class ProductIdentifier(SequencedEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.PRODUCT_IDENTIFIER

    _product: Product = field(repr=False)
    code: CodedValue


@dataclass(eq=False, kw_only=True)
class ProductRoute(SequencedEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.PRODUCT_ROUTE

    _product: Product = field(repr=False)
    route: CodedValue


@dataclass(eq=False, kw_only=True)
class Ingredient(SequencedEntity):
    _product: Product = field(repr=False)
    substance_code: CodedValue
    substance_name: str | None = None
    class_code: str
    strength: Ratio | None = None

    @property
    def product(self) -> Product:
        return self._product

    @property
    def unii(self) -> str | None:
        return self.substance_code.code


@dataclass(eq=False, kw_only=True)
class ActiveIngredient(Ingredient):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.ACTIVE_INGREDIENT

    _moiety: ActiveMoiety | None = field(default=None, repr=False)

    @property
    def moiety(self) -> ActiveMoiety | None:
        return self._moiety

    def link_moiety(self, moiety: ActiveMoiety) -> None:
        self._moiety = moiety


@dataclass(eq=False, kw_only=True)
class InactiveIngredient(Ingredient):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.INACTIVE_INGREDIENT


@dataclass(eq=False, kw_only=True)
class ActiveMoiety(Entity):
    """Document-scoped; ingredients of different products share one row per code."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.ACTIVE_MOIETY

    code: CodedValue | None = None
    name: str | None = None
    _document: Document | None = field(default=None, repr=False)

    @property
    def key(self) -> str:
        if self.code is not None and self.code.code:
            return self.code.code
        return f"name:{self.name or ''}"

    def _set_document(self, document: Document) -> None:
        self._document = document


@dataclass(eq=False, kw_only=True)
class MarketingCategory(SequencedEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.MARKETING_CATEGORY

    _product: Product = field(repr=False)
    category: CodedValue | None = None
    application_number: str | None = None
    application_root: Oid | None = None
    territory_code: str | None = None


@dataclass(eq=False, kw_only=True)
class MarketingStatus(SequencedEntity):
    """Marketing activity of either a product or one of its packages."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.MARKETING_STATUS

    activity: CodedValue | None = None
    status_code: str | None = None
    effective_low: HL7Timestamp | None = None
    effective_high: HL7Timestamp | None = None
    _product: Product | None = field(default=None, repr=False)
    _packaging_level: PackagingLevel | None = field(default=None, repr=False)


@dataclass(eq=False, kw_only=True)
class PackagingLevel(SequencedEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.PACKAGING_LEVEL

    quantity: Ratio | None = None
    form: CodedValue | None = None
    _product: Product | None = field(default=None, repr=False)

    _identifiers: list[PackageIdentifier] = field(
        default_factory=list["PackageIdentifier"], repr=False
    )
    # outgoing containment edges, ordered
    _items: list[PackageItem] = field(default_factory=list["PackageItem"], repr=False)
    # incoming edge; at most one since packaging is a tree
    _containers: list[PackageItem] = field(default_factory=list["PackageItem"], repr=False)
    _marketing_statuses: list[MarketingStatus] = field(
        default_factory=list["MarketingStatus"], repr=False
    )

    @property
    def product(self) -> Product | None:
        return self._product

    @property
    def identifiers(self) -> tuple[PackageIdentifier, ...]:
        return tuple(self._identifiers)

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(i.code.code for i in self._identifiers if i.code.code)

    @property
    def items(self) -> tuple[PackageItem, ...]:
        return tuple(self._items)

    @property
    def contents(self) -> tuple[PackagingLevel, ...]:
        return tuple(item.inner for item in self._items)

    @property
    def container(self) -> PackagingLevel | None:
        return self._containers[0].outer if self._containers else None

    @property
    def marketing_statuses(self) -> tuple[MarketingStatus, ...]:
        return tuple(self._marketing_statuses)

    def ancestors(self) -> tuple[PackagingLevel, ...]:
        found: list[PackagingLevel] = []
        node = self.container
        while node is not None:
            if node is self or node in found:
                raise ReferentialIntegrityError("packaging containment cycle detected")
            found.append(node)
            node = node.container
        return tuple(found)

    # Commands (ownership here)
    def add_identifier(self, code: CodedValue) -> PackageIdentifier:
        identifier = PackageIdentifier(
            _packaging_level=self, code=code, sequence_number=len(self._identifiers) + 1
        )
        if identifier not in self._identifiers:
            self._identifiers.append(identifier)
        return identifier

    def add_item(self, inner: PackagingLevel) -> PackageItem:
        """Nest ``inner`` in this package; containment must stay an acyclic tree."""
        if inner is self or inner in self.ancestors():
            raise ReferentialIntegrityError("a package cannot contain itself")
        if inner.container is not None:
            raise ReferentialIntegrityError("a package can only sit in one outer package")
        if self._product is None:
            raise ReferentialIntegrityError("outer package is not attached to a product")
        self._product._attach_packaging_level(inner)  # pyright: ignore[reportPrivateUsage] # noqa: SLF001
        item = PackageItem(_outer=self, _inner=inner, sequence_number=len(self._items) + 1)
        inner.sequence_number = item.sequence_number
        if item not in self._items:
            self._items.append(item)
        if item not in inner._containers:  # noqa: SLF001
            inner._containers.append(item)  # noqa: SLF001
        return item

    def add_marketing_status(self, status: MarketingStatus) -> MarketingStatus:
        status.sequence_number = len(self._marketing_statuses) + 1
        status._packaging_level = self  # noqa: SLF001
        if status not in self._marketing_statuses:
            self._marketing_statuses.append(status)
        return status


@dataclass(eq=False, kw_only=True)
class PackageIdentifier(SequencedEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.PACKAGE_IDENTIFIER

    _packaging_level: PackagingLevel = field(repr=False)
    code: CodedValue


@dataclass(eq=False, kw_only=True)
class PackageItem(SequencedEntity):
    """Ordered containment edge: ``outer`` holds ``inner``."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.PACKAGE_ITEM

    _outer: PackagingLevel = field(repr=False)
    _inner: PackagingLevel = field(repr=False)

    @property
    def outer(self) -> PackagingLevel:
        return self._outer

    @property
    def inner(self) -> PackagingLevel:
        return self._inner


@dataclass(eq=False, kw_only=True)
class DrugInteraction(SequencedEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.DRUG_INTERACTION

    _product: Product = field(repr=False)
    target: CodedValue
    target_name: str | None = None
    consequence_type: CodedValue | None = None
    consequence: CodedValue | None = None
    # False when the target code names nothing declared in the same document
    resolved: bool = False

    @property
    def product(self) -> Product:
        return self._product


@dataclass(eq=False, kw_only=True)
class ContraindicatedDrug(SequencedEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.CONTRAINDICATED_DRUG

    _product: Product = field(repr=False)
    target: CodedValue
    target_name: str | None = None
    resolved: bool = False

    @property
    def product(self) -> Product:
        return self._product


@dataclass(eq=False, kw_only=True)
class ProductCharacteristic(SequencedEntity):
    """``subjectOf/characteristic``: color, shape, size, imprint, score, flavor.

    ``value_type`` is the declared ``xsi:type``. Coded types (CE, CV) fill
    ``value``. PQ, INT and BL keep their ``value`` attribute in ``value_text``,
    PQ adds ``value_unit``, and ST keeps its character data in ``value_text``.
    """

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.PRODUCT_CHARACTERISTIC

    CODED_TYPES: ClassVar[frozenset[str]] = frozenset({"CE", "CV", "CD", "CO"})

    _product: Product = field(repr=False)
    code: CodedValue | None = None
    value_type: str | None = None
    value: CodedValue | None = None
    value_text: str | None = None
    value_unit: str | None = None

    @property
    def product(self) -> Product:
        return self._product

    @property
    def is_coded(self) -> bool:
        return self.value_type in self.CODED_TYPES
