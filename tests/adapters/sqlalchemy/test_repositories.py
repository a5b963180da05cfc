from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from splkit.adapters.spl import SplComparer, SplReader, SplWriter
from splkit.domain.errors import ReferentialIntegrityError
from splkit.domain.model import (
    ActiveIngredient,
    DocumentHandle,
    DocumentSet,
    EntityType,
    Organization,
    Product,
)
from tests.helpers.spl import (
    DUNS,
    PENICILLAMINE_DOCUMENT,
    PENICILLAMINE_SET,
    author_xml,
    build_spl,
    new_guid,
    penicillamine_payload,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from splkit.adapters.sqlalchemy.unit_of_work import SqlAlchemyLabelingUnitOfWork
    from splkit.domain.model import Document

    UowFactory = Callable[[], SqlAlchemyLabelingUnitOfWork]


def _store(uow_factory: UowFactory, *payloads: bytes | str) -> list[str]:
    """Persist each payload into its set; returns the document guids."""
    guids: list[str] = []
    with uow_factory() as uow:
        sets: dict[str, DocumentSet] = {}
        for payload in payloads:
            parsed = SplReader()(payload)
            document_set = sets.get(parsed.set_guid)
            if document_set is None:
                document_set = DocumentSet(set_guid=parsed.set_guid)
                sets[parsed.set_guid] = document_set
                uow.repositories.document_sets.add(document_set)
            document_set.add_document(parsed.document)
            guids.append(parsed.document.document_guid)
        uow.commit()
    return guids


def _load(uow: SqlAlchemyLabelingUnitOfWork, guid: str) -> Document:
    document = uow.repositories.documents.get_by_document_guid(guid)
    assert document is not None
    return document


def test_document_graph_survives_the_store(sqlite_unit_of_work: UowFactory) -> None:
    _store(sqlite_unit_of_work, penicillamine_payload())

    with sqlite_unit_of_work() as uow:
        document = _load(uow, PENICILLAMINE_DOCUMENT)

        assert document.set_guid == PENICILLAMINE_SET
        assert document.is_current
        assert document.source_payload == penicillamine_payload()
        (section,) = document.sections
        assert section.code is not None
        assert section.code.code == "34067-9"
        assert [block.block_type for block in section.blocks] == ["paragraph"]
        (product,) = section.products
        assert product.document is document
        (ingredient,) = product.active_ingredients
        assert ingredient.moiety is not None
        assert ingredient.moiety.name == "Penicillamine"
        assert product.packaging[0].codes == ("0037-4401-01",)
        assert product.routes[0].route.code == "C38288"


@pytest.mark.parametrize(
    "payload",
    [penicillamine_payload(), build_spl(authors=[author_xml("0037-4401")])],
    ids=["penicillamine", "establishments"],
)
def test_stored_document_exports_faithfully(
    sqlite_unit_of_work: UowFactory, payload: bytes | str
) -> None:
    (guid,) = _store(sqlite_unit_of_work, payload)

    with sqlite_unit_of_work() as uow:
        regenerated = SplWriter()(_load(uow, guid))

    report = SplComparer()(payload, regenerated)
    assert report.discrepancies == []


def test_list_for_set_orders_versions(sqlite_unit_of_work: UowFactory) -> None:
    set_guid = new_guid()
    _store(
        sqlite_unit_of_work,
        build_spl(set_guid=set_guid, version=2),
        build_spl(set_guid=set_guid, version=1),
    )

    with sqlite_unit_of_work() as uow:
        documents = uow.repositories.documents.list_for_set(set_guid)

        assert [d.version_number for d in documents] == [1, 2]
        assert [d.is_current for d in documents] == [False, True]
        assert uow.repositories.documents.list_for_set(new_guid()) == []


def test_organizations_are_found_by_identifier(sqlite_unit_of_work: UowFactory) -> None:
    _store(sqlite_unit_of_work, penicillamine_payload())

    with sqlite_unit_of_work() as uow:
        organization = uow.repositories.organizations.get_by_identifier(DUNS, "001234567")

        assert isinstance(organization, Organization)
        assert organization.name == "Meda Pharmaceuticals Inc."
        assert uow.repositories.organizations.get_by_identifier(DUNS, "000000000") is None


class TestRegistry:
    def test_entities_are_fetched_by_typed_handle(self, sqlite_unit_of_work: UowFactory) -> None:
        _store(sqlite_unit_of_work, penicillamine_payload())

        with sqlite_unit_of_work() as uow:
            document = _load(uow, PENICILLAMINE_DOCUMENT)
            product = document.products[0]
            ingredient = product.active_ingredients[0]
            registry = uow.repositories.entities

            assert EntityType.PRODUCT in registry
            assert registry.get(EntityType.PRODUCT, product.handle) is product
            assert registry.get(EntityType.ACTIVE_INGREDIENT, ingredient.handle) is ingredient
            assert registry[EntityType.DOCUMENT].get(document.handle) is document
            assert registry.get(EntityType.PRODUCT, DocumentHandle(product.id)) is None
            assert registry[EntityType.PRODUCT].entity_type is EntityType.PRODUCT

    def test_owned_entities_cannot_be_removed_alone(self, sqlite_unit_of_work: UowFactory) -> None:
        _store(sqlite_unit_of_work, penicillamine_payload())

        with sqlite_unit_of_work() as uow:
            product = _load(uow, PENICILLAMINE_DOCUMENT).products[0]

            with pytest.raises(ReferentialIntegrityError, match="remove the document instead"):
                uow.repositories.entities[EntityType.PRODUCT].remove(product)

    def test_removing_a_document_removes_what_it_owns(self, sqlite_unit_of_work: UowFactory) -> None:
        (guid,) = _store(sqlite_unit_of_work, build_spl(authors=[author_xml("0037-4401")]))

        with sqlite_unit_of_work() as uow:
            document = _load(uow, guid)
            set_guid = document.set_guid
            product_id = document.products[0].id
            ingredient_id = document.products[0].active_ingredients[0].id
            uow.repositories.entities[EntityType.DOCUMENT].remove(document)
            uow.commit()

        with sqlite_unit_of_work() as uow:
            assert uow.repositories.documents.get_by_document_guid(guid) is None
            assert uow.session.get(Product, product_id) is None
            assert uow.session.get(ActiveIngredient, ingredient_id) is None
            assert set_guid is not None
            document_set = uow.repositories.document_sets.get_by_set_guid(set_guid)
            assert document_set is not None
            assert document_set.documents == ()
            # shared reference data outlives the document
            assert uow.repositories.organizations.get_by_identifier(DUNS, "001234567") is not None
