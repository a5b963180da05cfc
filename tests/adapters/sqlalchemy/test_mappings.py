from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from splkit.adapters.spl import SplReader
from splkit.adapters.sqlalchemy import start_mappers
from splkit.adapters.sqlalchemy.mappings import (
    active_ingredient_table,
    document_author_table,
    document_set_table,
    inactive_ingredient_table,
    operation_product_table,
    product_characteristic_table,
)
from splkit.domain.model import (
    CodedValue,
    Document,
    DocumentAuthor,
    DocumentSet,
    InactiveIngredient,
    IndexedSubstance,
    OperationProduct,
    ProductCharacteristic,
    present,
)
from tests.helpers.spl import (
    NCI,
    UNII,
    author_xml,
    build_spl,
    characteristic_xml,
    indexing_xml,
    ingredient_xml,
    product_xml,
    section_xml,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def _payload() -> str:
    product = product_xml(
        ingredients=[
            ingredient_xml("GNN1DV99GX", "Penicillamine"),
            ingredient_xml("EWQ57Q8I5X", "Lactose", class_code="IACT", strength=None),
        ]
    )
    return build_spl(authors=[author_xml("0037-4401")], sections=[section_xml(products=[product])])


def _store(session: Session, payload: str) -> Document:
    parsed = SplReader()(payload)
    document_set = DocumentSet(set_guid=parsed.set_guid)
    session.add(document_set)
    document_set.add_document(parsed.document)
    session.commit()
    return parsed.document


def test_start_mappers_is_idempotent() -> None:
    # First invocation happens in the sqlite_engine fixture; calling again should be harmless.
    start_mappers()
    start_mappers()


def test_coded_values_live_in_prefixed_columns(sqlite_session: Session) -> None:
    _store(sqlite_session, _payload())

    listed = sqlite_session.execute(select(operation_product_table.c.product_code_code)).scalar_one()
    active = sqlite_session.execute(select(active_ingredient_table.c.substance_code_code)).scalar_one()
    inactive = sqlite_session.execute(
        select(inactive_ingredient_table.c.substance_code_code_system)
    ).scalar_one()

    assert listed == "0037-4401"
    assert active == "GNN1DV99GX"
    assert inactive == UNII


def test_coded_composites_load_back_as_value_objects(sqlite_session: Session) -> None:
    _store(sqlite_session, _payload())
    sqlite_session.expunge_all()

    ingredient = sqlite_session.execute(select(InactiveIngredient)).scalar_one()
    link = sqlite_session.execute(select(OperationProduct)).scalar_one()

    assert ingredient.substance_code == CodedValue(code="EWQ57Q8I5X", code_system=UNII)
    assert link.product_code.code == "0037-4401"
    assert link.product is not None
    assert link.product.name == "Depen"


def test_document_added_to_a_stored_set_is_persisted(sqlite_session: Session) -> None:
    first = _store(sqlite_session, build_spl(version=1))
    document_set = first.document_set
    assert document_set is not None

    second = SplReader()(build_spl(set_guid=document_set.set_guid, version=2)).document
    document_set.add_document(second)
    sqlite_session.commit()
    sqlite_session.expunge_all()

    stored = sqlite_session.execute(
        select(DocumentSet).where(document_set_table.c.set_guid == document_set.set_guid)
    ).scalar_one()
    assert stored.versions == (1, 2)


def test_characteristics_and_indexing_round_trip(sqlite_session: Session) -> None:
    product = product_xml(
        subjects=[
            characteristic_xml("SPLSHAPE", f'<value xsi:type="CE" code="C48348" codeSystem="{NCI}"/>'),
            characteristic_xml("SPLSIZE", '<value xsi:type="PQ" value="12" unit="mm"/>'),
        ]
    )
    indexing = indexing_xml("GNN1DV99GX", ("N0000175617", "Chelating Agent [EPC]"))
    payload = build_spl(
        authors=[author_xml().replace("<author><time/>", '<author><time value="20240110"/>')],
        sections=[section_xml(products=[product, indexing])],
    )
    _store(sqlite_session, payload)
    sqlite_session.expunge_all()

    shape, size = sqlite_session.execute(
        select(ProductCharacteristic).order_by(product_characteristic_table.c.sequence_number)
    ).scalars()
    substance = sqlite_session.execute(select(IndexedSubstance)).scalar_one()
    author = sqlite_session.execute(
        select(DocumentAuthor).where(document_author_table.c.parent_id.is_(None))
    ).scalar_one()

    assert shape.value == CodedValue(code="C48348", code_system=NCI)
    assert present(size.value) is None
    assert (size.value_type, size.value_text, size.value_unit) == ("PQ", "12", "mm")
    assert substance.classes[0].code.display_name == "Chelating Agent [EPC]"
    assert author.time == "20240110"
