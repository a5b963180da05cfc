from __future__ import annotations

from uuid import uuid4

import pytest

from splkit.domain.model import (
    ComponentHandle,
    Document,
    DocumentHandle,
    EntityType,
    InvalidHandle,
    ProductHandle,
    Section,
    SectionHandle,
    handle_type_for,
)


def test_handle_token_round_trips() -> None:
    handle = DocumentHandle(uuid4())

    assert str(handle).startswith("doc_")
    assert DocumentHandle.parse(handle.token) == handle


def test_handle_of_other_type_is_rejected() -> None:
    token = ProductHandle(uuid4()).token

    with pytest.raises(InvalidHandle, match="expected a document handle, got a product handle"):
        DocumentHandle.parse(token)


@pytest.mark.parametrize("token", ["", "doc", "doc_", "doc_not-a-uuid", "nonsense"])
def test_malformed_tokens_are_rejected(token: str) -> None:
    with pytest.raises(InvalidHandle):
        DocumentHandle.parse(token)


def test_entities_expose_typed_handles() -> None:
    document = Document(document_guid="g", version_number=1)
    section = Section()

    assert isinstance(document.handle, DocumentHandle)
    assert document.handle.value == document.id
    assert isinstance(section.handle, SectionHandle)


def test_unlisted_entity_types_fall_back_to_component_handles() -> None:
    assert handle_type_for(EntityType.ACTIVE_INGREDIENT) is ComponentHandle
    assert handle_type_for(EntityType.PRODUCT) is ProductHandle
