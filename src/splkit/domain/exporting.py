"""Export service: render a stored document version back to SPL XML."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from splkit.domain.errors import EntityNotFound
from splkit.domain.identifiers import IdentifierService
from splkit.domain.model import DocumentHandle

if TYPE_CHECKING:
    from collections.abc import Callable

    from splkit.domain.model import Document
    from splkit.domain.ports import DocumentRenderer, LabelingUnitOfWork

log = logging.getLogger(__name__)


def load_document(handle: DocumentHandle | str, uow: LabelingUnitOfWork) -> Document:
    """Fetch a document by handle inside an open unit of work."""

    resolved = IdentifierService.resolve(handle, DocumentHandle)
    document = uow.repositories.documents.get(resolved)
    if document is None:
        raise EntityNotFound(f"no document with handle {resolved}")
    return document


def export_document(
    handle: DocumentHandle | str,
    *,
    renderer: DocumentRenderer,
    unit_of_work_factory: Callable[[], LabelingUnitOfWork],
    minify: bool = False,
) -> str:
    """Return SPL XML for the stored document; raises ``EntityNotFound``."""

    with unit_of_work_factory() as uow:
        document = load_document(handle, uow)
        xml = renderer(document, minify=minify)
        log.info(
            "Exported document %s (version %d, %s)",
            document.document_guid,
            document.version_number,
            "minified" if minify else "pretty",
        )
    return xml
