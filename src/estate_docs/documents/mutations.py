"""Create/update/delete of documents, followed by the matching cache invalidation.

Upload touches one unit's document set, so only that entry is invalidated and
re-resolved. Update and delete can move a document in or out of any filtered
view, so they clear the whole cache and refetch the session context. A failed
write raises ``MutationError`` before any cache entry is touched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from ..exceptions import BackOfficeError, MutationError, UploadValidationError
from ..models import Document, DocumentUpdate, DocumentUpload, Unit
from .cache import PROPERTY_KEY

if TYPE_CHECKING:
    from ..session import PropertySession

logger = logging.getLogger(__name__)


class MutationCoordinator:
    def __init__(self, session: "PropertySession"):
        self.session = session

    def validate(self, upload: DocumentUpload) -> None:
        missing = upload.missing_fields()
        if missing:
            raise UploadValidationError(missing)
        categories = self.session.categories
        if categories and upload.category_id not in {c.id for c in categories}:
            raise UploadValidationError(message=f"Unknown category {upload.category_id}")

    async def upload(self, upload: DocumentUpload, unit: Optional[Unit] = None) -> Document:
        self.validate(upload)
        session = self.session
        fields = upload.form_fields(session.property_id, unit)
        try:
            document = await session.backoffice.create_document(
                fields,
                file=upload.file or b"",
                file_name=upload.file_name or "unnamed",
                content_type=upload.content_type,
            )
        except BackOfficeError as exc:
            raise MutationError("upload", f"Failed to upload document: {exc}") from exc

        logger.info(
            "uploaded document %s",
            document.id,
            extra={"property_id": session.property_id, "unit": unit.key if unit else None},
        )
        session.listing.reset()
        await session.listing.refresh()
        if unit is not None:
            session.cache.invalidate(unit.key)
            await session.reload_units([unit])
        else:
            session.cache.invalidate(PROPERTY_KEY)
            await session.property_documents()
        return document

    async def update(
        self, document_id: int, changes: DocumentUpdate, *, refetch: bool = True
    ) -> Document:
        try:
            document = await self.session.backoffice.update_document(document_id, changes.payload())
        except BackOfficeError as exc:
            raise MutationError("update", f"Failed to update document: {exc}") from exc
        logger.info("updated document %s", document_id, extra={"property_id": self.session.property_id})
        self.session.invalidate_all()
        if refetch:
            await self.session.refetch()
        return document

    async def delete(self, document_id: int, *, refetch: bool = True) -> None:
        try:
            await self.session.backoffice.delete_document(document_id)
        except BackOfficeError as exc:
            raise MutationError("delete", f"Failed to delete document: {exc}") from exc
        logger.info("deleted document %s", document_id, extra={"property_id": self.session.property_id})
        self.session.invalidate_all()
        if refetch:
            await self.session.refetch()
