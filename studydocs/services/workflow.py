from __future__ import annotations

import logging
from typing import Optional

from studydocs.errors import PortalError
from studydocs.models import Document, Session, SignedUrl
from studydocs.services.documents import DocumentRepository
from studydocs.services.storage import StorageClient
from studydocs.services.validators import NewDocument, build_storage_path

logger = logging.getLogger(__name__)


class DocumentService:
    """Coordinates the storage and metadata halves of a document.

    Nothing here is transactional: each step is a separate remote call and a
    failure part way leaves whatever already happened in place.
    """

    def __init__(self, repository: DocumentRepository, storage: StorageClient, *, signed_url_ttl: int = 3600):
        self.repository = repository
        self.storage = storage
        self.signed_url_ttl = signed_url_ttl

    def list_documents(self, session: Session, search_query: Optional[str] = None) -> list[Document]:
        return self.repository.list(session, search_query)

    def upload_document(self, session: Session, new: NewDocument, *, now_ms: Optional[int] = None) -> Document:
        path = build_storage_path(session.user.id, new.filename, now_ms=now_ms)
        self.storage.upload(session, path, new.data, new.content_type)
        try:
            return self.repository.insert(
                session,
                title=new.title,
                description=new.description,
                file_path=path,
            )
        except PortalError:
            logger.error("metadata insert failed, removing uploaded file %s", path)
            try:
                self.storage.remove(session, [path])
            except PortalError as cleanup_exc:
                logger.warning("orphaned file %s left in storage: %s", path, cleanup_exc)
            raise

    def update_document(
        self,
        session: Session,
        document_id: str,
        *,
        title: str,
        description: Optional[str],
    ) -> Document:
        return self.repository.update(session, document_id, title=title, description=description)

    def delete_document(self, session: Session, document: Document) -> None:
        # file first; if that fails the row stays listed so the user can retry
        self.storage.remove(session, [document.file_path])
        self.repository.delete(session, document.id)

    def view_url(self, session: Session, document: Document) -> SignedUrl:
        return self.storage.create_signed_url(session, document.file_path, self.signed_url_ttl)

    def download(self, session: Session, document: Document) -> bytes:
        return self.storage.download(session, document.file_path)
