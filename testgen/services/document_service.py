"""Service for uploaded documents: ownership checks, raw bytes and text cache."""
import logging
import uuid
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from testgen.db.models import Document
from testgen.exceptions import DocumentAccessException, PersistenceException
from testgen.services.storage import LocalBlobStorage

logger = logging.getLogger(__name__)


class DocumentService:
    """Service for document operations scoped to an owner."""

    def __init__(self, db: Session, storage: LocalBlobStorage):
        """
        Initialize document service.

        Args:
            db: Database session
            storage: Blob storage holding the raw PDF bytes
        """
        self.db = db
        self.storage = storage

    def create_document(self, owner_id: str, original_name: str, data: bytes) -> Document:
        """
        Store an uploaded PDF and register it.

        Args:
            owner_id: Uploading user
            original_name: File name as uploaded
            data: Raw PDF bytes

        Returns:
            Created document
        """
        storage_path = self.storage.save(owner_id, original_name, data)
        document = Document(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            original_name=original_name,
            storage_path=storage_path,
            size_bytes=len(data),
        )
        try:
            self.db.add(document)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self.storage.delete(storage_path)
            raise PersistenceException(f"Failed to register document: {e}") from e
        self.db.refresh(document)

        logger.info(f"Created document {document.id} for owner {owner_id}")
        return document

    def get_document(self, document_id: str, owner_id: str) -> Document:
        """
        Get a document owned by the caller.

        Raises:
            DocumentAccessException: If the document is missing or owned by someone else
        """
        document = self.db.query(Document).filter(Document.id == document_id).first()
        if document is None or document.owner_id != owner_id:
            if document is not None:
                logger.warning(
                    f"Owner {owner_id} requested document {document_id} owned by another user"
                )
            raise DocumentAccessException(
                f"Document '{document_id}' not found",
                details={"document_id": document_id},
            )
        return document

    def get_batch(self, document_ids: List[str], owner_id: str) -> List[Document]:
        """
        Load a batch of documents, preserving the requested order.

        Raises:
            DocumentAccessException: If any id is unknown or not owned by the caller
        """
        if not document_ids:
            return []

        # repeated ids collapse to their first position
        document_ids = list(dict.fromkeys(document_ids))
        found = {
            doc.id: doc
            for doc in self.db.query(Document).filter(Document.id.in_(document_ids)).all()
        }
        batch = []
        for document_id in document_ids:
            document = found.get(document_id)
            if document is None or document.owner_id != owner_id:
                raise DocumentAccessException(
                    f"Document '{document_id}' not found",
                    details={"document_id": document_id},
                )
            batch.append(document)
        return batch

    def list_documents(self, owner_id: str, skip: int = 0, limit: int = 100) -> List[Document]:
        return (
            self.db.query(Document)
            .filter(Document.owner_id == owner_id)
            .order_by(Document.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def fetch(self, document_id: str, owner_id: str) -> bytes:
        """
        Read the raw bytes of a document owned by the caller.

        Raises:
            DocumentAccessException: If the document is missing or owned by someone else
        """
        document = self.get_document(document_id, owner_id)
        return self.read_bytes(document)

    def read_bytes(self, document: Document) -> bytes:
        """Read the stored bytes of an already-authorized document."""
        return self.storage.read(document.storage_path)

    def cache_extracted_text(self, documents: List[Document]) -> None:
        """
        Persist extracted text set on documents during aggregation.

        The write is a plain overwrite, so concurrent re-extraction is safe.
        A failed cache write is logged and does not fail the request.
        """
        changed = [doc for doc in documents if doc in self.db.dirty]
        if not changed:
            return
        try:
            self.db.commit()
            logger.info(f"Cached extracted text for {len(changed)} document(s)")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Failed to cache extracted text: {e}")
