"""API endpoints for PDF upload and listing."""
import logging

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from testgen.auth import get_current_owner
from testgen.db.database import get_db
from testgen.dependencies import get_storage
from testgen.models.document_models import DocumentListResponse, DocumentResponse
from testgen.services.document_service import DocumentService
from testgen.services.storage import LocalBlobStorage
from testgen.utils.file_utils import read_upload_bytes, validate_upload_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pdfs", tags=["documents"])


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_pdf(
    file: UploadFile = File(...),
    owner_id: str = Depends(get_current_owner),
    db: Session = Depends(get_db),
    storage: LocalBlobStorage = Depends(get_storage),
):
    """
    Upload a PDF for later test generation.

    Text is not extracted here; it is extracted and cached on first use.
    """
    validate_upload_file(file)
    data = await read_upload_bytes(file)

    service = DocumentService(db, storage)
    document = service.create_document(owner_id, file.filename or "document.pdf", data)
    logger.info(f"Uploaded {document.original_name} ({len(data)} bytes) as {document.id}")
    return DocumentResponse.from_document(document)


@router.get("", response_model=DocumentListResponse)
async def list_pdfs(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    owner_id: str = Depends(get_current_owner),
    db: Session = Depends(get_db),
    storage: LocalBlobStorage = Depends(get_storage),
):
    """List the caller's uploaded PDFs, newest first."""
    service = DocumentService(db, storage)
    documents = service.list_documents(owner_id, skip=skip, limit=limit)
    return DocumentListResponse(
        documents=[DocumentResponse.from_document(doc) for doc in documents],
        total=len(documents),
    )
