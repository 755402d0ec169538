"""Upload handling utilities."""
from pathlib import Path

from fastapi import UploadFile

from testgen.config import settings
from testgen.exceptions import RequestValidationException

ALLOWED_PDF_TYPES = {"application/pdf", "application/x-pdf"}
PDF_MAGIC = b"%PDF-"


def validate_upload_file(file: UploadFile) -> bool:
    """
    Validate that the uploaded file claims to be a PDF.

    Args:
        file: FastAPI UploadFile object

    Returns:
        True if valid

    Raises:
        RequestValidationException: If the file type is not PDF
    """
    suffix = Path(file.filename).suffix.lower() if file.filename else ""
    if file.content_type not in ALLOWED_PDF_TYPES and suffix != ".pdf":
        raise RequestValidationException(
            f"Invalid file type. Only PDF files are allowed. Got: {file.content_type}",
            details={"content_type": file.content_type, "filename": file.filename},
        )
    return True


async def read_upload_bytes(file: UploadFile) -> bytes:
    """
    Read an upload into memory, enforcing the size limit and the PDF header.

    Raises:
        RequestValidationException: If the file is empty, too large or not a PDF
    """
    max_bytes = settings.max_file_size_mb * 1024 * 1024
    data = await file.read(max_bytes + 1)

    if not data:
        raise RequestValidationException("Uploaded file is empty")
    if len(data) > max_bytes:
        raise RequestValidationException(
            f"File exceeds maximum allowed size ({settings.max_file_size_mb} MB)",
            details={"max_file_size_mb": settings.max_file_size_mb},
        )
    if data.lstrip()[:5] != PDF_MAGIC:
        raise RequestValidationException("Uploaded file is not a PDF")
    return data

