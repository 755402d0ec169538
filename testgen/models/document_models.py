"""Pydantic models for document upload and listing."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class DocumentResponse(BaseModel):
    """Model for an uploaded document."""

    id: str
    owner_id: str
    original_name: str
    size_bytes: Optional[int] = None
    has_extracted_text: bool = False
    created_at: datetime

    @classmethod
    def from_document(cls, document) -> "DocumentResponse":
        return cls(
            id=document.id,
            owner_id=document.owner_id,
            original_name=document.original_name,
            size_bytes=document.size_bytes,
            has_extracted_text=document.extracted_text is not None,
            created_at=document.created_at,
        )


class DocumentListResponse(BaseModel):
    """Model for the caller's document list."""

    documents: List[DocumentResponse]
    total: int
