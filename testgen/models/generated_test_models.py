"""Pydantic models for generated tests and the response envelope."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from testgen.models.generation_models import Question


class GeneratedTestCreate(BaseModel):
    """Fully assembled test, ready to be persisted in one write."""

    owner_id: str
    source_document_ids: List[str] = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str
    language: str = "es"
    questions: List[Question] = Field(..., min_length=1)
    total_questions: int = Field(..., ge=1)


class GeneratedTestResponse(BaseModel):
    """Model for a persisted test."""

    id: str
    owner_id: str
    pdf_id: Optional[str] = None
    source_document_ids: List[str] = Field(default_factory=list)
    title: str
    description: Optional[str] = None
    language: str
    questions: List[Question]
    total_questions: int
    created_at: datetime

    model_config = {
        "from_attributes": True,
        "json_schema_extra": {
            "example": {
                "id": "4f1d2c3b-5a6e-4f70-8c9d-0a1b2c3d4e5f",
                "owner_id": "user_123",
                "pdf_id": "0b6c7a52-0d4f-4b7e-9a55-3f1f9a0b1c2d",
                "source_document_ids": ["0b6c7a52-0d4f-4b7e-9a55-3f1f9a0b1c2d"],
                "title": "Examen generado (biologia.pdf)",
                "description": "1 preguntas generadas por IA",
                "language": "es",
                "questions": [
                    {
                        "question": "¿Qué orgánulo produce ATP?",
                        "options": ["Núcleo", "Mitocondria", "Ribosoma", "Golgi"],
                        "correct_answer": 1,
                        "explanation": "La mitocondria realiza la respiración celular.",
                    }
                ],
                "total_questions": 1,
                "created_at": "2025-12-10T12:00:00Z",
            }
        },
    }


class GenerateTestResponse(BaseModel):
    """Success envelope for test generation."""

    success: bool = True
    test: GeneratedTestResponse


class GeneratedTestListResponse(BaseModel):
    """Model for the caller's test list."""

    tests: List[GeneratedTestResponse]
    total: int


class ErrorResponse(BaseModel):
    """Failure envelope shared by every endpoint."""

    success: bool = False
    error: str
    reason: str
    details: Dict[str, Any] = Field(default_factory=dict)
    request_id: Optional[str] = None
