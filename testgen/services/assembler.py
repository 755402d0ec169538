"""Assembles validated questions into a persistable test."""

from typing import List, Optional

from testgen.config import settings
from testgen.exceptions import ValidationException
from testgen.models.generated_test_models import GeneratedTestCreate
from testgen.models.generation_models import AggregatedContent, Question

TITLE_PREFIX = "Examen generado"
SOURCE_NAME_SEPARATOR = ", "


def build_title(source_names: List[str]) -> str:
    return f"{TITLE_PREFIX} ({SOURCE_NAME_SEPARATOR.join(source_names)})"


def build_description(question_count: int) -> str:
    return f"{question_count} preguntas generadas por IA"


class GeneratedTestAssembler:
    """Combines questions with naming and provenance metadata."""

    def __init__(self, language: Optional[str] = None):
        self.language = language or settings.default_language

    def assemble(
        self,
        questions: List[Question],
        aggregated: AggregatedContent,
        owner_id: str,
        source_document_ids: List[str],
    ) -> GeneratedTestCreate:
        """
        Build the test record to persist.

        Args:
            questions: Validated questions
            aggregated: Content the questions were generated from
            owner_id: Requesting user
            source_document_ids: Ordered ids of the requested documents

        Returns:
            Unsaved test

        Raises:
            ValidationException: If there are no questions
        """
        if not questions:
            raise ValidationException("A test needs at least one question")

        return GeneratedTestCreate(
            owner_id=owner_id,
            source_document_ids=list(source_document_ids),
            title=build_title(aggregated.source_names),
            description=build_description(len(questions)),
            language=self.language,
            questions=list(questions),
            total_questions=len(questions),
        )
