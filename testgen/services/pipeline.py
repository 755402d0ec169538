"""Document-to-test generation pipeline."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from testgen.config import settings
from testgen.db.models import GeneratedTest
from testgen.exceptions import ResponseValidationException
from testgen.models.generated_test_models import GeneratedTestCreate
from testgen.models.generation_models import Prompt, Question
from testgen.services.assembler import GeneratedTestAssembler
from testgen.services.content_aggregator import ContentAggregator
from testgen.services.document_service import DocumentService
from testgen.services.generated_test_service import GeneratedTestService
from testgen.services.generation_service import Deadline, GenerationService
from testgen.services.pdf_extractor import PDFTextExtractor
from testgen.services.prompt_builder import PromptBuilder
from testgen.services.response_validator import validate_response
from testgen.services.storage import LocalBlobStorage

logger = logging.getLogger(__name__)


class GenerationPipeline:
    """
    Coordinates one generation request.

    prepare() does all the slow and failure-prone work (extraction, LLM call,
    validation) and returns an unsaved test; save() writes it in a single
    transaction. Callers that can be cancelled run prepare() first and only
    call save() once it has returned.
    """

    def __init__(
        self,
        db: Session,
        storage: LocalBlobStorage,
        generation_service: GenerationService,
        extractor: Optional[PDFTextExtractor] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        assembler: Optional[GeneratedTestAssembler] = None,
        repair_attempts: Optional[int] = None,
    ):
        self.document_service = DocumentService(db, storage)
        self.test_service = GeneratedTestService(db)
        self.generation_service = generation_service
        self.aggregator = ContentAggregator(
            extractor or PDFTextExtractor(),
            fetch_bytes=self.document_service.read_bytes,
        )
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.assembler = assembler or GeneratedTestAssembler()
        self.repair_attempts = (
            settings.generation_repair_attempts
            if repair_attempts is None
            else repair_attempts
        )

    def prepare(
        self,
        owner_id: str,
        pdf_ids: List[str],
        num_questions: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> GeneratedTestCreate:
        """
        Build an unsaved test from the caller's documents.

        deadline bounds and cancels everything from the extraction cache write
        onwards; without one only the per-call LLM timeout applies.

        Raises:
            RequestValidationException: Bad question count or batch size
            DocumentAccessException: Unknown or foreign document id
            AggregationException: Not enough extractable text
            GenerationException: LLM call failed, or the deadline ran out
            ResponseValidationException: Model output unusable
        """
        if num_questions is None:
            num_questions = settings.default_num_questions
        # Cheap checks first, before any extraction work
        self.prompt_builder.check_question_count(num_questions)
        unique_ids = list(dict.fromkeys(pdf_ids))
        self.aggregator.check_batch_size(len(unique_ids))

        batch = self.document_service.get_batch(unique_ids, owner_id)
        content = self.aggregator.aggregate(batch)
        if deadline is not None:
            deadline.check("extraction")
        self.document_service.cache_extracted_text(batch)

        prompt = self.prompt_builder.build(content, num_questions)
        logger.info(
            f"Requesting {num_questions} question(s) from {len(content.source_names)} "
            f"source(s), excerpt {len(prompt.excerpt)}/{content.total_chars} chars"
        )
        questions = self.generate_questions(prompt, deadline)
        if len(questions) != num_questions:
            logger.info(f"Model returned {len(questions)} of {num_questions} requested question(s)")

        return self.assembler.assemble(
            questions, content, owner_id, [doc.id for doc in batch]
        )

    def generate_questions(
        self, prompt: Prompt, deadline: Optional[Deadline] = None
    ) -> List[Question]:
        """
        Call the LLM and validate its answer.

        Output that is not JSON at all is retried with the same prompt up to
        repair_attempts times. Schema violations are never retried.
        """
        attempt = 0
        while True:
            if attempt and deadline is not None:
                deadline.check("repair")
            raw_text = self.generation_service.generate(prompt, deadline)
            try:
                return validate_response(raw_text)
            except ResponseValidationException as e:
                if e.reason != "malformed-json" or attempt >= self.repair_attempts:
                    raise
                attempt += 1
                logger.warning(
                    f"Model returned malformed JSON, repair attempt {attempt}/{self.repair_attempts}"
                )

    def save(self, draft: GeneratedTestCreate) -> GeneratedTest:
        return self.test_service.create_test(draft)

    def run(
        self, owner_id: str, pdf_ids: List[str], num_questions: Optional[int] = None
    ) -> GeneratedTest:
        """Generate and persist a test."""
        return self.save(self.prepare(owner_id, pdf_ids, num_questions))
