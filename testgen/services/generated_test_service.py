"""Service for persisting and reading generated tests."""
import logging
import uuid
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from testgen.db.models import GeneratedTest
from testgen.exceptions import PersistenceException, ValidationException
from testgen.models.generated_test_models import GeneratedTestCreate

logger = logging.getLogger(__name__)


class GeneratedTestService:
    """Service for generated test storage operations."""

    def __init__(self, db: Session):
        """
        Initialize generated test service.

        Args:
            db: Database session
        """
        self.db = db

    def create_test(self, draft: GeneratedTestCreate) -> GeneratedTest:
        """
        Persist a test and its questions in a single transaction.

        Args:
            draft: Assembled test

        Returns:
            Persisted test

        Raises:
            ValidationException: If the test has no questions
            PersistenceException: If the write fails; nothing is stored
        """
        if not draft.questions or draft.total_questions != len(draft.questions):
            raise ValidationException(
                "Test must contain at least one question and a matching count",
                details={
                    "total_questions": draft.total_questions,
                    "questions": len(draft.questions),
                },
            )

        test = GeneratedTest(
            id=str(uuid.uuid4()),
            owner_id=draft.owner_id,
            pdf_id=draft.source_document_ids[0],
            source_document_ids=list(draft.source_document_ids),
            title=draft.title,
            description=draft.description,
            language=draft.language,
            questions=[q.model_dump() for q in draft.questions],
            total_questions=draft.total_questions,
        )

        try:
            self.db.add(test)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.error(f"Test rejected by database constraints: {e.orig}")
            raise PersistenceException(
                "Test violates storage constraints", reason="constraint-violation"
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to persist test: {e}", exc_info=True)
            raise PersistenceException("Failed to persist test") from e

        self.db.refresh(test)
        logger.info(
            f"Created test {test.id} with {test.total_questions} question(s) for owner {test.owner_id}"
        )
        return test

    def get_test(self, test_id: str, owner_id: str) -> Optional[GeneratedTest]:
        """
        Get a test owned by the caller.

        Returns:
            Test if found and owned by the caller, None otherwise
        """
        return (
            self.db.query(GeneratedTest)
            .filter(GeneratedTest.id == test_id, GeneratedTest.owner_id == owner_id)
            .first()
        )

    def list_tests(self, owner_id: str, skip: int = 0, limit: int = 100) -> List[GeneratedTest]:
        return (
            self.db.query(GeneratedTest)
            .filter(GeneratedTest.owner_id == owner_id)
            .order_by(GeneratedTest.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def delete_test(self, test_id: str, owner_id: str) -> bool:
        """
        Delete a test owned by the caller.

        Returns:
            True if deleted, False if not found
        """
        test = self.get_test(test_id, owner_id)
        if not test:
            return False

        try:
            self.db.delete(test)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceException(f"Failed to delete test {test_id}") from e

        logger.info(f"Deleted test {test_id}")
        return True
