"""FastAPI dependencies wiring services to settings."""

from fastapi import Depends
from sqlalchemy.orm import Session

from testgen.config import settings
from testgen.db.database import get_db
from testgen.services.generation_service import GenerationService
from testgen.services.pipeline import GenerationPipeline
from testgen.services.storage import LocalBlobStorage


def get_storage() -> LocalBlobStorage:
    return LocalBlobStorage(settings.storage_root)


def get_generation_service() -> GenerationService:
    return GenerationService()


def get_pipeline(
    db: Session = Depends(get_db),
    storage: LocalBlobStorage = Depends(get_storage),
    generation_service: GenerationService = Depends(get_generation_service),
) -> GenerationPipeline:
    return GenerationPipeline(db, storage, generation_service)
