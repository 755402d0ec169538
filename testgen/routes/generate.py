"""Test generation route endpoint."""
import asyncio
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool

from testgen.auth import get_current_owner
from testgen.config import settings
from testgen.dependencies import get_pipeline
from testgen.models.generated_test_models import (
    ErrorResponse,
    GeneratedTestResponse,
    GenerateTestResponse,
)
from testgen.models.generation_models import GenerateTestRequest
from testgen.rate_limit import generation_rate_limit, limiter
from testgen.services.generation_service import Deadline
from testgen.services.pipeline import GenerationPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tests", tags=["generation"])


async def prepare_draft(
    pipeline: GenerationPipeline,
    owner_id: str,
    payload: GenerateTestRequest,
    deadline: Deadline,
):
    """Run pipeline.prepare in the threadpool, cancelling the deadline if this task is cancelled."""
    # The worker thread outlives a cancelled request; the deadline tells it to stop
    task = asyncio.ensure_future(
        run_in_threadpool(
            pipeline.prepare, owner_id, payload.pdf_ids, payload.num_questions, deadline
        )
    )
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        deadline.cancel()
        logger.info("Generation request cancelled, stopping further LLM calls")
        raise


@router.post(
    "/generate",
    response_model=GenerateTestResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
@limiter.limit(generation_rate_limit)
async def generate_test(
    request: Request,
    payload: GenerateTestRequest,
    owner_id: str = Depends(get_current_owner),
    pipeline: GenerationPipeline = Depends(get_pipeline),
):
    """
    Generate a multiple-choice test from the caller's PDFs.

    Extraction, the LLM call and validation run in the threadpool under a
    request deadline. Cancelling the request cancels the deadline, which stops
    further LLM attempts; the test is written only after the draft is ready,
    so a cancelled request stores nothing.

    Args:
        request: FastAPI Request object
        payload: Document ids and requested question count
        owner_id: Authenticated caller
        pipeline: Generation pipeline

    Returns:
        GenerateTestResponse with the persisted test
    """
    request_id = getattr(request.state, "request_id", "unknown")
    logger.info(
        f"Generation request [{request_id}]: {len(payload.pdf_ids)} document(s), "
        f"{payload.num_questions} question(s)",
        extra={"request_id": request_id, "owner_id": owner_id},
    )

    deadline = Deadline(settings.request_timeout_sec)
    draft = await prepare_draft(pipeline, owner_id, payload, deadline)
    test = await run_in_threadpool(pipeline.save, draft)

    return GenerateTestResponse(test=GeneratedTestResponse.model_validate(test))
