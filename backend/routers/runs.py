"""
Runs Router
FastAPI routes for submitting, resuming, retrying and fetching runs

Runs execute synchronously inside the request; FastAPI serves these
handlers from its worker thread pool.
"""
import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, status

from config import DOCS_ROOT
from page_agent import DocsIndexer, build_engine, create_generation_service
from page_agent.core import InputProcessor
from schemas.run import RunCreate, RetryRequest, RunResponse
from services import (
    CheckpointStore,
    RunRecordStore,
    RunService,
    RunNotFoundError,
    InvalidRetryError,
    InvalidStructuredDataError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/runs", tags=["runs"])


@lru_cache(maxsize=1)
def get_run_service() -> RunService:
    """
    Process-wide RunService built from configuration

    Overridden in tests through app.dependency_overrides.
    """
    generation_service = create_generation_service()
    indexer = DocsIndexer(DOCS_ROOT).build()
    return RunService(
        engine_factory=lambda checkpointer: build_engine(generation_service, indexer, checkpointer),
        checkpoints=CheckpointStore(),
        records=RunRecordStore(),
        input_processor=InputProcessor(generation_service),
    )


def _not_found(e: RunNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# ============================================================================
# Run Operations
# ============================================================================

@router.post("", response_model=RunResponse)
def create_run(body: RunCreate, service: RunService = Depends(get_run_service)):
    """
    Submit a requirement and run it to completion
    """
    try:
        outcome = service.submit(body.requirement, body.structuredData, split_input=body.splitInput)
    except InvalidStructuredDataError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return RunResponse.from_outcome(outcome)


@router.get("/{run_id}", response_model=RunResponse)
def get_run(run_id: str, service: RunService = Depends(get_run_service)):
    """
    Get a finished run by ID
    """
    try:
        return RunResponse.from_outcome(service.get(run_id))
    except RunNotFoundError as e:
        raise _not_found(e)


@router.post("/{run_id}/resume", response_model=RunResponse)
def resume_run(run_id: str, service: RunService = Depends(get_run_service)):
    """
    Continue an interrupted run from its last checkpoint
    """
    try:
        return RunResponse.from_outcome(service.resume(run_id))
    except RunNotFoundError as e:
        raise _not_found(e)


@router.post("/{run_id}/retry", response_model=RunResponse)
def retry_run_tasks(run_id: str, body: RetryRequest, service: RunService = Depends(get_run_service)):
    """
    Regenerate selected tasks of a finished run and recompose the page
    """
    try:
        return RunResponse.from_outcome(service.retry_tasks(run_id, body.taskIndices))
    except RunNotFoundError as e:
        raise _not_found(e)
    except InvalidRetryError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
