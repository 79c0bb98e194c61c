"""
Suggestion API Endpoints

Read-through suggestions, forced regeneration, queued generation and
deep-dive analysis for the authenticated user.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status

from devcollab.api.deps import get_job_queue, get_suggestion_generator, get_suggestion_service
from devcollab.core.job_queue import JobQueue
from devcollab.core.security import get_current_user_id
from devcollab.schemas.common import DataResponse, ErrorResponse
from devcollab.schemas.suggestions import DeepDiveRequest, QueuedGeneration, RefreshRequest
from devcollab.services.exceptions import (
    CacheUnavailableError,
    InferenceError,
    ProfileNotFoundError,
)
from devcollab.services.suggestion_generator import SuggestionGenerator
from devcollab.services.suggestion_service import GENERATE_SUGGESTIONS_TASK, SuggestionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/suggestions", tags=["suggestions"])

ERROR_RESPONSES = {
    401: {"description": "Unauthorized", "model": ErrorResponse},
    404: {"description": "Profile not found", "model": ErrorResponse},
    502: {"description": "Inference provider failed", "model": ErrorResponse},
    503: {"description": "Suggestion cache unavailable", "model": ErrorResponse},
}


def _to_http_error(user_id: str, error: Exception) -> HTTPException:
    if isinstance(error, ProfileNotFoundError):
        return HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail="Profile not found")
    if isinstance(error, InferenceError):
        return HTTPException(
            status_code=http_status.HTTP_502_BAD_GATEWAY,
            detail="Failed to generate suggestions"
        )
    if isinstance(error, CacheUnavailableError):
        return HTTPException(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Suggestions are temporarily unavailable"
        )
    logger.error(f"Unexpected error generating suggestions for user {user_id}: {str(error)}", exc_info=error)
    return HTTPException(
        status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to fetch suggestions"
    )


@router.get("", response_model=DataResponse, responses=ERROR_RESPONSES)
async def get_suggestions(
    current_user_id: str = Depends(get_current_user_id),
    service: SuggestionService = Depends(get_suggestion_service)
):
    """Get suggestions, generating them synchronously when the cache is stale"""
    try:
        result = await service.get_suggestions(current_user_id)
        return DataResponse(data=result.model_dump(by_alias=True))
    except Exception as e:
        raise _to_http_error(current_user_id, e)


@router.post("", response_model=DataResponse, responses=ERROR_RESPONSES)
async def regenerate_suggestions(
    request: RefreshRequest,
    current_user_id: str = Depends(get_current_user_id),
    service: SuggestionService = Depends(get_suggestion_service)
):
    """Regenerate suggestions now; `force` invalidates the cache first"""
    try:
        if request.force:
            result = await service.force_refresh(current_user_id)
        else:
            result = await service.generate_and_cache(current_user_id)
        return DataResponse(data={**result.model_dump(by_alias=True), "queued": False})
    except Exception as e:
        raise _to_http_error(current_user_id, e)


@router.post("/queue", response_model=DataResponse, responses=ERROR_RESPONSES)
async def queue_suggestion_generation(
    current_user_id: str = Depends(get_current_user_id),
    queue: JobQueue = Depends(get_job_queue)
):
    """Queue background regeneration and return the run id"""
    try:
        job = await queue.enqueue(GENERATE_SUGGESTIONS_TASK, {"user_id": current_user_id})
        return DataResponse(data=QueuedGeneration(
            run_id=job.run_id,
            status=job.status,
            user_id=current_user_id,
            message="Suggestion generation triggered"
        ).model_dump())
    except Exception as e:
        logger.error(f"Error queueing suggestions for user {current_user_id}: {str(e)}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to trigger task"
        )


@router.get("/queue/{run_id}", response_model=DataResponse, responses=ERROR_RESPONSES)
async def get_queued_generation(
    run_id: str,
    current_user_id: str = Depends(get_current_user_id),
    queue: JobQueue = Depends(get_job_queue)
):
    """Status of a queued generation run"""
    job = queue.get_job(run_id)
    if job is None or job.payload.get("user_id") != current_user_id:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail="Run not found")
    return DataResponse(data=job.to_dict())


@router.post("/deep-dive", response_model=DataResponse, responses=ERROR_RESPONSES)
async def deep_dive(
    request: DeepDiveRequest,
    current_user_id: str = Depends(get_current_user_id),
    generator: SuggestionGenerator = Depends(get_suggestion_generator)
):
    """Detailed breakdown of one project idea or skill"""
    try:
        result = await generator.deep_dive(current_user_id, request.task_type, request.topic)
        return DataResponse(data=result.model_dump())
    except Exception as e:
        raise _to_http_error(current_user_id, e)
