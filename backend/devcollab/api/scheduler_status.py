"""
Scheduler Status API Endpoints

Provides endpoints to monitor the refresh sweeps, inspect model rate-limit
headroom and manually trigger a sweep.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status

from devcollab.api.deps import get_job_queue, get_rate_limit_tracker, get_scheduler
from devcollab.core.job_queue import JobQueue
from devcollab.core.scheduler import BackgroundScheduler, HOURLY_REFRESH_JOB, NIGHTLY_REFRESH_JOB
from devcollab.core.security import get_current_user_id
from devcollab.schemas.common import DataResponse, ErrorResponse
from devcollab.services.rate_limit_tracker import RateLimitTracker

router = APIRouter(
    prefix="/scheduler",
    tags=["scheduler"],
    dependencies=[Depends(get_current_user_id)]
)

TRIGGERABLE_JOBS = {
    "hourly": HOURLY_REFRESH_JOB,
    "nightly": NIGHTLY_REFRESH_JOB,
}


@router.get(
    "/status",
    response_model=DataResponse,
    responses={
        200: {"description": "Scheduler status retrieved successfully"},
        500: {"description": "Internal server error", "model": ErrorResponse}
    }
)
async def get_scheduler_status(
    scheduler: BackgroundScheduler = Depends(get_scheduler),
    queue: JobQueue = Depends(get_job_queue)
):
    """
    Get status of background scheduler and all jobs

    Returns information about:
    - Scheduler state (running/stopped)
    - List of scheduled jobs with next run times
    - Generation jobs currently in flight
    """
    try:
        job_status = scheduler.get_job_status()

        return DataResponse(data={
            "scheduler": job_status,
            "generation_jobs_in_flight": queue.pending_count,
            "system_health": "healthy" if job_status["status"] == "running" else "degraded",
            "message": "Background refresh is active" if job_status["status"] == "running" else "Background refresh is not running"
        })

    except Exception as e:
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get scheduler status: {str(e)}"
        )


@router.get("/history", response_model=DataResponse)
async def get_job_history(
    limit: int = 10,
    scheduler: BackgroundScheduler = Depends(get_scheduler)
):
    """Recent sweep executions with per-run counts"""
    job_history = await scheduler.get_recent_job_logs(limit=min(max(limit, 1), 100))
    return DataResponse(data={
        "job_history": job_history,
        "success_rate": sum(1 for log in job_history if log.get('status') == 'success') / max(len(job_history), 1) * 100,
        "total_users_processed": sum(log.get('users_processed') or 0 for log in job_history),
        "total_users_failed": sum(log.get('users_failed') or 0 for log in job_history),
    })


@router.get("/rate-limits", response_model=DataResponse)
async def get_rate_limits(tracker: RateLimitTracker = Depends(get_rate_limit_tracker)):
    """Last observed rate-limit headroom per model"""
    return DataResponse(data=tracker.snapshot())


@router.post(
    "/trigger/{sweep}",
    response_model=DataResponse,
    responses={
        200: {"description": "Job triggered successfully"},
        404: {"description": "Unknown sweep", "model": ErrorResponse},
        500: {"description": "Internal server error", "model": ErrorResponse}
    }
)
async def trigger_refresh(
    sweep: str,
    scheduler: BackgroundScheduler = Depends(get_scheduler)
):
    """Run the hourly or nightly refresh sweep now"""
    job_id = TRIGGERABLE_JOBS.get(sweep)
    if job_id is None:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=f"Unknown sweep '{sweep}'")

    result = await scheduler.trigger_job(job_id)
    if not result["success"]:
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=result.get("message") or "Failed to trigger job"
        )
    return DataResponse(data=result["result"])
