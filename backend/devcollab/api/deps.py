"""
Dependencies resolving the per-process services built at startup
"""

from fastapi import HTTPException, Request, status

from devcollab.core.job_queue import JobQueue
from devcollab.core.scheduler import BackgroundScheduler
from devcollab.services.profile_service import ProfileService
from devcollab.services.rate_limit_tracker import RateLimitTracker
from devcollab.services.suggestion_generator import SuggestionGenerator
from devcollab.services.suggestion_service import SuggestionService


def _state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{name} is not initialized"
        )
    return service


def get_suggestion_service(request: Request) -> SuggestionService:
    return _state(request, "suggestion_service")


def get_suggestion_generator(request: Request) -> SuggestionGenerator:
    return _state(request, "suggestion_generator")


def get_profile_service(request: Request) -> ProfileService:
    return _state(request, "profile_service")


def get_job_queue(request: Request) -> JobQueue:
    return _state(request, "job_queue")


def get_scheduler(request: Request) -> BackgroundScheduler:
    return _state(request, "scheduler")


def get_rate_limit_tracker(request: Request) -> RateLimitTracker:
    return _state(request, "rate_limit_tracker")
