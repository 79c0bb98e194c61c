"""
DevCollab Suggestions API

FastAPI application wiring: builds the per-process services (rate limit
ledger, model router, job queue, refresh scheduler) at startup and tears
them down on shutdown.
"""

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from devcollab.api.router import api_router
from devcollab.core.config import settings
from devcollab.core.database import AsyncSessionLocal, engine, init_models
from devcollab.core.job_queue import JobQueue
from devcollab.core.scheduler import BackgroundScheduler
from devcollab.schemas.common import HealthResponse
from devcollab.services.cache_invalidator import CacheInvalidator
from devcollab.services.inference_client import GroqInferenceClient
from devcollab.services.model_router import ModelRouter
from devcollab.services.profile_service import ProfileRepository, ProfileService
from devcollab.services.rate_limit_tracker import RateLimitTracker
from devcollab.services.suggestion_cache_service import SuggestionCacheService
from devcollab.services.suggestion_generator import SuggestionGenerator
from devcollab.services.suggestion_refresh_service import SuggestionRefreshService
from devcollab.services.suggestion_service import GENERATE_SUGGESTIONS_TASK, SuggestionService

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)


@dataclass
class Services:
    rate_limit_tracker: RateLimitTracker
    inference_client: GroqInferenceClient
    suggestion_generator: SuggestionGenerator
    suggestion_service: SuggestionService
    job_queue: JobQueue
    profile_service: ProfileService
    refresh_service: SuggestionRefreshService
    scheduler: BackgroundScheduler


def build_services(session_factory=AsyncSessionLocal) -> Services:
    """Construct the pipeline once per process"""
    tracker = RateLimitTracker()
    client = GroqInferenceClient(tracker)
    generator = SuggestionGenerator(
        profiles=ProfileRepository(session_factory),
        client=client,
        router=ModelRouter(tracker),
    )
    cache = SuggestionCacheService(session_factory)
    suggestion_service = SuggestionService(cache, generator)

    job_queue = JobQueue()
    job_queue.register(GENERATE_SUGGESTIONS_TASK, suggestion_service.run_generation_job)

    profile_service = ProfileService(session_factory, hooks=[CacheInvalidator(cache, job_queue)])
    refresh_service = SuggestionRefreshService(cache, job_queue, suggestion_service)

    return Services(
        rate_limit_tracker=tracker,
        inference_client=client,
        suggestion_generator=generator,
        suggestion_service=suggestion_service,
        job_queue=job_queue,
        profile_service=profile_service,
        refresh_service=refresh_service,
        scheduler=BackgroundScheduler(refresh_service, session_factory),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} v{settings.VERSION} ({settings.ENVIRONMENT})")
    await init_models()

    services = build_services()
    for name, service in vars(services).items():
        setattr(app.state, name, service)

    if settings.SCHEDULER_ENABLED:
        await services.scheduler.start()
    else:
        logger.info("Background scheduler disabled by configuration")

    try:
        yield
    finally:
        await services.scheduler.stop()
        await services.job_queue.shutdown()
        await services.inference_client.aclose()
        await engine.dispose()
        logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_hosts,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health", response_model=HealthResponse)
async def health():
    scheduler = getattr(app.state, "scheduler", None)
    return HealthResponse(
        status="healthy",
        timestamp=time.time(),
        version=settings.VERSION,
        scheduler=scheduler.get_job_status()["status"] if scheduler else "not_started",
    )
