"""
Cache Invalidator

Profile mutation hook: marks the user's suggestions stale and queues a
regeneration job. Runs after the profile write has committed, so nothing
here may fail that write; errors are logged.
"""

import logging

from devcollab.core.job_queue import JobEnqueuer
from devcollab.services.profile_service import ProfileAspect
from devcollab.services.suggestion_cache_service import SuggestionCacheService
from devcollab.services.suggestion_service import GENERATE_SUGGESTIONS_TASK

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """Invalidate + enqueue on every skills/projects write"""

    def __init__(self, cache: SuggestionCacheService, queue: JobEnqueuer):
        self.cache = cache
        self.queue = queue

    async def on_profile_mutated(self, user_id: str, aspect: ProfileAspect) -> None:
        aspect = ProfileAspect(aspect)

        try:
            await self.cache.invalidate(user_id)
        except Exception as e:
            logger.error(f"Error invalidating suggestions cache for user {user_id}: {str(e)}")

        try:
            job = await self.queue.enqueue(GENERATE_SUGGESTIONS_TASK, {"user_id": user_id})
            logger.info(
                f"Cache invalidated and regeneration queued for user {user_id} "
                f"due to {aspect.value} update (run {job.run_id})"
            )
        except Exception as e:
            logger.error(f"Error queueing suggestion regeneration for user {user_id}: {str(e)}")
