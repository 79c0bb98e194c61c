"""
Suggestion Refresh Service

Keeps suggestion caches warm so interactive reads hit the fast path. Each
sweep:

1. Collects users whose cache is invalid or older than the freshness window,
   plus active users with no cache at all
2. Deduplicates them into one candidate list
3. Works through the list in small batches, concurrently within a batch,
   pausing between batches to bound load on the inference provider
4. Reports processed/error counts; one user's failure never stops the sweep

The hourly sweep enqueues generation jobs; the nightly sweep regenerates
inline.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from devcollab.core.config import settings
from devcollab.core.job_queue import JobEnqueuer
from devcollab.services.suggestion_cache_service import SuggestionCacheService
from devcollab.services.suggestion_service import GENERATE_SUGGESTIONS_TASK, SuggestionService

logger = logging.getLogger(__name__)


class SuggestionRefreshService:
    """Background sweeps over stale or missing suggestion caches"""

    def __init__(
        self,
        cache: SuggestionCacheService,
        queue: JobEnqueuer,
        suggestion_service: SuggestionService,
        batch_size: Optional[int] = None,
        batch_delay_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.cache = cache
        self.queue = queue
        self.suggestion_service = suggestion_service
        self.batch_size = batch_size or settings.REFRESH_BATCH_SIZE
        self.batch_delay_seconds = (
            settings.REFRESH_BATCH_DELAY_SECONDS if batch_delay_seconds is None else batch_delay_seconds
        )
        self._sleep = sleep

        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    async def find_users_needing_refresh(self) -> List[str]:
        """Stale users followed by active users without a cache, deduplicated"""
        stale = await self.cache.find_stale_user_ids()
        missing = await self.cache.find_active_users_without_cache()
        return list(dict.fromkeys([*stale, *missing]))

    async def enqueue_stale_users(self) -> Dict[str, Any]:
        """Hourly sweep: queue a generation job per candidate"""
        async def enqueue(user_id: str):
            await self.queue.enqueue(GENERATE_SUGGESTIONS_TASK, {"user_id": user_id})

        return await self._sweep("hourly", enqueue)

    async def refresh_stale_users(self) -> Dict[str, Any]:
        """Nightly sweep: regenerate each candidate inline"""
        return await self._sweep("nightly", self.suggestion_service.generate_and_cache)

    async def _sweep(self, label: str, worker: Callable[[str], Awaitable[Any]]) -> Dict[str, Any]:
        start_time = datetime.now()
        logger.info(f"Starting {label} suggestions refresh")

        user_ids = await self.find_users_needing_refresh()

        if not user_ids:
            logger.info("No stale/no-cache users found")
            return {
                "success": True,
                "message": "No users need refresh",
                "total": 0,
                "processed": 0,
                "errors": 0,
                "batches": 0,
                "success_rate": None,
                "processing_time": 0,
            }

        logger.info(f"Refreshing suggestions for {len(user_ids)} users (first: {user_ids[:10]})")
        result = await self.run_in_batches(user_ids, worker)

        processing_time = (datetime.now() - start_time).total_seconds()
        success_rate = f"{(result['processed'] / len(user_ids)) * 100:.1f}%"

        logger.info(
            f"{label.capitalize()} refresh completed: {result['processed']}/{len(user_ids)} users, "
            f"{result['errors']} errors, {result['batches']} batches, {processing_time:.1f}s"
        )

        return {
            "success": True,
            "message": f"Refreshed {result['processed']}/{len(user_ids)} users",
            "total": len(user_ids),
            "processed": result["processed"],
            "errors": result["errors"],
            "batches": result["batches"],
            "success_rate": success_rate,
            "processing_time": processing_time,
            "failed_users": result["failed_users"][:10],
        }

    async def run_in_batches(
        self,
        user_ids: List[str],
        worker: Callable[[str], Awaitable[Any]]
    ) -> Dict[str, Any]:
        """Run `worker` per user, `batch_size` at a time, pausing between batches"""
        processed = 0
        failed_users = []
        batches = 0

        for start in range(0, len(user_ids), self.batch_size):
            batch = user_ids[start:start + self.batch_size]
            batches += 1

            outcomes = await asyncio.gather(
                *(worker(user_id) for user_id in batch),
                return_exceptions=True
            )

            for user_id, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    failed_users.append(user_id)
                    logger.error(f"Failed to refresh suggestions for user {user_id}: {str(outcome)}")
                else:
                    processed += 1
                    logger.debug(f"Refreshed suggestions for user {user_id}")

            # Pause between batches to be gentle on the inference provider
            if start + self.batch_size < len(user_ids):
                await self._sleep(self.batch_delay_seconds)

        return {
            "processed": processed,
            "errors": len(failed_users),
            "batches": batches,
            "failed_users": failed_users,
        }
