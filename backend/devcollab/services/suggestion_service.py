"""
Suggestion Service

Read-through access to a user's suggestions:

1. A fresh cache entry (valid and younger than the freshness window) is
   returned as-is with fromCache=True.
2. Otherwise suggestions are generated synchronously, upserted and returned
   with fromCache=False.

Generation failures propagate to the caller. The read path never falls back
to an outdated payload, so a result marked as current is always current.
"""

import logging
from typing import Any, Dict

from devcollab.schemas.suggestions import SuggestionsResult
from devcollab.services.suggestion_cache_service import SuggestionCacheService
from devcollab.services.suggestion_generator import SuggestionGenerator

logger = logging.getLogger(__name__)

GENERATE_SUGGESTIONS_TASK = "generate-user-suggestions"


class SuggestionService:
    """Cache-first suggestion reads and regeneration"""

    def __init__(self, cache: SuggestionCacheService, generator: SuggestionGenerator):
        self.cache = cache
        self.generator = generator

    async def get_suggestions(self, user_id: str) -> SuggestionsResult:
        entry = await self.cache.get(user_id)
        if self.cache.is_fresh(entry):
            logger.debug(f"Serving cached suggestions for user {user_id}")
            return SuggestionsResult(
                project_ideas=list(entry.project_ideas or []),
                skill_suggestions=entry.skill_suggestions or "",
                from_cache=True,
            )

        reason = "missing" if entry is None else "stale"
        logger.info(f"Suggestion cache {reason} for user {user_id}, generating synchronously")
        return await self.generate_and_cache(user_id)

    async def force_refresh(self, user_id: str) -> SuggestionsResult:
        """Invalidate, then regenerate regardless of freshness"""
        await self.cache.invalidate(user_id)
        return await self.generate_and_cache(user_id)

    async def generate_and_cache(self, user_id: str) -> SuggestionsResult:
        payload = await self.generator.generate(user_id)
        entry = await self.cache.upsert(user_id, payload)
        return SuggestionsResult(
            project_ideas=list(entry.project_ideas or []),
            skill_suggestions=entry.skill_suggestions or "",
            from_cache=False,
        )

    async def run_generation_job(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Job handler for GENERATE_SUGGESTIONS_TASK"""
        user_id = str(payload["user_id"])
        logger.info(f"Starting suggestion generation job for user {user_id}")

        result = await self.generate_and_cache(user_id)

        logger.info(
            f"Suggestions generated & cached for user {user_id}: "
            f"{len(result.project_ideas)} project ideas"
        )
        return {
            "ok": True,
            "user_id": user_id,
            "project_ideas_count": len(result.project_ideas),
        }
