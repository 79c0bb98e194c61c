"""
Suggestion Cache Service

Accessors for the per-user suggestion cache table. Storage errors are
re-raised as CacheUnavailableError so callers can tell them apart from
generation failures.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import select, update, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from devcollab.core.config import settings
from devcollab.core.database import AsyncSessionLocal, dialect_insert
from devcollab.models.suggestion_cache import UserSuggestionCache
from devcollab.models.user import User
from devcollab.schemas.suggestions import SuggestionPayload
from devcollab.services.exceptions import CacheUnavailableError

logger = logging.getLogger(__name__)


class SuggestionCacheService:
    """Read, upsert and invalidate cached suggestions"""

    def __init__(
        self,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        ttl: Optional[timedelta] = None,
    ):
        self.session_factory = session_factory
        self.ttl = ttl or timedelta(hours=settings.SUGGESTION_CACHE_TTL_HOURS)

    async def get(self, user_id: str) -> Optional[UserSuggestionCache]:
        """Return the cache entry for a user, or None"""
        try:
            async with self.session_factory() as db:
                return await self._get_entry(db, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Error reading suggestion cache for user {user_id}: {str(e)}")
            raise CacheUnavailableError(str(e)) from e

    def is_fresh(self, entry: Optional[UserSuggestionCache], now: Optional[datetime] = None) -> bool:
        return entry is not None and entry.is_fresh(self.ttl, now)

    async def upsert(self, user_id: str, payload: SuggestionPayload) -> UserSuggestionCache:
        """Create or overwrite the user's entry and mark it valid"""
        now = datetime.now(timezone.utc)
        values = {
            "user_id": user_id,
            "project_ideas": list(payload.project_ideas),
            "skill_suggestions": payload.skill_suggestions,
            "is_valid": True,
            "last_generated": now,
            "updated_at": now,
        }

        try:
            async with self.session_factory() as db:
                stmt = dialect_insert(db, UserSuggestionCache).values(**values)
                upsert_stmt = stmt.on_conflict_do_update(
                    index_elements=["user_id"],
                    set_=dict(
                        project_ideas=stmt.excluded.project_ideas,
                        skill_suggestions=stmt.excluded.skill_suggestions,
                        is_valid=stmt.excluded.is_valid,
                        last_generated=stmt.excluded.last_generated,
                        updated_at=stmt.excluded.updated_at,
                    )
                )
                await db.execute(upsert_stmt)
                await db.commit()

                entry = await self._get_entry(db, user_id, populate_existing=True)
                logger.debug(f"Upserted suggestion cache for user {user_id}")
                return entry

        except SQLAlchemyError as e:
            logger.error(f"Error writing suggestion cache for user {user_id}: {str(e)}")
            raise CacheUnavailableError(str(e)) from e

    async def invalidate(self, user_id: str) -> bool:
        """Mark the entry stale, keeping its payload. Returns False when no entry exists."""
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    update(UserSuggestionCache)
                    .where(UserSuggestionCache.user_id == user_id)
                    .values(is_valid=False)
                )
                await db.commit()
                return (result.rowcount or 0) > 0

        except SQLAlchemyError as e:
            logger.error(f"Error invalidating suggestion cache for user {user_id}: {str(e)}")
            raise CacheUnavailableError(str(e)) from e

    async def find_stale_user_ids(self, now: Optional[datetime] = None) -> List[str]:
        """Users whose entry is invalid or older than the freshness window"""
        threshold = (now or datetime.now(timezone.utc)) - self.ttl
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(UserSuggestionCache.user_id).where(
                        or_(
                            UserSuggestionCache.is_valid.is_(False),
                            UserSuggestionCache.last_generated < threshold,
                        )
                    ).order_by(UserSuggestionCache.last_generated)
                )
                return [row[0] for row in result.all()]

        except SQLAlchemyError as e:
            logger.error(f"Error finding stale suggestion caches: {str(e)}")
            raise CacheUnavailableError(str(e)) from e

    async def find_active_users_without_cache(self) -> List[str]:
        """Active users that have never had suggestions generated"""
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(User.id)
                    .outerjoin(UserSuggestionCache, UserSuggestionCache.user_id == User.id)
                    .where(
                        UserSuggestionCache.user_id.is_(None),
                        User.is_active.is_(True),
                    )
                    .order_by(User.created_at)
                )
                return [row[0] for row in result.all()]

        except SQLAlchemyError as e:
            logger.error(f"Error finding users without suggestion cache: {str(e)}")
            raise CacheUnavailableError(str(e)) from e

    async def _get_entry(
        self,
        db: AsyncSession,
        user_id: str,
        populate_existing: bool = False
    ) -> Optional[UserSuggestionCache]:
        stmt = select(UserSuggestionCache).where(UserSuggestionCache.user_id == user_id)
        if populate_existing:
            stmt = stmt.execution_options(populate_existing=True)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()
