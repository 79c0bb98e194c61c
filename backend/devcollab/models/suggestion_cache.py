"""
Suggestion Cache Model

One row per user holding the last generated project ideas and skill
roadmap. The payload is kept when the row is invalidated so a reader
never sees "no data" once a generation has succeeded.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, String, DateTime, Boolean, Text, ForeignKey, Index, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from devcollab.core.database import Base


class UserSuggestionCache(Base):
    """Cached AI suggestions per user"""
    __tablename__ = "user_suggestion_cache"

    # Primary key is user_id (one record per user)
    user_id = Column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True
    )

    project_ideas = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list)
    skill_suggestions = Column(Text, nullable=False, default="")

    # Freshness tracking
    is_valid = Column(Boolean, nullable=False, default=True)
    last_generated = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="suggestion_cache")

    __table_args__ = (
        Index("idx_suggestion_cache_valid", "is_valid"),
        Index("idx_suggestion_cache_last_generated", "last_generated"),
    )

    def __repr__(self):
        return f"<UserSuggestionCache(user_id='{self.user_id}', valid={self.is_valid}, last_generated={self.last_generated})>"

    @property
    def generated_at(self) -> datetime:
        """last_generated as an aware UTC datetime (SQLite drops tzinfo)"""
        value = self.last_generated
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value

    def is_fresh(self, ttl: timedelta, now: datetime = None) -> bool:
        """Valid and generated within the freshness window"""
        if not self.is_valid or self.last_generated is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now - self.generated_at < ttl

    @property
    def cache_summary(self) -> dict:
        return {
            "user_id": self.user_id,
            "is_valid": self.is_valid,
            "last_generated": self.generated_at.isoformat() if self.last_generated else None,
            "project_ideas_count": len(self.project_ideas or []),
        }
