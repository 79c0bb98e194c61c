"""
Tests for the cache-first suggestion read path
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from devcollab.schemas.suggestions import SuggestionPayload
from devcollab.services.exceptions import InferenceError, ProfileNotFoundError
from devcollab.services.suggestion_cache_service import SuggestionCacheService
from devcollab.services.suggestion_service import SuggestionService
from conftest import create_cache_entry


@pytest.fixture
def cache(session_factory):
    return SuggestionCacheService(session_factory, ttl=timedelta(hours=24))


@pytest.fixture
def generator():
    mock = AsyncMock()
    mock.generate.return_value = SuggestionPayload(
        project_ideas=["Fresh idea"],
        skill_suggestions="Fresh roadmap",
    )
    return mock


@pytest.fixture
def service(cache, generator):
    return SuggestionService(cache, generator)


class TestSuggestionService:

    async def test_fresh_cache_is_served_without_generation(self, service, generator, session_factory, seeded_user):
        await create_cache_entry(session_factory, seeded_user, age=timedelta(hours=1),
                                 project_ideas=["Cached idea"], skill_suggestions="Cached roadmap")

        result = await service.get_suggestions(seeded_user)

        assert result.from_cache is True
        assert result.project_ideas == ["Cached idea"]
        assert result.model_dump(by_alias=True) == {
            "projectIdeas": ["Cached idea"],
            "skillSuggestions": "Cached roadmap",
            "fromCache": True,
        }
        generator.generate.assert_not_awaited()

    async def test_missing_cache_generates_and_stores(self, service, cache, generator, seeded_user):
        result = await service.get_suggestions(seeded_user)

        assert result.from_cache is False
        assert result.project_ideas == ["Fresh idea"]
        generator.generate.assert_awaited_once_with(seeded_user)

        entry = await cache.get(seeded_user)
        assert entry.is_valid is True
        assert entry.project_ideas == ["Fresh idea"]

    async def test_expired_cache_is_regenerated(self, service, generator, session_factory, seeded_user):
        await create_cache_entry(session_factory, seeded_user, age=timedelta(hours=25))

        result = await service.get_suggestions(seeded_user)

        assert result.from_cache is False
        generator.generate.assert_awaited_once()

    async def test_invalidated_cache_is_regenerated(self, service, generator, session_factory, seeded_user):
        await create_cache_entry(session_factory, seeded_user, age=timedelta(minutes=1), is_valid=False)

        result = await service.get_suggestions(seeded_user)

        assert result.from_cache is False
        assert result.skill_suggestions == "Fresh roadmap"

    async def test_second_read_hits_the_cache(self, service, generator, seeded_user):
        first = await service.get_suggestions(seeded_user)
        second = await service.get_suggestions(seeded_user)

        assert first.from_cache is False
        assert second.from_cache is True
        assert generator.generate.await_count == 1

    async def test_force_refresh_ignores_fresh_cache(self, service, generator, session_factory, seeded_user):
        await create_cache_entry(session_factory, seeded_user, age=timedelta(minutes=5))

        result = await service.force_refresh(seeded_user)

        assert result.from_cache is False
        assert result.project_ideas == ["Fresh idea"]
        generator.generate.assert_awaited_once_with(seeded_user)

    async def test_generation_failure_does_not_fall_back_to_stale_payload(
        self, service, cache, generator, session_factory, seeded_user
    ):
        await create_cache_entry(session_factory, seeded_user, age=timedelta(hours=30),
                                 project_ideas=["Stale idea"])
        generator.generate.side_effect = InferenceError("provider down")

        with pytest.raises(InferenceError):
            await service.get_suggestions(seeded_user)

        entry = await cache.get(seeded_user)
        assert entry.project_ideas == ["Stale idea"]

    async def test_run_generation_job(self, service, seeded_user):
        result = await service.run_generation_job({"user_id": seeded_user})

        assert result == {"ok": True, "user_id": seeded_user, "project_ideas_count": 1}

    async def test_run_generation_job_for_missing_user(self, service, generator):
        generator.generate.side_effect = ProfileNotFoundError("ghost")

        with pytest.raises(ProfileNotFoundError):
            await service.run_generation_job({"user_id": "ghost"})
