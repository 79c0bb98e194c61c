"""
API tests for the suggestion, profile and scheduler endpoints

Services are replaced through dependency overrides; the app lifespan does
not run, so no database or scheduler is started.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from devcollab.api.deps import (
    get_job_queue,
    get_profile_service,
    get_rate_limit_tracker,
    get_scheduler,
    get_suggestion_generator,
    get_suggestion_service,
)
from devcollab.core.job_queue import QueuedJob
from devcollab.core.security import create_access_token, get_current_user_id
from devcollab.main import app
from devcollab.schemas.suggestions import DeepDiveResult, SuggestionsResult
from devcollab.services.exceptions import CacheUnavailableError, InferenceError, ProfileNotFoundError
from devcollab.services.model_router import TaskType
from devcollab.services.profile_service import DuplicateSkillError
from devcollab.services.rate_limit_tracker import RateLimitTracker
from devcollab.services.suggestion_service import GENERATE_SUGGESTIONS_TASK

USER_ID = "user_alice"


@pytest.fixture
def suggestion_service():
    service = AsyncMock()
    service.get_suggestions.return_value = SuggestionsResult(
        project_ideas=["Chat App"], skill_suggestions="Learn Rust", from_cache=True
    )
    service.force_refresh.return_value = SuggestionsResult(
        project_ideas=["New idea"], skill_suggestions="Learn Go", from_cache=False
    )
    service.generate_and_cache.return_value = service.force_refresh.return_value
    return service


@pytest.fixture
def job_queue():
    queue = MagicMock()
    queue.enqueue = AsyncMock(
        side_effect=lambda task_id, payload: QueuedJob(task_id=task_id, payload=payload)
    )
    queue.pending_count = 0
    return queue


@pytest.fixture
def client(suggestion_service, job_queue):
    app.dependency_overrides[get_current_user_id] = lambda: USER_ID
    app.dependency_overrides[get_suggestion_service] = lambda: suggestion_service
    app.dependency_overrides[get_job_queue] = lambda: job_queue
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestSuggestionsEndpoints:

    def test_get_suggestions(self, client, suggestion_service):
        response = client.get("/api/v1/suggestions")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"] == {
            "projectIdeas": ["Chat App"],
            "skillSuggestions": "Learn Rust",
            "fromCache": True,
        }
        suggestion_service.get_suggestions.assert_awaited_once_with(USER_ID)

    def test_requires_authentication(self, suggestion_service):
        app.dependency_overrides[get_suggestion_service] = lambda: suggestion_service
        try:
            response = TestClient(app).get("/api/v1/suggestions")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 401

    def test_bearer_token_identifies_user(self, suggestion_service):
        app.dependency_overrides[get_suggestion_service] = lambda: suggestion_service
        token = create_access_token("user_bob")
        try:
            response = TestClient(app).get(
                "/api/v1/suggestions", headers={"Authorization": f"Bearer {token}"}
            )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        suggestion_service.get_suggestions.assert_awaited_once_with("user_bob")

    @pytest.mark.parametrize("error,status_code", [
        (ProfileNotFoundError(USER_ID), 404),
        (InferenceError("provider down"), 502),
        (CacheUnavailableError("db down"), 503),
        (RuntimeError("unexpected"), 500),
    ])
    def test_error_mapping(self, client, suggestion_service, error, status_code):
        suggestion_service.get_suggestions.side_effect = error

        response = client.get("/api/v1/suggestions")

        assert response.status_code == status_code

    def test_force_refresh(self, client, suggestion_service):
        response = client.post("/api/v1/suggestions", json={"force": True})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["fromCache"] is False
        assert data["queued"] is False
        suggestion_service.force_refresh.assert_awaited_once_with(USER_ID)
        suggestion_service.generate_and_cache.assert_not_awaited()

    def test_regenerate_without_force(self, client, suggestion_service):
        response = client.post("/api/v1/suggestions", json={})

        assert response.status_code == 200
        suggestion_service.generate_and_cache.assert_awaited_once_with(USER_ID)

    def test_queue_generation(self, client, job_queue):
        response = client.post("/api/v1/suggestions/queue")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["run_id"].startswith("run_")
        assert data["user_id"] == USER_ID
        job_queue.enqueue.assert_awaited_once_with(GENERATE_SUGGESTIONS_TASK, {"user_id": USER_ID})

    def test_queued_run_status_is_scoped_to_owner(self, client, job_queue):
        own = QueuedJob(task_id=GENERATE_SUGGESTIONS_TASK, payload={"user_id": USER_ID})
        other = QueuedJob(task_id=GENERATE_SUGGESTIONS_TASK, payload={"user_id": "user_bob"})
        job_queue.get_job.side_effect = {own.run_id: own, other.run_id: other}.get

        assert client.get(f"/api/v1/suggestions/queue/{own.run_id}").json()["data"]["status"] == "pending"
        assert client.get(f"/api/v1/suggestions/queue/{other.run_id}").status_code == 404
        assert client.get("/api/v1/suggestions/queue/run_missing").status_code == 404

    def test_deep_dive(self, client):
        generator = AsyncMock()
        generator.deep_dive.return_value = DeepDiveResult(
            kind="project", topic="Chat App", model="llama-3.3-70b-versatile", analysis="Plan", steps=["a"]
        )
        app.dependency_overrides[get_suggestion_generator] = lambda: generator

        response = client.post("/api/v1/suggestions/deep-dive", json={"kind": "project", "topic": "Chat App"})

        assert response.status_code == 200
        assert response.json()["data"]["model"] == "llama-3.3-70b-versatile"
        generator.deep_dive.assert_awaited_once_with(USER_ID, TaskType.PROJECT_DEEP_DIVE, "Chat App")

    def test_deep_dive_validates_kind(self, client):
        app.dependency_overrides[get_suggestion_generator] = lambda: AsyncMock()

        response = client.post("/api/v1/suggestions/deep-dive", json={"kind": "career", "topic": "x"})

        assert response.status_code == 422

    def test_services_not_initialized(self):
        app.dependency_overrides[get_current_user_id] = lambda: USER_ID
        try:
            response = TestClient(app).get("/api/v1/suggestions")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 503


class TestProfileEndpoints:

    @pytest.fixture
    def profiles(self, client):
        service = AsyncMock()
        app.dependency_overrides[get_profile_service] = lambda: service
        return service

    def test_add_skill(self, client, profiles):
        skill = MagicMock(id=1, category="language", proficiency_level="beginner", years_experience=None, last_used=None)
        skill.name = "Rust"
        profiles.add_skill.return_value = skill

        response = client.post(
            "/api/v1/profile/skills",
            json={"name": "Rust", "category": "language", "proficiency_level": "beginner"},
        )

        assert response.status_code == 201
        assert response.json()["data"]["name"] == "Rust"

    def test_duplicate_skill_conflicts(self, client, profiles):
        profiles.add_skill.side_effect = DuplicateSkillError("Skill 'Rust' already exists")

        response = client.post(
            "/api/v1/profile/skills",
            json={"name": "Rust", "category": "language", "proficiency_level": "beginner"},
        )

        assert response.status_code == 409

    def test_invalid_proficiency(self, client, profiles):
        response = client.post(
            "/api/v1/profile/skills",
            json={"name": "Rust", "category": "language", "proficiency_level": "wizard"},
        )

        assert response.status_code == 422
        profiles.add_skill.assert_not_awaited()

    def test_remove_missing_project(self, client, profiles):
        profiles.remove_project.return_value = False

        assert client.delete("/api/v1/profile/projects/42").status_code == 404
        profiles.remove_project.assert_awaited_once_with(USER_ID, 42)


class TestSchedulerEndpoints:

    @pytest.fixture
    def scheduler(self, client):
        scheduler = MagicMock()
        scheduler.get_job_status.return_value = {"status": "running", "jobs": []}
        scheduler.trigger_job = AsyncMock(return_value={"success": True, "message": "ok", "result": {"total": 2}})
        app.dependency_overrides[get_scheduler] = lambda: scheduler
        return scheduler

    def test_status(self, client, scheduler):
        response = client.get("/api/v1/scheduler/status")

        assert response.status_code == 200
        assert response.json()["data"]["system_health"] == "healthy"

    def test_trigger_nightly(self, client, scheduler):
        response = client.post("/api/v1/scheduler/trigger/nightly")

        assert response.status_code == 200
        assert response.json()["data"] == {"total": 2}
        scheduler.trigger_job.assert_awaited_once_with("nightly-refresh-suggestions")

    def test_trigger_unknown_sweep(self, client, scheduler):
        assert client.post("/api/v1/scheduler/trigger/weekly").status_code == 404
        scheduler.trigger_job.assert_not_awaited()

    def test_rate_limits(self, client):
        tracker = RateLimitTracker()
        tracker.mark_limited("gemma2-9b-it")
        app.dependency_overrides[get_rate_limit_tracker] = lambda: tracker

        response = client.get("/api/v1/scheduler/rate-limits")

        assert response.status_code == 200
        assert response.json()["data"]["gemma2-9b-it"]["last_limited_at"] is not None


class TestHealth:

    def test_health(self):
        response = TestClient(app).get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
