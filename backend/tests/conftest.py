"""
Pytest configuration and fixtures for the suggestion pipeline tests

Provides an in-memory SQLite database, seeded profile data and fakes for
the inference client and job queue.
"""

import os
import sys
import inspect
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("GROQ_API_KEY", "test-groq-key")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

# Add the backend directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from devcollab.core.database import Base
from devcollab.core.job_queue import QueuedJob
from devcollab.models import User, Skill, Project, Experience, Education, UserSuggestionCache


@pytest.fixture
async def db_engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


async def create_user(session_factory, user_id: str, is_active: bool = True, skills=(), projects=()):
    """Insert a user with optional skills and projects"""
    async with session_factory() as db:
        db.add(User(id=user_id, email=f"{user_id}@example.com", display_name=user_id.title(), is_active=is_active))
        for name in skills:
            db.add(Skill(user_id=user_id, name=name, category="language", proficiency_level="intermediate"))
        for title, description in projects:
            db.add(Project(owner_id=user_id, title=title, description=description, tech_stack=[]))
        await db.commit()


async def create_cache_entry(session_factory, user_id: str, age: timedelta = timedelta(0), is_valid: bool = True,
                             project_ideas=("Old idea",), skill_suggestions="Old roadmap"):
    """Insert a cache row generated `age` ago"""
    async with session_factory() as db:
        db.add(UserSuggestionCache(
            user_id=user_id,
            project_ideas=list(project_ideas),
            skill_suggestions=skill_suggestions,
            is_valid=is_valid,
            last_generated=datetime.now(timezone.utc) - age,
        ))
        await db.commit()


@pytest.fixture
async def seeded_user(session_factory):
    """An active user with a couple of skills, a project, experience and education"""
    await create_user(
        session_factory,
        "user_alice",
        skills=["Python", "SQL"],
        projects=[("Budget Tracker", "Personal finance dashboard")],
    )
    async with session_factory() as db:
        db.add(Experience(user_id="user_alice", title="Backend Engineer", company="Acme", description="APIs"))
        db.add(Education(user_id="user_alice", institution="State University", degree="BSc", field_of_study="CS"))
        await db.commit()
    return "user_alice"


class FakeInferenceClient:
    """Returns canned JSON per system prompt and records each call"""

    def __init__(self, project_ideas=None, skill_suggestions="Learn Rust: start with the book, then build a CLI"):
        self.calls: List[Dict[str, Any]] = []
        self.project_ideas = project_ideas or ["Realtime Chat: websockets and presence", "CLI Budget: parse bank CSVs"]
        self.skill_suggestions = skill_suggestions
        self.error = None

    async def complete_json(self, model, messages, temperature=None, max_tokens=None):
        self.calls.append({"model": model, "messages": messages})
        if self.error:
            raise self.error
        system = messages[0]["content"]
        if "projectIdeas" in system:
            return json.dumps({"projectIdeas": self.project_ideas})
        if "skillSuggestions" in system:
            return json.dumps({"skillSuggestions": self.skill_suggestions})
        return json.dumps({"analysis": "Detailed plan", "steps": ["Design", "Build", "Ship"]})

    async def aclose(self):
        pass


class RecordingQueue:
    """JobEnqueuer that only records what was enqueued"""

    def __init__(self, fail: bool = False):
        self.enqueued: List[QueuedJob] = []
        self.fail = fail

    async def enqueue(self, task_id, payload):
        if self.fail:
            raise RuntimeError("queue unavailable")
        job = QueuedJob(task_id=task_id, payload=dict(payload))
        self.enqueued.append(job)
        return job


@pytest.fixture
def fake_inference():
    return FakeInferenceClient()


@pytest.fixture
def recording_queue():
    return RecordingQueue()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest settings"""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically"""
    for item in items:
        if inspect.iscoroutinefunction(getattr(item, "function", None)):
            item.add_marker(pytest.mark.asyncio)

        if 'integration' in item.nodeid.lower():
            item.add_marker(pytest.mark.integration)
