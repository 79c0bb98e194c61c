"""
Tests for task-type model selection
"""

import pytest

from devcollab.services.model_router import MODEL_CHAINS, ModelRouter, TaskType
from devcollab.services.rate_limit_tracker import RateLimitTracker


class TestModelRouter:

    def setup_method(self):
        self.tracker = RateLimitTracker(headroom_threshold=0.15, cooldown_seconds=300)
        self.router = ModelRouter(self.tracker)

    def test_every_task_type_has_a_chain(self):
        for task_type in TaskType:
            assert len(MODEL_CHAINS[task_type]) >= 2

    def test_healthy_primary_is_picked(self):
        assert self.router.pick(TaskType.PROJECT_SUGGEST) == "gemma2-9b-it"
        assert self.router.pick(TaskType.SKILLS_SUGGEST) == "llama-3.1-8b-instant"

    def test_accepts_task_type_value(self):
        assert self.router.pick("skills_deep_dive") == MODEL_CHAINS[TaskType.SKILLS_DEEP_DIVE][0]

    def test_primary_with_one_percent_token_headroom_routes_to_next(self):
        self.tracker.record("gemma2-9b-it", {
            "x-ratelimit-limit-tokens": "15000",
            "x-ratelimit-remaining-tokens": "150",
        })

        assert self.router.pick(TaskType.PROJECT_SUGGEST) == "llama-3.1-8b-instant"

    def test_recently_limited_models_are_skipped(self):
        self.tracker.mark_limited("gemma2-9b-it")
        self.tracker.mark_limited("llama-3.1-8b-instant")

        assert self.router.pick(TaskType.PROJECT_SUGGEST) == "qwen/qwen3-32b"

    def test_all_models_flagged_returns_primary(self):
        for model in MODEL_CHAINS[TaskType.PROJECT_DEEP_DIVE]:
            self.tracker.mark_limited(model)

        assert self.router.pick(TaskType.PROJECT_DEEP_DIVE) == "llama-3.3-70b-versatile"

    def test_flags_are_per_model_not_per_task(self):
        self.tracker.mark_limited("llama-3.1-8b-instant")

        assert self.router.pick(TaskType.PROJECT_SUGGEST) == "gemma2-9b-it"
        assert self.router.pick(TaskType.SKILLS_SUGGEST) == "gemma2-9b-it"

    def test_chain_returns_a_copy(self):
        chain = self.router.chain(TaskType.PROJECT_SUGGEST)
        chain.clear()

        assert self.router.chain(TaskType.PROJECT_SUGGEST) == MODEL_CHAINS[TaskType.PROJECT_SUGGEST]

    def test_missing_chain_is_a_configuration_error(self):
        chains = dict(MODEL_CHAINS)
        chains[TaskType.SKILLS_DEEP_DIVE] = []

        with pytest.raises(ValueError, match="skills_deep_dive"):
            ModelRouter(self.tracker, chains=chains)

    def test_unknown_task_type_raises(self):
        with pytest.raises(ValueError):
            self.router.pick("summarize")
