"""
Model Router

Chooses the inference model for a task type. Each task type has an ordered
chain: cheaper/faster models first, heavier fallbacks after. Models the
rate limit tracker flags are skipped; when every model is flagged the
primary is used anyway.
"""

import logging
from enum import Enum
from typing import Dict, List, Mapping, Sequence

from devcollab.services.rate_limit_tracker import RateLimitTracker

logger = logging.getLogger(__name__)


class TaskType(str, Enum):
    PROJECT_SUGGEST = "project_suggest"
    SKILLS_SUGGEST = "skills_suggest"
    PROJECT_DEEP_DIVE = "project_deep_dive"
    SKILLS_DEEP_DIVE = "skills_deep_dive"


MODEL_CHAINS: Dict[TaskType, List[str]] = {
    TaskType.PROJECT_SUGGEST: [
        "gemma2-9b-it",
        "llama-3.1-8b-instant",
        "qwen/qwen3-32b",
    ],
    TaskType.SKILLS_SUGGEST: [
        "llama-3.1-8b-instant",
        "gemma2-9b-it",
        "qwen/qwen3-32b",
    ],
    TaskType.PROJECT_DEEP_DIVE: [
        "llama-3.3-70b-versatile",
        "moonshotai/kimi-k2-instruct",
        "deepseek-r1-distill-llama-70b",
        "openai/gpt-oss-120b",
    ],
    TaskType.SKILLS_DEEP_DIVE: [
        "moonshotai/kimi-k2-instruct",
        "llama-3.3-70b-versatile",
        "qwen/qwen3-32b",
        "openai/gpt-oss-20b",
    ],
}


class ModelRouter:
    """Picks a model per task type using rate limit headroom"""

    def __init__(self, tracker: RateLimitTracker, chains: Mapping[TaskType, Sequence[str]] = None):
        chains = MODEL_CHAINS if chains is None else chains
        missing = [task.value for task in TaskType if not chains.get(task)]
        if missing:
            raise ValueError(f"No model chain configured for task types: {', '.join(missing)}")

        self.tracker = tracker
        self._chains = {task: list(chains[task]) for task in TaskType}

    def chain(self, task_type: TaskType) -> List[str]:
        return list(self._chains[TaskType(task_type)])

    def pick(self, task_type: TaskType) -> str:
        task_type = TaskType(task_type)
        chain = self._chains[task_type]
        for model in chain:
            if not self.tracker.should_switch(model):
                if model != chain[0]:
                    logger.info(f"Routing {task_type.value} to fallback model {model}")
                return model

        logger.warning(f"All models for {task_type.value} are constrained; using primary {chain[0]}")
        return chain[0]
