"""
Suggestion Generator

Builds prompts from a user's profile, sends them to the model chosen by the
router and parses the JSON completions into a SuggestionPayload.

The project-idea and skill-roadmap completions run concurrently, each on the
model picked for its own task type.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List

from devcollab.schemas.suggestions import DeepDiveResult, SuggestionPayload
from devcollab.services.exceptions import MalformedResponseError, ProfileNotFoundError
from devcollab.services.inference_client import GroqInferenceClient
from devcollab.services.model_router import ModelRouter, TaskType
from devcollab.services.profile_service import ProfileRepository, ProfileSnapshot

logger = logging.getLogger(__name__)

PROJECT_IDEAS_SYSTEM_PROMPT = (
    "You are a mentor for software developers. Suggest practical portfolio projects "
    "that build on the developer's current skills and stretch them a little. "
    'Respond with JSON only: {"projectIdeas": ["<title>: <one or two sentence description>", ...]} '
    "with 3 to 5 ideas."
)

SKILL_ROADMAP_SYSTEM_PROMPT = (
    "You are a career coach for software developers. Recommend the single most valuable "
    "next skill and a short learning roadmap for it. "
    'Respond with JSON only: {"skillSuggestions": "<recommended skill, why it matters, '
    'and a step by step roadmap as plain text>"}'
)

DEEP_DIVE_SYSTEM_PROMPT = (
    "You are a senior engineer giving a detailed breakdown to a developer. "
    'Respond with JSON only: {"analysis": "<detailed analysis>", "steps": ["<step>", ...]}'
)


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items) if items else "- none listed"


def build_profile_context(profile: ProfileSnapshot) -> str:
    projects = [
        f"{project['title']} ({project['description']})" if project.get("description") else project["title"]
        for project in profile.projects
    ]
    return (
        f"Skills:\n{_bullets(profile.skills)}\n\n"
        f"Projects:\n{_bullets(projects)}\n\n"
        f"Experience:\n{_bullets(profile.experience)}\n\n"
        f"Education:\n{_bullets(profile.education)}"
    )


def _load_json_object(content: str, model: str) -> Dict[str, Any]:
    try:
        data = json.loads(content)
    except (TypeError, ValueError) as e:
        raise MalformedResponseError(f"Completion from {model} is not valid JSON", model=model) from e
    if not isinstance(data, dict):
        raise MalformedResponseError(f"Completion from {model} is not a JSON object", model=model)
    return data


def _idea_to_text(idea: Any) -> str:
    if isinstance(idea, str):
        return idea.strip()
    if isinstance(idea, dict):
        title = str(idea.get("title") or "").strip()
        description = str(idea.get("description") or "").strip()
        if title and description:
            return f"{title}: {description}"
        return title or description
    return ""


def parse_project_ideas(content: str, model: str) -> List[str]:
    data = _load_json_object(content, model)
    ideas = data.get("projectIdeas", data.get("project_ideas"))
    if not isinstance(ideas, list):
        raise MalformedResponseError(f"Completion from {model} has no projectIdeas list", model=model)

    parsed = [text for text in (_idea_to_text(idea) for idea in ideas) if text]
    if not parsed:
        raise MalformedResponseError(f"Completion from {model} has no usable project ideas", model=model)
    return parsed


def parse_skill_suggestions(content: str, model: str) -> str:
    data = _load_json_object(content, model)
    suggestion = data.get("skillSuggestions", data.get("skill_suggestions"))
    if isinstance(suggestion, list):
        suggestion = "\n".join(str(line).strip() for line in suggestion if str(line).strip())
    elif isinstance(suggestion, dict):
        suggestion = "\n".join(f"{key}: {value}" for key, value in suggestion.items())

    if not isinstance(suggestion, str) or not suggestion.strip():
        raise MalformedResponseError(f"Completion from {model} has no skillSuggestions", model=model)
    return suggestion.strip()


class SuggestionGenerator:
    """Produces suggestion payloads for one user"""

    def __init__(
        self,
        profiles: ProfileRepository,
        client: GroqInferenceClient,
        router: ModelRouter,
    ):
        self.profiles = profiles
        self.client = client
        self.router = router

    async def generate(self, user_id: str) -> SuggestionPayload:
        profile = await self._load_profile(user_id)
        context = build_profile_context(profile)

        project_ideas, skill_suggestions = await asyncio.gather(
            self._project_ideas(context),
            self._skill_suggestions(context),
        )

        logger.info(f"Generated {len(project_ideas)} project ideas and a skill roadmap for user {user_id}")
        return SuggestionPayload(project_ideas=project_ideas, skill_suggestions=skill_suggestions)

    async def deep_dive(self, user_id: str, task_type: TaskType, topic: str) -> DeepDiveResult:
        """Long-form analysis of one project idea or skill; not cached"""
        task_type = TaskType(task_type)
        if task_type not in (TaskType.PROJECT_DEEP_DIVE, TaskType.SKILLS_DEEP_DIVE):
            raise ValueError(f"{task_type.value} is not a deep-dive task")

        profile = await self._load_profile(user_id)
        model = self.router.pick(task_type)
        subject = "project idea" if task_type == TaskType.PROJECT_DEEP_DIVE else "skill"

        content = await self.client.complete_json(
            model,
            [
                {"role": "system", "content": DEEP_DIVE_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f"Break down this {subject} for me: {topic}\n\n{build_profile_context(profile)}",
                },
            ],
            max_tokens=2000,
        )

        data = _load_json_object(content, model)
        analysis = data.get("analysis")
        if not isinstance(analysis, str) or not analysis.strip():
            raise MalformedResponseError(f"Completion from {model} has no analysis", model=model)
        steps = data.get("steps") if isinstance(data.get("steps"), list) else []

        return DeepDiveResult(
            kind="project" if task_type == TaskType.PROJECT_DEEP_DIVE else "skill",
            topic=topic,
            model=model,
            analysis=analysis.strip(),
            steps=[str(step).strip() for step in steps if str(step).strip()],
        )

    async def _load_profile(self, user_id: str) -> ProfileSnapshot:
        profile = await self.profiles.get_profile(user_id)
        if profile is None:
            raise ProfileNotFoundError(user_id)
        return profile

    async def _project_ideas(self, context: str) -> List[str]:
        model = self.router.pick(TaskType.PROJECT_SUGGEST)
        content = await self.client.complete_json(
            model,
            [
                {"role": "system", "content": PROJECT_IDEAS_SYSTEM_PROMPT},
                {"role": "user", "content": context},
            ],
        )
        return parse_project_ideas(content, model)

    async def _skill_suggestions(self, context: str) -> str:
        model = self.router.pick(TaskType.SKILLS_SUGGEST)
        content = await self.client.complete_json(
            model,
            [
                {"role": "system", "content": SKILL_ROADMAP_SYSTEM_PROMPT},
                {"role": "user", "content": f"My current profile:\n\n{context}"},
            ],
        )
        return parse_skill_suggestions(content, model)
