"""
Suggestion schemas
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from devcollab.services.model_router import TaskType


class SuggestionPayload(BaseModel):
    """Generated project ideas and skill roadmap"""
    model_config = ConfigDict(populate_by_name=True)

    project_ideas: List[str] = Field(default_factory=list, alias="projectIdeas")
    skill_suggestions: str = Field(default="", alias="skillSuggestions")


class SuggestionsResult(SuggestionPayload):
    """Payload as returned to callers, with cache provenance"""
    from_cache: bool = Field(..., alias="fromCache")


class RefreshRequest(BaseModel):
    """Body of POST /suggestions"""
    force: bool = Field(default=False)


class DeepDiveRequest(BaseModel):
    """Request a long-form analysis of a project idea or skill"""
    kind: str = Field(..., pattern="^(project|skill)$")
    topic: str = Field(..., min_length=1, max_length=500)

    @property
    def task_type(self) -> TaskType:
        return TaskType.PROJECT_DEEP_DIVE if self.kind == "project" else TaskType.SKILLS_DEEP_DIVE


class DeepDiveResult(BaseModel):
    kind: str
    topic: str
    model: str
    analysis: str
    steps: List[str] = Field(default_factory=list)


class QueuedGeneration(BaseModel):
    run_id: str
    status: str
    user_id: str
    message: Optional[str] = None
