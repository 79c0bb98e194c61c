# Database models

from .user import User
from .profile import Skill, Project, Experience, Education
from .suggestion_cache import UserSuggestionCache
from .job_execution_log import JobExecutionLog

__all__ = [
    "User",
    "Skill",
    "Project",
    "Experience",
    "Education",
    "UserSuggestionCache",
    "JobExecutionLog"
]
