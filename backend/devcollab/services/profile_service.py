"""
Profile Service

Reads the profile data used to build suggestion prompts and performs the
skill/project writes that make cached suggestions outdated. After a write
commits, every registered mutation hook is notified; hook failures are
logged and never fail the write.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Protocol, Sequence

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import selectinload

from devcollab.core.database import AsyncSessionLocal
from devcollab.models.profile import Skill, Project
from devcollab.models.user import User
from devcollab.schemas.profile import SkillCreate, SkillUpdate, ProjectCreate, ProjectUpdate

logger = logging.getLogger(__name__)


class ProfileAspect(str, Enum):
    SKILLS = "skills"
    PROJECTS = "projects"


class ProfileMutationHook(Protocol):
    async def on_profile_mutated(self, user_id: str, aspect: ProfileAspect) -> None:
        ...


class DuplicateSkillError(Exception):
    """The user already lists a skill with this name"""


@dataclass
class ProfileSnapshot:
    """Everything the suggestion prompts need about one user"""
    user_id: str
    display_name: Optional[str] = None
    skills: List[str] = field(default_factory=list)
    projects: List[Dict[str, str]] = field(default_factory=list)
    experience: List[str] = field(default_factory=list)
    education: List[str] = field(default_factory=list)


class ProfileRepository:
    """Read access to profile data"""

    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self.session_factory = session_factory

    async def get_profile(self, user_id: str) -> Optional[ProfileSnapshot]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(User)
                .where(User.id == user_id)
                .options(
                    selectinload(User.skills),
                    selectinload(User.owned_projects),
                    selectinload(User.experiences),
                    selectinload(User.educations),
                )
            )
            user = result.scalar_one_or_none()
            if user is None:
                return None

            return ProfileSnapshot(
                user_id=user.id,
                display_name=user.display_name,
                skills=[skill.name for skill in user.skills],
                projects=[
                    {"title": project.title, "description": project.description or ""}
                    for project in user.owned_projects
                ],
                experience=[
                    f"{exp.title} at {exp.company}" + (f": {exp.description}" if exp.description else "")
                    for exp in user.experiences
                ],
                education=[
                    ", ".join(part for part in (edu.degree, edu.field_of_study, edu.institution) if part)
                    for edu in user.educations
                ],
            )


class ProfileService:
    """Skill and project writes with post-commit mutation hooks"""

    def __init__(
        self,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        hooks: Sequence[ProfileMutationHook] = (),
    ):
        self.session_factory = session_factory
        self.hooks = list(hooks)

    def add_hook(self, hook: ProfileMutationHook):
        self.hooks.append(hook)

    async def list_skills(self, user_id: str) -> List[Skill]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Skill).where(Skill.user_id == user_id).order_by(Skill.updated_at.desc())
            )
            return list(result.scalars().all())

    async def add_skill(self, user_id: str, data: SkillCreate) -> Skill:
        async with self.session_factory() as db:
            skill = Skill(user_id=user_id, **data.model_dump())
            db.add(skill)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise DuplicateSkillError(f"Skill '{data.name}' already exists") from e
            await db.refresh(skill)

        await self._notify(user_id, ProfileAspect.SKILLS)
        return skill

    async def update_skill(self, user_id: str, skill_id: int, data: SkillUpdate) -> Optional[Skill]:
        async with self.session_factory() as db:
            skill = await self._owned(db, Skill, skill_id, Skill.user_id, user_id)
            if skill is None:
                return None
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(skill, key, value)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise DuplicateSkillError(f"Skill '{data.name}' already exists") from e
            await db.refresh(skill)

        await self._notify(user_id, ProfileAspect.SKILLS)
        return skill

    async def remove_skill(self, user_id: str, skill_id: int) -> bool:
        async with self.session_factory() as db:
            result = await db.execute(
                delete(Skill).where(Skill.id == skill_id, Skill.user_id == user_id)
            )
            await db.commit()
            if not result.rowcount:
                return False

        await self._notify(user_id, ProfileAspect.SKILLS)
        return True

    async def list_projects(self, user_id: str) -> List[Project]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Project).where(Project.owner_id == user_id).order_by(Project.created_at.desc())
            )
            return list(result.scalars().all())

    async def add_project(self, user_id: str, data: ProjectCreate) -> Project:
        async with self.session_factory() as db:
            project = Project(owner_id=user_id, **data.model_dump())
            db.add(project)
            await db.commit()
            await db.refresh(project)

        await self._notify(user_id, ProfileAspect.PROJECTS)
        return project

    async def update_project(self, user_id: str, project_id: int, data: ProjectUpdate) -> Optional[Project]:
        async with self.session_factory() as db:
            project = await self._owned(db, Project, project_id, Project.owner_id, user_id)
            if project is None:
                return None
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(project, key, value)
            await db.commit()
            await db.refresh(project)

        await self._notify(user_id, ProfileAspect.PROJECTS)
        return project

    async def remove_project(self, user_id: str, project_id: int) -> bool:
        async with self.session_factory() as db:
            result = await db.execute(
                delete(Project).where(Project.id == project_id, Project.owner_id == user_id)
            )
            await db.commit()
            if not result.rowcount:
                return False

        await self._notify(user_id, ProfileAspect.PROJECTS)
        return True

    async def _owned(self, db, model, row_id, owner_column, user_id):
        result = await db.execute(select(model).where(model.id == row_id, owner_column == user_id))
        return result.scalar_one_or_none()

    async def _notify(self, user_id: str, aspect: ProfileAspect):
        for hook in self.hooks:
            try:
                await hook.on_profile_mutated(user_id, aspect)
            except Exception as e:
                logger.error(
                    f"Profile mutation hook {type(hook).__name__} failed for user {user_id}: {str(e)}",
                    exc_info=True
                )
