"""
Profile API Endpoints

Skill and project writes for the authenticated user. Each successful write
invalidates the user's suggestion cache and queues regeneration.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status

from devcollab.api.deps import get_profile_service
from devcollab.core.security import get_current_user_id
from devcollab.models.profile import Project, Skill
from devcollab.schemas.common import DataResponse, ErrorResponse
from devcollab.schemas.profile import ProjectCreate, ProjectUpdate, SkillCreate, SkillUpdate
from devcollab.services.profile_service import DuplicateSkillError, ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


def _skill_dict(skill: Skill) -> dict:
    return {
        "id": skill.id,
        "name": skill.name,
        "category": skill.category,
        "proficiency_level": skill.proficiency_level,
        "years_experience": skill.years_experience,
        "last_used": skill.last_used.isoformat() if skill.last_used else None,
    }


def _project_dict(project: Project) -> dict:
    return {
        "id": project.id,
        "title": project.title,
        "description": project.description,
        "tech_stack": project.tech_stack or [],
        "repository_url": project.repository_url,
    }


@router.get("/skills", response_model=DataResponse)
async def list_skills(
    current_user_id: str = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service)
):
    """List all skills for the authenticated user"""
    skills = await profiles.list_skills(current_user_id)
    return DataResponse(data=[_skill_dict(skill) for skill in skills])


@router.post(
    "/skills",
    response_model=DataResponse,
    status_code=http_status.HTTP_201_CREATED,
    responses={409: {"description": "Skill already exists", "model": ErrorResponse}}
)
async def add_skill(
    request: SkillCreate,
    current_user_id: str = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Add a new skill"""
    try:
        skill = await profiles.add_skill(current_user_id, request)
        return DataResponse(data=_skill_dict(skill))
    except DuplicateSkillError as e:
        raise HTTPException(status_code=http_status.HTTP_409_CONFLICT, detail=str(e))


@router.put(
    "/skills/{skill_id}",
    response_model=DataResponse,
    responses={404: {"description": "Skill not found", "model": ErrorResponse}}
)
async def update_skill(
    skill_id: int,
    request: SkillUpdate,
    current_user_id: str = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Update an existing skill owned by the user"""
    try:
        skill = await profiles.update_skill(current_user_id, skill_id, request)
    except DuplicateSkillError as e:
        raise HTTPException(status_code=http_status.HTTP_409_CONFLICT, detail=str(e))
    if skill is None:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail="Skill not found")
    return DataResponse(data=_skill_dict(skill))


@router.delete(
    "/skills/{skill_id}",
    response_model=DataResponse,
    responses={404: {"description": "Skill not found", "model": ErrorResponse}}
)
async def remove_skill(
    skill_id: int,
    current_user_id: str = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Remove a skill"""
    if not await profiles.remove_skill(current_user_id, skill_id):
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail="Skill not found")
    return DataResponse(data={"deleted": skill_id})


@router.get("/projects", response_model=DataResponse)
async def list_projects(
    current_user_id: str = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service)
):
    """List projects owned by the authenticated user"""
    projects = await profiles.list_projects(current_user_id)
    return DataResponse(data=[_project_dict(project) for project in projects])


@router.post("/projects", response_model=DataResponse, status_code=http_status.HTTP_201_CREATED)
async def add_project(
    request: ProjectCreate,
    current_user_id: str = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Create a project"""
    project = await profiles.add_project(current_user_id, request)
    return DataResponse(data=_project_dict(project))


@router.put(
    "/projects/{project_id}",
    response_model=DataResponse,
    responses={404: {"description": "Project not found", "model": ErrorResponse}}
)
async def update_project(
    project_id: int,
    request: ProjectUpdate,
    current_user_id: str = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Update a project owned by the user"""
    project = await profiles.update_project(current_user_id, project_id, request)
    if project is None:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail="Project not found")
    return DataResponse(data=_project_dict(project))


@router.delete(
    "/projects/{project_id}",
    response_model=DataResponse,
    responses={404: {"description": "Project not found", "model": ErrorResponse}}
)
async def remove_project(
    project_id: int,
    current_user_id: str = Depends(get_current_user_id),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Delete a project"""
    if not await profiles.remove_project(current_user_id, project_id):
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail="Project not found")
    return DataResponse(data={"deleted": project_id})
