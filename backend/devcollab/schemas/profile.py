"""
Profile request schemas
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class SkillCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    category: str = Field(..., min_length=1, max_length=50)
    proficiency_level: str = Field(..., pattern="^(beginner|intermediate|advanced|expert)$")
    years_experience: Optional[int] = Field(default=None, ge=0)
    last_used: Optional[datetime] = None


class SkillUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    category: Optional[str] = Field(default=None, min_length=1, max_length=50)
    proficiency_level: Optional[str] = Field(default=None, pattern="^(beginner|intermediate|advanced|expert)$")
    years_experience: Optional[int] = Field(default=None, ge=0)
    last_used: Optional[datetime] = None


class ProjectCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    tech_stack: List[str] = Field(default_factory=list)
    repository_url: Optional[str] = None


class ProjectUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    tech_stack: Optional[List[str]] = None
    repository_url: Optional[str] = None
