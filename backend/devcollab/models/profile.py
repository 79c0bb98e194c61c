"""
Profile models

Skills, owned projects, experience and education rows that feed the
suggestion prompts. Writes to skills and projects invalidate the user's
suggestion cache.
"""

from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Text, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from devcollab.core.database import Base


class Skill(Base):
    """A skill listed on a user's profile"""
    __tablename__ = "skills"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    name = Column(String(100), nullable=False)
    category = Column(String(50), nullable=False)
    proficiency_level = Column(String(20), nullable=False)  # beginner/intermediate/advanced/expert
    years_experience = Column(Integer, nullable=True)
    last_used = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="skills")

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_skill_user_name"),
    )

    def __repr__(self):
        return f"<Skill(user_id='{self.user_id}', name='{self.name}', level='{self.proficiency_level}')>"


class Project(Base):
    """A project owned by a user"""
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    tech_stack = Column(JSON, nullable=False, default=list)
    repository_url = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="owned_projects")

    def __repr__(self):
        return f"<Project(id={self.id}, owner_id='{self.owner_id}', title='{self.title}')>"


class Experience(Base):
    """Work experience entry"""
    __tablename__ = "experiences"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    title = Column(String(200), nullable=False)
    company = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="experiences")


class Education(Base):
    """Education entry"""
    __tablename__ = "educations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    institution = Column(String(200), nullable=False)
    degree = Column(String(200), nullable=True)
    field_of_study = Column(String(200), nullable=True)

    user = relationship("User", back_populates="educations")
