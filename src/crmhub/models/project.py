"""Project and project-company association models."""
import uuid

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, UniqueConstraint
)

from crmhub.models.database import Base, JSONList, utcnow
from crmhub.models.entries import Note


class Project(Base):
    """Named container of companies, optionally shared with a team."""
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    created_by = Column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=True, index=True
    )
    team_id = Column(
        String(36), ForeignKey("teams.id", ondelete="SET NULL"), nullable=True, index=True
    )
    notes = Column(JSONList, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow)

    def note_entries(self) -> list[Note]:
        return [Note.model_validate(n) for n in (self.notes or [])]

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name='{self.name}')>"


class ProjectCompany(Base):
    """Project <-> company junction table."""
    __tablename__ = "project_companies"
    __table_args__ = (
        UniqueConstraint('project_id', 'company_id', name='uq_project_company'),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id = Column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    company_id = Column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime, default=utcnow)
