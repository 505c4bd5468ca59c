"""Company and personal-repository models."""
import uuid
from dataclasses import dataclass
from typing import Union

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Text, UniqueConstraint
)

from crmhub.models.database import Base, JSONList, utcnow
from crmhub.models.entries import Comment, Review


@dataclass(frozen=True)
class Unlinked:
    """Company has no owning team."""


@dataclass(frozen=True)
class LinkedTo:
    """Company is owned by a team."""
    team_id: str


TeamLink = Union[Unlinked, LinkedTo]


class Company(Base):
    """A business record. Public while unlinked, team-owned once linked."""
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Descriptive fields
    name = Column(String(255), nullable=False, index=True)
    industry = Column(Text, nullable=True)
    sales_volume = Column(String(100), nullable=True)
    growth = Column(String(100), nullable=True)
    website = Column(String(500), nullable=True)
    phone_number = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    review = Column(Text, nullable=True)  # free-text summary, not a rating
    notes = Column(Text, nullable=True)

    # Ownership
    created_by = Column(
        String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    team_id = Column(
        String(36), ForeignKey("teams.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    # Embedded append-only lists
    reviews = Column(JSONList, nullable=False, default=list)
    team_reviews = Column(JSONList, nullable=False, default=list)
    comments = Column(JSONList, nullable=False, default=list)

    created_at = Column(DateTime, default=utcnow)

    @property
    def team_link(self) -> TeamLink:
        if self.team_id is None:
            return Unlinked()
        return LinkedTo(self.team_id)

    def link_to(self, team_id: str) -> None:
        """Apply the only legal team transition, Unlinked -> LinkedTo.

        Raises:
            ValueError: If the company is already linked to a team.
        """
        if isinstance(self.team_link, LinkedTo):
            raise ValueError(f"Company {self.id} is already linked to a team")
        self.team_id = team_id

    def public_review_entries(self) -> list[Review]:
        return [Review.model_validate(r) for r in (self.reviews or [])]

    def team_review_entries(self) -> list[Review]:
        return [Review.model_validate(r) for r in (self.team_reviews or [])]

    def comment_entries(self) -> list[Comment]:
        return [Comment.model_validate(c) for c in (self.comments or [])]

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name='{self.name}')>"


class CompanyRepositoryEntry(Base):
    """User X has added company Y to their personal repository."""
    __tablename__ = "company_repositories"
    __table_args__ = (
        UniqueConstraint('company_id', 'user_id', name='uq_company_repository'),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(
        String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime, default=utcnow)
