"""Schemas for the append-only lists embedded in companies and projects.

Reviews, comments and project notes are stored as JSON arrays on their
parent row. Every entry is validated through one of these models on the way
in and on the way out.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from .database import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class Review(BaseModel):
    """A 1-5 star rating with a free-text comment."""

    id: str = Field(default_factory=_new_id)
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    date: datetime = Field(default_factory=utcnow)
    is_team_review: bool = False


class Comment(BaseModel):
    """Informal discussion note on a company."""

    id: str = Field(default_factory=_new_id)
    text: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utcnow)


class Note(BaseModel):
    """Timestamped note on a project."""

    id: str = Field(default_factory=_new_id)
    text: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utcnow)


def dump_entries(entries: list[BaseModel]) -> list[dict]:
    """Serialize entries for a JSON column."""
    return [entry.model_dump(mode="json") for entry in entries]
