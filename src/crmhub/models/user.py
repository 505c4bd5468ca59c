"""Profile and license models.

Profiles mirror the Supabase Auth users; licenses gate product features
and are never consulted for data access.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base, JSONList, utcnow, value_enum


class LicenseType(str, Enum):
    """Subscription tiers."""

    FREE = "free"
    BASIC = "basic"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


class Profile(Base):
    """User profile, keyed by the Supabase Auth user id."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), index=True, nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, email='{self.email}')>"


class UserLicense(Base):
    """Per-user subscription record."""

    __tablename__ = "user_licenses"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"),
        index=True,
    )
    team_id: Mapped[str | None] = mapped_column(
        ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
    )
    license_type: Mapped[LicenseType] = mapped_column(
        value_enum(LicenseType, "license_type"),
        default=LicenseType.FREE,
    )
    features: Mapped[list[Any]] = mapped_column(JSONList, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    starts_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    def grants(self, feature: str, now: datetime | None = None) -> bool:
        """Feature is listed, the license is active and not expired."""
        now = now or utcnow()
        not_expired = self.expires_at is None or self.expires_at > now
        return feature in (self.features or []) and bool(self.is_active) and not_expired

    def __repr__(self) -> str:
        return f"<UserLicense(user_id={self.user_id}, type='{self.license_type}')>"
