"""Team, membership and invitation data models."""
import uuid
from enum import Enum

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, UniqueConstraint
)

from crmhub.models.database import Base, utcnow, value_enum


class MemberRole(str, Enum):
    """Roles within a team."""
    ADMIN = "admin"     # Manage members and invitations, delete the team
    MEMBER = "member"   # See team companies, projects and team reviews


class InvitationStatus(str, Enum):
    """Status of team invitations. Pending is the only non-terminal state."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Team(Base):
    """A named group that can own companies and projects."""
    __tablename__ = "teams"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<Team(id={self.id}, name='{self.name}')>"


class TeamMember(Base):
    """Team membership junction table."""
    __tablename__ = "team_members"
    __table_args__ = (
        UniqueConstraint('team_id', 'user_id', name='uq_team_member'),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    team_id = Column(
        String(36), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role = Column(
        value_enum(MemberRole, "memberrole"), default=MemberRole.MEMBER, nullable=False
    )
    created_at = Column(DateTime, default=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN


class TeamInvitation(Base):
    """Pending request binding an email address to a team and a role."""
    __tablename__ = "team_invitations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    team_id = Column(
        String(36), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Invite details
    email = Column(String(255), nullable=False, index=True)
    role = Column(
        value_enum(MemberRole, "memberrole"), default=MemberRole.MEMBER, nullable=False
    )
    token = Column(String(64), nullable=False, unique=True)
    status = Column(
        value_enum(InvitationStatus, "invitationstatus"),
        default=InvitationStatus.PENDING,
        nullable=False,
    )

    # Lifecycle
    created_at = Column(DateTime, default=utcnow)
    expires_at = Column(DateTime, nullable=False)
    responded_at = Column(DateTime, nullable=True)

    @property
    def is_pending(self) -> bool:
        return self.status == InvitationStatus.PENDING

    def is_expired(self, now=None) -> bool:
        """Check if the invitation is past its expiry timestamp."""
        return (now or utcnow()) > self.expires_at

    def respond(self, accept: bool) -> None:
        """Move a pending invitation to its terminal state.

        Raises:
            ValueError: If the invitation is no longer pending.
        """
        if not self.is_pending:
            raise ValueError(f"Invitation already {self.status.value}")
        self.status = InvitationStatus.ACCEPTED if accept else InvitationStatus.DECLINED
        self.responded_at = utcnow()
