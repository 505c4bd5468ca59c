"""Team management service.

Provides business logic for team operations:
- Team CRUD (creator becomes admin)
- Member management
- Invitation flow: pending -> accepted | declined, nothing after that
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.core.config import get_settings
from crmhub.models.company import Company
from crmhub.models.database import utcnow
from crmhub.models.project import Project
from crmhub.models.team import (
    InvitationStatus,
    MemberRole,
    Team,
    TeamInvitation,
    TeamMember,
)
from crmhub.models.user import Profile
from crmhub.services.access_policy import (
    Actor,
    Memberships,
    can_manage_team,
    can_respond_to_invitation,
)
from crmhub.services.errors import (
    AlreadyExistsError,
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from crmhub.services.facts import load_memberships

logger = logging.getLogger(__name__)


class TeamService:
    """Service for managing teams, members and invitations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Team CRUD
    # =========================================================================

    async def create_team(self, actor: Actor | None, name: str) -> Team:
        """Create a new team with the actor as its admin.

        Raises:
            ForbiddenError: If unauthenticated
            InvalidInputError: If the name is blank
        """
        if actor is None:
            raise ForbiddenError("Authentication required")
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("Team name is required")

        team = Team(name=name, created_at=utcnow())
        self.db.add(team)
        await self.db.flush()

        self.db.add(TeamMember(team_id=team.id, user_id=actor.id, role=MemberRole.ADMIN))
        await self.db.commit()
        logger.info(f"User {actor.id} created team {team.id}")
        return team

    async def get_team(self, team_id: str) -> Team:
        """Get team by ID.

        Raises:
            NotFoundError: If team doesn't exist
        """
        team = await self.db.get(Team, team_id)
        if team is None:
            raise NotFoundError("Team", team_id)
        return team

    async def list_user_teams(self, actor: Actor | None) -> list[Team]:
        """List all teams the actor belongs to."""
        if actor is None:
            return []
        result = await self.db.execute(
            select(Team)
            .join(TeamMember, TeamMember.team_id == Team.id)
            .where(TeamMember.user_id == actor.id)
            .order_by(Team.created_at.desc())
        )
        return list(result.scalars().all())

    async def delete_team(self, actor: Actor | None, team_id: str) -> None:
        """Delete a team (admin only).

        Memberships and invitations go with it; projects the team shared fall
        back to their creators. A team that still owns companies cannot be
        deleted, since company links are permanent.

        Raises:
            NotFoundError: If team doesn't exist
            ForbiddenError: If the actor is not an admin
            ConflictError: If companies are still linked to the team
        """
        team = await self.get_team(team_id)
        await self._require_admin(actor, team_id)

        owned = await self.db.scalar(
            select(func.count()).select_from(Company).where(Company.team_id == team_id)
        )
        if owned:
            raise ConflictError(
                f"Team still owns {owned} compan{'y' if owned == 1 else 'ies'}",
                {"team_id": team_id, "companies": owned},
            )

        await self.db.execute(delete(TeamMember).where(TeamMember.team_id == team_id))
        await self.db.execute(delete(TeamInvitation).where(TeamInvitation.team_id == team_id))
        await self.db.execute(
            update(Project).where(Project.team_id == team_id).values(team_id=None)
        )
        await self.db.delete(team)
        await self.db.commit()
        logger.info(f"User {actor.id} deleted team {team_id}")

    # =========================================================================
    # Member Management
    # =========================================================================

    async def get_team_members(self, actor: Actor | None, team_id: str) -> list[TeamMember]:
        """Get all members of a team. Only visible to members.

        Raises:
            NotFoundError: If team doesn't exist
            ForbiddenError: If the actor is not a member
        """
        await self.get_team(team_id)
        memberships = await load_memberships(self.db, actor)
        if not memberships.is_member(team_id):
            raise ForbiddenError("You are not a member of this team")

        result = await self.db.execute(
            select(TeamMember)
            .where(TeamMember.team_id == team_id)
            .order_by(TeamMember.created_at)
        )
        return list(result.scalars().all())

    async def remove_member(self, actor: Actor | None, team_id: str, member_id: str) -> None:
        """Remove a membership. Admins remove anyone; members remove themselves.

        Raises:
            NotFoundError: If the membership doesn't exist in this team
            ForbiddenError: If the actor may not remove it
        """
        member = await self.db.get(TeamMember, member_id)
        if member is None or member.team_id != team_id:
            raise NotFoundError("Team member", member_id)

        memberships = await load_memberships(self.db, actor)
        is_self = actor is not None and member.user_id == actor.id
        if not is_self and not can_manage_team(actor, team_id, memberships):
            raise ForbiddenError("Only admins can remove members")

        await self.db.delete(member)
        await self.db.commit()

    # =========================================================================
    # Invitation Flow
    # =========================================================================

    async def create_invitation(
        self,
        actor: Actor | None,
        team_id: str,
        email: str,
        role: MemberRole = MemberRole.MEMBER,
        expires_days: Optional[int] = None,
    ) -> TeamInvitation:
        """Invite an email address to join a team.

        Raises:
            NotFoundError: If team doesn't exist
            ForbiddenError: If the actor is not an admin
            InvalidInputError: If the email is blank
            AlreadyExistsError: If the address is already a member or has a
                pending invitation
        """
        await self.get_team(team_id)
        await self._require_admin(actor, team_id)

        email = (email or "").strip().lower()
        if not email:
            raise InvalidInputError("Email is required")

        result = await self.db.execute(
            select(TeamMember.id)
            .join(Profile, Profile.id == TeamMember.user_id)
            .where(TeamMember.team_id == team_id, func.lower(Profile.email) == email)
        )
        if result.first() is not None:
            raise AlreadyExistsError("This user is already a member of the team")

        existing = await self.db.execute(
            select(TeamInvitation).where(
                TeamInvitation.team_id == team_id,
                TeamInvitation.email == email,
                TeamInvitation.status == InvitationStatus.PENDING,
            )
        )
        if existing.scalar_one_or_none():
            raise AlreadyExistsError(f"Pending invitation already exists for {email}")

        if expires_days is None:
            expires_days = get_settings().invitation_expiry_days
        invitation = TeamInvitation(
            team_id=team_id,
            email=email,
            role=role,
            token=secrets.token_urlsafe(32),
            status=InvitationStatus.PENDING,
            created_at=utcnow(),
            expires_at=utcnow() + timedelta(days=expires_days),
        )
        self.db.add(invitation)
        await self.db.commit()
        logger.info(f"User {actor.id} invited {email} to team {team_id}")
        return invitation

    async def pending_invitations(self, actor: Actor | None) -> list[TeamInvitation]:
        """Pending invitations addressed to the actor's email."""
        if actor is None or not actor.email:
            return []
        result = await self.db.execute(
            select(TeamInvitation)
            .where(
                TeamInvitation.email == actor.email.strip().lower(),
                TeamInvitation.status == InvitationStatus.PENDING,
            )
            .order_by(TeamInvitation.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_team_invitations(self, actor: Actor | None, team_id: str) -> list[TeamInvitation]:
        """Pending invitations of a team (admin only)."""
        await self.get_team(team_id)
        await self._require_admin(actor, team_id)
        result = await self.db.execute(
            select(TeamInvitation)
            .where(
                TeamInvitation.team_id == team_id,
                TeamInvitation.status == InvitationStatus.PENDING,
            )
            .order_by(TeamInvitation.created_at.desc())
        )
        return list(result.scalars().all())

    async def respond_to_invitation(
        self,
        actor: Actor | None,
        invitation_id: str,
        accept: bool,
    ) -> TeamInvitation:
        """Accept or decline an invitation.

        Accepting creates the membership and settles the invitation in one
        transaction.

        Raises:
            NotFoundError: If invitation doesn't exist
            ConflictError: If the invitation is no longer pending or has expired
            ForbiddenError: If the invitation is addressed to someone else
            AlreadyExistsError: If the actor already belongs to the team
        """
        result = await self.db.execute(
            select(TeamInvitation)
            .where(TeamInvitation.id == invitation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        invitation = result.scalar_one_or_none()
        if invitation is None:
            raise NotFoundError("Invitation", invitation_id)

        if not invitation.is_pending:
            raise ConflictError(f"Invitation already {invitation.status.value}")
        if invitation.is_expired():
            raise ConflictError("Invitation has expired")
        if not can_respond_to_invitation(actor, invitation):
            raise ForbiddenError("This invitation is addressed to someone else")

        team_id = invitation.team_id
        invitation.respond(accept)
        if accept:
            self.db.add(TeamMember(team_id=team_id, user_id=actor.id, role=invitation.role))

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise AlreadyExistsError("You are already a member of this team") from e

        logger.info(
            f"User {actor.id} {'accepted' if accept else 'declined'} invitation {invitation_id}"
        )
        return invitation

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _require_admin(self, actor: Actor | None, team_id: str) -> Memberships:
        """Ensure the actor is an admin of the team."""
        memberships = await load_memberships(self.db, actor)
        if not can_manage_team(actor, team_id, memberships):
            raise ForbiddenError("Requires admin role")
        return memberships

    async def get_user_role_in_team(
        self,
        actor: Actor | None,
        team_id: str,
    ) -> Optional[MemberRole]:
        """Get a user's role in a team, or None if not a member."""
        memberships = await load_memberships(self.db, actor)
        return memberships.roles.get(team_id)


__all__ = ["TeamService"]
