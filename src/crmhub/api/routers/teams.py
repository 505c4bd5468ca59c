"""Teams router.

Endpoints for team workspaces:
- Team CRUD operations
- Member management
- Invitation flow (create, list, accept or decline)
"""

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Path, status
from pydantic import BaseModel, EmailStr, Field

from crmhub.api.deps import CurrentActor, DBSession
from crmhub.models.team import InvitationStatus, MemberRole, Team, TeamInvitation
from crmhub.services.invalidation import views_for
from crmhub.services.team_service import TeamService

router = APIRouter()


# =============================================================================
# Pydantic Schemas
# =============================================================================


class TeamCreate(BaseModel):
    """Request to create a new team."""

    name: str = Field(..., min_length=1, max_length=255, description="Team display name")


class TeamResponse(BaseModel):
    """Team information response."""

    id: str
    name: str
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class TeamListResponse(BaseModel):
    """List of teams."""

    items: list[TeamResponse]
    total: int


class TeamMutationResponse(BaseModel):
    team: TeamResponse
    invalidates: list[str]


class MemberResponse(BaseModel):
    """Team member information."""

    id: str
    team_id: str
    user_id: str
    role: MemberRole
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class MemberListResponse(BaseModel):
    """List of team members."""

    items: list[MemberResponse]
    total: int


class InviteCreate(BaseModel):
    """Request to create a team invitation."""

    email: EmailStr = Field(..., description="Email address to invite")
    role: MemberRole = Field(
        default=MemberRole.MEMBER,
        description="Role to assign on acceptance",
    )


class InviteResponse(BaseModel):
    """Team invitation information."""

    id: str
    team_id: str
    team_name: Optional[str] = None
    email: str
    role: MemberRole
    status: InvitationStatus
    created_at: Optional[datetime]
    expires_at: datetime
    responded_at: Optional[datetime]


class InviteListResponse(BaseModel):
    """List of team invitations."""

    items: list[InviteResponse]
    total: int


class InviteMutationResponse(BaseModel):
    invitation: InviteResponse
    invalidates: list[str]


class RespondInviteRequest(BaseModel):
    """Accept or decline an invitation."""

    accept: bool


class InvalidationResponse(BaseModel):
    invalidates: list[str]


# =============================================================================
# Helper Functions
# =============================================================================


def _team_to_response(team: Team) -> TeamResponse:
    """Convert Team model to response schema."""
    return TeamResponse(id=team.id, name=team.name, created_at=team.created_at)


def _invite_to_response(invitation: TeamInvitation, team_name: Optional[str] = None) -> InviteResponse:
    """Convert TeamInvitation model to response schema. The token stays server-side."""
    return InviteResponse(
        id=invitation.id,
        team_id=invitation.team_id,
        team_name=team_name,
        email=invitation.email,
        role=invitation.role,
        status=invitation.status,
        created_at=invitation.created_at,
        expires_at=invitation.expires_at,
        responded_at=invitation.responded_at,
    )


# =============================================================================
# Team Endpoints
# =============================================================================


@router.post(
    "",
    response_model=TeamMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new team",
    description="Create a new team with the authenticated user as admin.",
)
async def create_team(
    request: TeamCreate,
    actor: CurrentActor,
    db: DBSession,
) -> TeamMutationResponse:
    """Create a new team with current user as admin."""
    service = TeamService(db)
    team = await service.create_team(actor, request.name)
    return TeamMutationResponse(
        team=_team_to_response(team),
        invalidates=views_for("create_team", actor_id=actor.id, team_id=team.id),
    )


@router.get(
    "",
    response_model=TeamListResponse,
    summary="List user's teams",
    description="List all teams the authenticated user is a member of.",
)
async def list_teams(actor: CurrentActor, db: DBSession) -> TeamListResponse:
    """List teams for the current user."""
    service = TeamService(db)
    teams = await service.list_user_teams(actor)
    return TeamListResponse(
        items=[_team_to_response(t) for t in teams],
        total=len(teams),
    )


# =============================================================================
# Invitations addressed to the caller
# =============================================================================


@router.get(
    "/invitations",
    response_model=InviteListResponse,
    summary="List my pending invitations",
    description="Pending invitations addressed to the authenticated user's email.",
)
async def list_my_invitations(actor: CurrentActor, db: DBSession) -> InviteListResponse:
    service = TeamService(db)
    invitations = await service.pending_invitations(actor)
    items = []
    for invitation in invitations:
        team = await db.get(Team, invitation.team_id)
        items.append(_invite_to_response(invitation, team.name if team else None))
    return InviteListResponse(items=items, total=len(items))


@router.post(
    "/invitations/{invitation_id}/respond",
    response_model=InviteMutationResponse,
    summary="Accept or decline an invitation",
)
async def respond_to_invitation(
    invitation_id: Annotated[str, Path(description="Invitation UUID")],
    request: RespondInviteRequest,
    actor: CurrentActor,
    db: DBSession,
) -> InviteMutationResponse:
    """Settle an invitation. Accepting adds the caller to the team."""
    service = TeamService(db)
    invitation = await service.respond_to_invitation(actor, invitation_id, request.accept)
    return InviteMutationResponse(
        invitation=_invite_to_response(invitation),
        invalidates=views_for(
            "respond_to_invitation",
            actor_id=actor.id,
            team_id=invitation.team_id,
        ),
    )


# =============================================================================
# Single Team Endpoints
# =============================================================================


@router.get(
    "/{team_id}",
    response_model=TeamResponse,
    summary="Get team details",
)
async def get_team(
    team_id: Annotated[str, Path(description="Team UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> TeamResponse:
    """Get team by ID."""
    service = TeamService(db)
    team = await service.get_team(team_id)
    # Verify user is member
    role = await service.get_user_role_in_team(actor, team_id)
    if role is None:
        raise HTTPException(
            status_code=403,
            detail="You are not a member of this team",
        )
    return _team_to_response(team)


@router.delete(
    "/{team_id}",
    response_model=InvalidationResponse,
    summary="Delete team",
    description=(
        "Delete a team. Its projects fall back to their creators. Fails with 409 "
        "while companies are still linked to the team. Requires ADMIN role."
    ),
)
async def delete_team(
    team_id: Annotated[str, Path(description="Team UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> InvalidationResponse:
    service = TeamService(db)
    await service.delete_team(actor, team_id)
    return InvalidationResponse(
        invalidates=views_for("delete_team", actor_id=actor.id, team_id=team_id)
    )


# =============================================================================
# Member Endpoints
# =============================================================================


@router.get(
    "/{team_id}/members",
    response_model=MemberListResponse,
    summary="List team members",
)
async def list_members(
    team_id: Annotated[str, Path(description="Team UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> MemberListResponse:
    """List team members. Only visible to members."""
    service = TeamService(db)
    members = await service.get_team_members(actor, team_id)
    return MemberListResponse(
        items=[MemberResponse.model_validate(m) for m in members],
        total=len(members),
    )


@router.delete(
    "/{team_id}/members/{member_id}",
    response_model=InvalidationResponse,
    summary="Remove member",
    description="Remove a member from the team. Requires ADMIN role, or self-removal.",
)
async def remove_member(
    team_id: Annotated[str, Path(description="Team UUID")],
    member_id: Annotated[str, Path(description="Membership UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> InvalidationResponse:
    service = TeamService(db)
    await service.remove_member(actor, team_id, member_id)
    return InvalidationResponse(
        invalidates=views_for("remove_member", actor_id=actor.id, team_id=team_id)
    )


# =============================================================================
# Team Invitation Endpoints
# =============================================================================


@router.post(
    "/{team_id}/invitations",
    response_model=InviteMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite by email",
    description="Invite an email address to join the team. Requires ADMIN role.",
)
async def create_invitation(
    team_id: Annotated[str, Path(description="Team UUID")],
    request: InviteCreate,
    actor: CurrentActor,
    db: DBSession,
) -> InviteMutationResponse:
    service = TeamService(db)
    invitation = await service.create_invitation(actor, team_id, request.email, role=request.role)
    return InviteMutationResponse(
        invitation=_invite_to_response(invitation),
        invalidates=views_for("create_invitation", actor_id=actor.id, team_id=team_id),
    )


@router.get(
    "/{team_id}/invitations",
    response_model=InviteListResponse,
    summary="List team invitations",
    description="Pending invitations of the team. Requires ADMIN role.",
)
async def list_team_invitations(
    team_id: Annotated[str, Path(description="Team UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> InviteListResponse:
    service = TeamService(db)
    team = await service.get_team(team_id)
    invitations = await service.get_team_invitations(actor, team_id)
    return InviteListResponse(
        items=[_invite_to_response(i, team.name) for i in invitations],
        total=len(invitations),
    )
