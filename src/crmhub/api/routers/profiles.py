"""Profiles router for the caller's own profile."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from crmhub.api.deps import CurrentActor, DBSession
from crmhub.services.invalidation import views_for
from crmhub.services.profile_service import ProfileService

router = APIRouter()


# =============================================================================
# Schemas
# =============================================================================


class ProfileResponse(BaseModel):
    """User profile response."""

    id: str
    email: str | None
    first_name: str | None
    last_name: str | None
    phone: str | None
    company: str | None
    role: str | None
    bio: str | None

    class Config:
        from_attributes = True


class ProfileUpdateRequest(BaseModel):
    """Request to update user profile."""

    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, max_length=50)
    company: str | None = Field(None, max_length=255)
    role: str | None = Field(None, max_length=100)
    bio: str | None = None


class ProfileMutationResponse(BaseModel):
    profile: ProfileResponse
    invalidates: list[str]


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/me", response_model=ProfileResponse)
async def get_profile(actor: CurrentActor, db: DBSession) -> ProfileResponse:
    """Get current user's profile."""
    profile = await ProfileService(db).ensure_profile(actor)
    return ProfileResponse.model_validate(profile)


@router.patch("/me", response_model=ProfileMutationResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    actor: CurrentActor,
    db: DBSession,
) -> ProfileMutationResponse:
    """Update current user's profile."""
    profile = await ProfileService(db).update_profile(
        actor, request.model_dump(exclude_unset=True)
    )
    return ProfileMutationResponse(
        profile=ProfileResponse.model_validate(profile),
        invalidates=views_for("update_profile", actor_id=actor.id),
    )
