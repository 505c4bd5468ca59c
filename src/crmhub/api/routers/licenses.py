"""License endpoints: which product features the caller may use."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from crmhub.api.deps import CurrentActor, DBSession
from crmhub.models.user import LicenseType
from crmhub.services.license_service import LicenseService

router = APIRouter()


class LicenseResponse(BaseModel):
    """License information response."""

    id: str
    license_type: LicenseType
    features: list[str]
    is_active: bool
    starts_at: datetime
    expires_at: Optional[datetime]
    team_id: Optional[str]

    class Config:
        from_attributes = True


class FeatureResponse(BaseModel):
    feature: str
    granted: bool


@router.get("/me", response_model=LicenseResponse, summary="Get my license")
async def get_my_license(actor: CurrentActor, db: DBSession) -> LicenseResponse:
    """Get the caller's license. A free license is provisioned on first access."""
    service = LicenseService(db)
    license_ = await service.get_license(actor)
    return LicenseResponse.model_validate(license_)


@router.get(
    "/me/features/{feature}",
    response_model=FeatureResponse,
    summary="Check a feature",
)
async def check_feature(feature: str, actor: CurrentActor, db: DBSession) -> FeatureResponse:
    service = LicenseService(db)
    return FeatureResponse(feature=feature, granted=await service.has_feature(actor, feature))
