"""License lookup and feature gating.

Licenses decide which features the product offers a user. They are a UX
gate, not a security boundary: no data-access path consults them.
"""

import logging
from enum import Enum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.models.database import utcnow
from crmhub.models.user import LicenseType, UserLicense
from crmhub.services.access_policy import Actor

logger = logging.getLogger(__name__)


class Feature(str, Enum):
    """Gated product features."""
    VIEW_COMPANIES = "view_companies"
    CREATE_COMPANY = "create_company"
    BASIC_ANALYTICS = "basic_analytics"
    ADVANCED_ANALYTICS = "advanced_analytics"
    TEAM_MANAGEMENT = "team_management"
    API_ACCESS = "api_access"
    CUSTOM_FIELDS = "custom_fields"
    BULK_OPERATIONS = "bulk_operations"
    EXPORT_DATA = "export_data"


LICENSE_FEATURES: dict[LicenseType, list[Feature]] = {
    LicenseType.FREE: [
        Feature.VIEW_COMPANIES,
        Feature.CREATE_COMPANY,
        Feature.BASIC_ANALYTICS,
    ],
    LicenseType.BASIC: [
        Feature.VIEW_COMPANIES,
        Feature.CREATE_COMPANY,
        Feature.BASIC_ANALYTICS,
        Feature.TEAM_MANAGEMENT,
        Feature.EXPORT_DATA,
    ],
    LicenseType.PROFESSIONAL: [
        Feature.VIEW_COMPANIES,
        Feature.CREATE_COMPANY,
        Feature.BASIC_ANALYTICS,
        Feature.ADVANCED_ANALYTICS,
        Feature.TEAM_MANAGEMENT,
        Feature.EXPORT_DATA,
        Feature.CUSTOM_FIELDS,
    ],
    LicenseType.ENTERPRISE: [
        Feature.VIEW_COMPANIES,
        Feature.CREATE_COMPANY,
        Feature.BASIC_ANALYTICS,
        Feature.ADVANCED_ANALYTICS,
        Feature.TEAM_MANAGEMENT,
        Feature.API_ACCESS,
        Feature.CUSTOM_FIELDS,
        Feature.BULK_OPERATIONS,
        Feature.EXPORT_DATA,
    ],
}


def features_for(license_type: LicenseType) -> list[str]:
    return [f.value for f in LICENSE_FEATURES[license_type]]


class LicenseService:
    """Service for user licenses."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_license(self, actor: Actor) -> UserLicense:
        """Get the actor's license, provisioning a free one on first access."""
        result = await self.db.execute(
            select(UserLicense)
            .where(UserLicense.user_id == actor.id)
            .order_by(UserLicense.starts_at.desc())
            .limit(1)
        )
        license_ = result.scalar_one_or_none()
        if license_ is None:
            license_ = UserLicense(
                user_id=actor.id,
                license_type=LicenseType.FREE,
                features=features_for(LicenseType.FREE),
                is_active=True,
                starts_at=utcnow(),
            )
            self.db.add(license_)
            await self.db.commit()
            logger.info(f"Provisioned free license for user {actor.id}")
        return license_

    async def has_feature(self, actor: Actor | None, feature: Feature | str) -> bool:
        """Feature listed on the license, license active and not expired."""
        if actor is None:
            return False
        license_ = await self.get_license(actor)
        name = feature.value if isinstance(feature, Feature) else feature
        return license_.grants(name)


__all__ = [
    "LicenseService",
    "Feature",
    "LICENSE_FEATURES",
    "features_for",
]
