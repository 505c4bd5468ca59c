"""Tests for license lookup and feature gating."""

from datetime import timedelta

import pytest

from crmhub.models import LicenseType, UserLicense, utcnow
from crmhub.services.license_service import (
    LICENSE_FEATURES,
    Feature,
    LicenseService,
    features_for,
)


def test_tiers_are_nested() -> None:
    tiers = [LicenseType.FREE, LicenseType.BASIC, LicenseType.PROFESSIONAL, LicenseType.ENTERPRISE]
    for lower, higher in zip(tiers, tiers[1:]):
        assert set(LICENSE_FEATURES[lower]) <= set(LICENSE_FEATURES[higher])
    assert set(LICENSE_FEATURES[LicenseType.ENTERPRISE]) == set(Feature)


class TestLicenseService:
    async def test_free_license_provisioned_once(self, db, make_user) -> None:
        alice = await make_user()
        service = LicenseService(db)

        first = await service.get_license(alice)
        second = await service.get_license(alice)

        assert first.id == second.id
        assert first.license_type == LicenseType.FREE
        assert first.features == features_for(LicenseType.FREE)

    async def test_free_tier_features(self, db, make_user) -> None:
        alice = await make_user()
        service = LicenseService(db)
        assert await service.has_feature(alice, Feature.VIEW_COMPANIES)
        assert await service.has_feature(alice, "create_company")
        assert not await service.has_feature(alice, Feature.API_ACCESS)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"is_active": False},
            {"expires_at": utcnow() - timedelta(days=1)},
        ],
    )
    async def test_inactive_or_expired_grants_nothing(self, db, make_user, overrides) -> None:
        alice = await make_user()
        fields = dict(
            user_id=alice.id,
            license_type=LicenseType.ENTERPRISE,
            features=features_for(LicenseType.ENTERPRISE),
            is_active=True,
            starts_at=utcnow(),
        )
        fields.update(overrides)
        db.add(UserLicense(**fields))
        await db.commit()

        assert not await LicenseService(db).has_feature(alice, Feature.EXPORT_DATA)

    async def test_unauthenticated_has_no_features(self, db) -> None:
        assert not await LicenseService(db).has_feature(None, Feature.VIEW_COMPANIES)
