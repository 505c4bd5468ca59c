"""Profile service."""

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.models.user import Profile
from crmhub.services.access_policy import Actor
from crmhub.services.errors import InvalidInputError

EDITABLE_FIELDS = ("first_name", "last_name", "phone", "company", "role", "bio")


class ProfileService:
    """Keeps a profile row for every authenticated user."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def ensure_profile(self, actor: Actor) -> Profile:
        """Get the actor's profile, creating it on first sight."""
        profile = await self.db.get(Profile, actor.id)
        if profile is None:
            self.db.add(Profile(id=actor.id, email=actor.email))
            try:
                await self.db.commit()
            except IntegrityError:
                # Another request created it first
                await self.db.rollback()
            profile = await self.db.get(Profile, actor.id)
        elif actor.email and profile.email != actor.email:
            profile.email = actor.email
            await self.db.commit()
        return profile

    async def update_profile(self, actor: Actor, changes: dict[str, Any]) -> Profile:
        """Update the actor's own profile.

        Raises:
            InvalidInputError: On fields that are not editable
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidInputError(f"Fields not editable: {', '.join(sorted(unknown))}")

        profile = await self.ensure_profile(actor)
        for key, value in changes.items():
            setattr(profile, key, value)
        await self.db.commit()
        return profile
