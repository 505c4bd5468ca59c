"""FastAPI dependencies for dependency injection.

Provides reusable dependencies for authentication, database sessions,
and service wiring across endpoints.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.core.supabase import get_current_actor
from crmhub.models.database import get_session
from crmhub.services.access_policy import Actor
from crmhub.services.company_search import CompanySearchClient
from crmhub.services.profile_service import ProfileService

# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_session)]


async def get_actor(
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: DBSession,
) -> Actor:
    """Authenticated actor, with a profile row guaranteed to exist.

    Ownership and membership rows reference profiles, so the profile is
    created the first time a user is seen.
    """
    await ProfileService(db).ensure_profile(actor)
    return actor


def get_search_client() -> CompanySearchClient:
    """External search provider client."""
    return CompanySearchClient()


# Type aliases for dependency injection
CurrentActor = Annotated[Actor, Depends(get_actor)]
SearchClient = Annotated[CompanySearchClient, Depends(get_search_client)]
