"""Fetch the facts the access policy decides on."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.models.company import CompanyRepositoryEntry
from crmhub.models.team import TeamMember
from crmhub.services.access_policy import Actor, Memberships, NO_MEMBERSHIPS


async def load_memberships(db: AsyncSession, actor: Actor | None) -> Memberships:
    """Team id -> role for every team the actor belongs to."""
    if actor is None:
        return NO_MEMBERSHIPS
    result = await db.execute(
        select(TeamMember.team_id, TeamMember.role).where(TeamMember.user_id == actor.id)
    )
    return Memberships(roles={team_id: role for team_id, role in result.all()})


async def find_repository_entry(
    db: AsyncSession,
    user_id: str,
    company_id: str,
) -> CompanyRepositoryEntry | None:
    result = await db.execute(
        select(CompanyRepositoryEntry).where(
            CompanyRepositoryEntry.user_id == user_id,
            CompanyRepositoryEntry.company_id == company_id,
        )
    )
    return result.scalar_one_or_none()


async def in_repository(db: AsyncSession, actor: Actor | None, company_id: str) -> bool:
    if actor is None:
        return False
    return await find_repository_entry(db, actor.id, company_id) is not None
