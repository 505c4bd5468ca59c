"""Company repository and association service.

Provides business logic for:
- Visible-set queries (public catalogue, team repository, personal repository)
- Personal repository membership with create-then-link for new companies
- One-way linking of a company to a team
- Local + external company search
"""

import logging
import uuid
from collections.abc import Iterable
from typing import Any, Optional, TypeVar

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.models.company import Company, CompanyRepositoryEntry
from crmhub.models.team import Team, TeamMember
from crmhub.services.access_policy import (
    Actor,
    can_edit_company,
    can_link_company_to_team,
    can_view_company,
)
from crmhub.services.company_search import CompanySearchClient, PartialCompany
from crmhub.services.errors import (
    AlreadyExistsError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from crmhub.services.facts import find_repository_entry, in_repository, load_memberships

logger = logging.getLogger(__name__)

T = TypeVar("T")

EDITABLE_FIELDS = (
    "name",
    "industry",
    "sales_volume",
    "growth",
    "website",
    "phone_number",
    "email",
    "review",
    "notes",
)


def dedupe_by_id(*groups: Iterable[T]) -> list[T]:
    """Union of several result lists, keeping the first row per primary key.

    The same company can arrive through two join paths as two distinct
    objects, so identity is the ``id`` column, not the Python object.
    """
    seen: set[Any] = set()
    merged: list[T] = []
    for group in groups:
        for item in group:
            if item.id in seen:
                continue
            seen.add(item.id)
            merged.append(item)
    return merged


def _team_ids_of(user_id: str):
    return select(TeamMember.team_id).where(TeamMember.user_id == user_id)


def _repository_company_ids_of(user_id: str):
    return select(CompanyRepositoryEntry.company_id).where(
        CompanyRepositoryEntry.user_id == user_id
    )


class CompanyService:
    """Service for company visibility and repository management."""

    def __init__(self, db: AsyncSession, search_client: Optional[CompanySearchClient] = None):
        self.db = db
        self.search_client = search_client

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_company(self, company_id: str) -> Company:
        """Get company by ID.

        Raises:
            NotFoundError: If company doesn't exist
        """
        company = await self.db.get(Company, company_id)
        if company is None:
            raise NotFoundError("Company", company_id)
        return company

    async def get_visible_company(self, actor: Actor | None, company_id: str) -> Company:
        """Get a company after checking the actor may view it.

        Raises:
            NotFoundError: If company doesn't exist
            ForbiddenError: If the access policy denies viewing
        """
        company = await self.get_company(company_id)
        memberships = await load_memberships(self.db, actor)
        listed = await in_repository(self.db, actor, company_id)
        if not can_view_company(actor, company, memberships, listed):
            raise ForbiddenError("You don't have access to this company")
        return company

    # =========================================================================
    # Visible sets
    # =========================================================================

    async def visible_companies_for_user(self, actor: Actor | None) -> list[Company]:
        """Public companies, companies of the actor's teams, the actor's
        repository and the actor's own companies, deduplicated by id."""
        if actor is None:
            return []
        result = await self.db.execute(
            select(Company)
            .where(
                or_(
                    Company.team_id.is_(None),
                    Company.team_id.in_(_team_ids_of(actor.id)),
                    Company.id.in_(_repository_company_ids_of(actor.id)),
                    Company.created_by == actor.id,
                )
            )
            .order_by(Company.name)
        )
        return dedupe_by_id(result.scalars().all())

    async def personal_repository(self, actor: Actor | None) -> list[Company]:
        """Companies the actor added to "My Repositories"."""
        if actor is None:
            return []
        result = await self.db.execute(
            select(Company)
            .join(CompanyRepositoryEntry, CompanyRepositoryEntry.company_id == Company.id)
            .where(CompanyRepositoryEntry.user_id == actor.id)
            .order_by(CompanyRepositoryEntry.created_at.desc())
        )
        return dedupe_by_id(result.scalars().all())

    async def team_repository(
        self,
        actor: Actor | None,
        team_id: Optional[str] = None,
    ) -> list[Company]:
        """Companies owned by the actor's teams, optionally one team only."""
        if actor is None:
            return []
        query = select(Company).where(Company.team_id.in_(_team_ids_of(actor.id)))
        if team_id is not None:
            query = query.where(Company.team_id == team_id)
        result = await self.db.execute(query.order_by(Company.name))
        return dedupe_by_id(result.scalars().all())

    # =========================================================================
    # Mutations
    # =========================================================================

    async def create_company(self, actor: Actor | None, data: PartialCompany) -> Company:
        """Create a company by hand and file it in the actor's repository.

        Raises:
            ForbiddenError: If unauthenticated
            InvalidInputError: If the name is blank
        """
        if actor is None:
            raise ForbiddenError("Authentication required")
        company = self._new_company(actor, data.model_copy(update={"id": None}))
        self.db.add(company)
        self.db.add(CompanyRepositoryEntry(company_id=company.id, user_id=actor.id))
        await self.db.commit()
        logger.info(f"User {actor.id} created company {company.id}")
        return company

    async def update_company(
        self,
        actor: Actor | None,
        company_id: str,
        changes: dict[str, Any],
    ) -> Company:
        """Update descriptive fields. Ownership fields are not editable here.

        Raises:
            NotFoundError: If company doesn't exist
            ForbiddenError: If the actor is neither creator nor team admin
            InvalidInputError: On unknown fields or a blank name
        """
        company = await self.get_company(company_id)
        memberships = await load_memberships(self.db, actor)
        if not can_edit_company(actor, company, memberships):
            raise ForbiddenError("Only the creator or a team admin can edit this company")

        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise InvalidInputError(f"Fields not editable: {', '.join(sorted(unknown))}")
        if "name" in changes and not (changes["name"] or "").strip():
            raise InvalidInputError("Company name is required")

        for key, value in changes.items():
            setattr(company, key, value)
        await self.db.commit()
        return company

    async def add_to_repository(self, actor: Actor | None, candidate: PartialCompany) -> Company:
        """Add a company to the actor's repository, creating it if needed.

        Creating the company and the repository entry share one transaction:
        a uniqueness violation at commit rolls back both.

        Raises:
            ForbiddenError: If unauthenticated, or the company is team-private
            AlreadyExistsError: If the entry already exists
            InvalidInputError: If a new company has no name
        """
        if actor is None:
            raise ForbiddenError("Authentication required")

        company = await self.db.get(Company, candidate.id) if candidate.id else None

        if company is None:
            company = self._new_company(actor, candidate)
            self.db.add(company)
        else:
            if await find_repository_entry(self.db, actor.id, company.id):
                raise AlreadyExistsError(
                    f"{company.name} is already in your repository",
                    {"company_id": company.id},
                )
            memberships = await load_memberships(self.db, actor)
            if not can_view_company(actor, company, memberships):
                raise ForbiddenError("You don't have access to this company")

        company_id = company.id
        self.db.add(CompanyRepositoryEntry(company_id=company_id, user_id=actor.id))
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise AlreadyExistsError(
                "Company is already in your repository",
                {"company_id": company_id},
            ) from e

        logger.info(f"User {actor.id} added company {company_id} to repository")
        return company

    async def remove_from_repository(self, actor: Actor | None, company_id: str) -> bool:
        """Remove the actor's repository entry. Safe to repeat.

        Returns:
            True if an entry was removed
        """
        if actor is None:
            raise ForbiddenError("Authentication required")
        result = await self.db.execute(
            delete(CompanyRepositoryEntry).where(
                CompanyRepositoryEntry.user_id == actor.id,
                CompanyRepositoryEntry.company_id == company_id,
            )
        )
        await self.db.commit()
        return result.rowcount > 0

    async def link_to_team(self, actor: Actor | None, company_id: str, team_id: str) -> Company:
        """Hand a company over to a team. There is no way back.

        Raises:
            NotFoundError: If company or team doesn't exist
            ForbiddenError: If already linked, or the actor is not in the team
        """
        # Row lock so two concurrent links cannot both see the company unlinked
        result = await self.db.execute(
            select(Company)
            .where(Company.id == company_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        company = result.scalar_one_or_none()
        if company is None:
            raise NotFoundError("Company", company_id)
        if company.team_id is not None:
            raise ForbiddenError("Company is already linked to a team")
        if await self.db.get(Team, team_id) is None:
            raise NotFoundError("Team", team_id)

        memberships = await load_memberships(self.db, actor)
        if not can_link_company_to_team(actor, company, team_id, memberships):
            raise ForbiddenError("You must be a member of the team to link companies to it")

        company.link_to(team_id)
        await self.db.commit()
        logger.info(f"User {actor.id} linked company {company_id} to team {team_id}")
        return company

    # =========================================================================
    # Search
    # =========================================================================

    async def search(
        self,
        actor: Actor | None,
        query: str,
    ) -> tuple[list[Company], list[PartialCompany]]:
        """Local name matches among visible companies, plus external hits.

        External hits that already exist locally are dropped from the
        external list.
        """
        query = query.strip()
        visible = await self.visible_companies_for_user(actor)
        if not query:
            return visible, []

        needle = query.lower()
        local = [c for c in visible if needle in (c.name or "").lower()]

        external: list[PartialCompany] = []
        if self.search_client is not None:
            hits = await self.search_client.search(query)
            known = {c.id for c in local}
            if hits:
                result = await self.db.execute(
                    select(Company.id).where(Company.id.in_([h.id for h in hits]))
                )
                known.update(result.scalars().all())
            external = [h for h in hits if h.id not in known]
        return local, external

    # =========================================================================
    # Helpers
    # =========================================================================

    def _new_company(self, actor: Actor, data: PartialCompany) -> Company:
        name = (data.name or "").strip()
        if not name:
            raise InvalidInputError("Company name is required")
        return Company(
            id=data.id or str(uuid.uuid4()),
            name=name,
            industry=data.industry,
            sales_volume=data.sales_volume,
            growth=data.growth,
            website=data.website,
            phone_number=data.phone_number,
            email=data.email,
            created_by=actor.id,
            team_id=None,
            reviews=[],
            team_reviews=[],
            comments=[],
        )


__all__ = [
    "CompanyService",
    "dedupe_by_id",
    "EDITABLE_FIELDS",
]
