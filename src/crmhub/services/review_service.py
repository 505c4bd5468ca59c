"""Review and comment aggregation.

Companies carry two review collections: public reviews, visible to anyone
who can see the company, and team reviews, visible only to members of the
owning team. Comments are informal notes with no visibility filtering.
"""

import logging
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.models.company import Company
from crmhub.models.entries import Comment, Review, dump_entries
from crmhub.services.access_policy import (
    Actor,
    Memberships,
    NO_MEMBERSHIPS,
    can_add_team_review,
    can_view_company,
)
from crmhub.services.errors import ForbiddenError, InvalidInputError, NotFoundError
from crmhub.services.facts import in_repository, load_memberships

logger = logging.getLogger(__name__)


def visible_reviews(
    company: Company,
    actor: Actor | None,
    memberships: Memberships = NO_MEMBERSHIPS,
) -> list[Review]:
    """Public reviews, plus team reviews for authenticated team members.

    Newest first; equal dates keep insertion order (public before team).
    """
    merged = [r for r in company.public_review_entries() if not r.is_team_review]
    if actor is not None and company.team_id is not None and memberships.is_member(company.team_id):
        merged.extend(company.team_review_entries())
    # sorted() stays stable with reverse=True
    return sorted(merged, key=lambda r: r.date, reverse=True)


def average_rating(reviews: Sequence[Review]) -> float:
    """Unrounded mean rating, 0 for no reviews."""
    if not reviews:
        return 0.0
    return sum(r.rating for r in reviews) / len(reviews)


def rounded_rating(value: float) -> float:
    """One decimal place, half up, for display."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


class ReviewService:
    """Service for company reviews and comments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def company_reviews(
        self,
        actor: Actor | None,
        company_id: str,
    ) -> tuple[list[Review], float]:
        """Visible reviews of a company and their average rating.

        Raises:
            NotFoundError: If company doesn't exist
            ForbiddenError: If the actor cannot view the company
        """
        company, memberships = await self._viewable_company(actor, company_id)
        reviews = visible_reviews(company, actor, memberships)
        return reviews, average_rating(reviews)

    async def add_review(
        self,
        actor: Actor | None,
        company_id: str,
        rating: int,
        comment: str = "",
        is_team_review: bool = False,
    ) -> Review:
        """Append a review to the public or the team collection.

        Raises:
            InvalidInputError: If rating is not an integer from 1 to 5
            NotFoundError: If company doesn't exist
            ForbiddenError: If the actor cannot view the company, or posts a
                team review without being a member of the owning team
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidInputError("Rating must be an integer between 1 and 5")

        company, memberships = await self._viewable_company(actor, company_id, lock=True)
        if is_team_review and not can_add_team_review(actor, company, memberships):
            raise ForbiddenError("Team reviews require membership in the company's team")

        review = Review(rating=rating, comment=comment or "", is_team_review=is_team_review)
        if is_team_review:
            company.team_reviews = [*(company.team_reviews or []), *dump_entries([review])]
        else:
            company.reviews = [*(company.reviews or []), *dump_entries([review])]
        await self.db.commit()
        logger.info(f"User {actor.id} reviewed company {company_id} ({rating}/5)")
        return review

    async def add_comment(self, actor: Actor | None, company_id: str, text: str) -> Comment:
        """Append a comment to a company.

        Raises:
            InvalidInputError: If text is empty or whitespace
            NotFoundError: If company doesn't exist
            ForbiddenError: If the actor cannot view the company
        """
        text = (text or "").strip()
        if not text:
            raise InvalidInputError("Comment text is required")

        company, _ = await self._viewable_company(actor, company_id, lock=True)
        comment = Comment(text=text)
        company.comments = [*(company.comments or []), *dump_entries([comment])]
        await self.db.commit()
        return comment

    async def _viewable_company(
        self,
        actor: Actor | None,
        company_id: str,
        lock: bool = False,
    ) -> tuple[Company, Memberships]:
        query = select(Company).where(Company.id == company_id)
        if lock:
            # Appends rewrite the whole JSON list; serialize concurrent writers
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        company = result.scalar_one_or_none()
        if company is None:
            raise NotFoundError("Company", company_id)

        memberships = await load_memberships(self.db, actor)
        listed = await in_repository(self.db, actor, company_id)
        if not can_view_company(actor, company, memberships, listed):
            raise ForbiddenError("You don't have access to this company")
        return company, memberships


__all__ = [
    "ReviewService",
    "visible_reviews",
    "average_rating",
    "rounded_rating",
]
