"""Companies router.

Endpoints for the company catalogue:
- Visible set, personal repository and team repository
- Local + external search
- Repository membership (add, remove) and team linking
- Reviews and comments

Every mutation response lists the cached views it invalidates.
"""

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Path, Query, status
from pydantic import BaseModel, Field

from crmhub.api.deps import CurrentActor, DBSession, SearchClient
from crmhub.models.company import Company
from crmhub.models.entries import Comment, Review
from crmhub.services.company_search import PartialCompany
from crmhub.services.company_service import CompanyService
from crmhub.services.facts import load_memberships
from crmhub.services.invalidation import views_for
from crmhub.services.review_service import (
    ReviewService,
    average_rating,
    rounded_rating,
    visible_reviews,
)

router = APIRouter()


# =============================================================================
# Pydantic Schemas
# =============================================================================


class CompanyCreate(BaseModel):
    """Request to create a company by hand."""

    name: str = Field(..., min_length=1, max_length=255)
    industry: Optional[str] = None
    sales_volume: Optional[str] = Field(None, max_length=100)
    growth: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=500)
    phone_number: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)


class CompanyUpdate(BaseModel):
    """Request to update descriptive company fields."""

    name: Optional[str] = Field(None, max_length=255)
    industry: Optional[str] = None
    sales_volume: Optional[str] = Field(None, max_length=100)
    growth: Optional[str] = Field(None, max_length=100)
    website: Optional[str] = Field(None, max_length=500)
    phone_number: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    review: Optional[str] = None
    notes: Optional[str] = None


class RepositoryAdd(BaseModel):
    """Company to file in the personal repository.

    With an ``id`` of an existing company, only the entry is created;
    otherwise the company is created first.
    """

    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=255)
    industry: Optional[str] = None
    sales_volume: Optional[str] = None
    growth: Optional[str] = None
    website: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None


class TeamLinkRequest(BaseModel):
    """Request to hand a company over to a team."""

    team_id: str = Field(..., description="Team UUID")


class ReviewCreate(BaseModel):
    """Request to add a review."""

    rating: int = Field(..., description="Whole stars, 1 to 5")
    comment: str = ""
    is_team_review: bool = False


class CommentCreate(BaseModel):
    """Request to add a comment."""

    text: str


class CompanyResponse(BaseModel):
    """Company information response."""

    id: str
    name: str
    industry: Optional[str]
    sales_volume: Optional[str]
    growth: Optional[str]
    website: Optional[str]
    phone_number: Optional[str]
    email: Optional[str]
    review: Optional[str]
    notes: Optional[str]
    created_by: Optional[str]
    team_id: Optional[str]
    created_at: Optional[datetime]


class CompanyDetailResponse(CompanyResponse):
    """Company with the reviews and comments the caller may see."""

    reviews: list[Review]
    average_rating: float
    comments: list[Comment]


class CompanyListResponse(BaseModel):
    """List of companies."""

    items: list[CompanyResponse]
    total: int


class SearchResponse(BaseModel):
    """Local matches and external candidates not yet stored."""

    local: list[CompanyResponse]
    external: list[PartialCompany]


class CompanyMutationResponse(BaseModel):
    """Company after a mutation, with the views to refetch."""

    company: CompanyResponse
    invalidates: list[str]


class RemovalResponse(BaseModel):
    """Result of an idempotent removal."""

    removed: bool
    invalidates: list[str]


class ReviewListResponse(BaseModel):
    """Visible reviews, newest first."""

    items: list[Review]
    total: int
    average_rating: float


class ReviewMutationResponse(BaseModel):
    review: Review
    invalidates: list[str]


class CommentMutationResponse(BaseModel):
    comment: Comment
    invalidates: list[str]


# =============================================================================
# Helper Functions
# =============================================================================


def _company_to_response(company: Company) -> CompanyResponse:
    """Convert Company model to response schema."""
    return CompanyResponse(
        id=company.id,
        name=company.name,
        industry=company.industry,
        sales_volume=company.sales_volume,
        growth=company.growth,
        website=company.website,
        phone_number=company.phone_number,
        email=company.email,
        review=company.review,
        notes=company.notes,
        created_by=company.created_by,
        team_id=company.team_id,
        created_at=company.created_at,
    )


def _company_list(companies: list[Company]) -> CompanyListResponse:
    return CompanyListResponse(
        items=[_company_to_response(c) for c in companies],
        total=len(companies),
    )


# =============================================================================
# Visible Sets
# =============================================================================


@router.get(
    "",
    response_model=CompanyListResponse,
    summary="List visible companies",
    description="Public companies, companies of the caller's teams, the caller's "
    "repository and the caller's own companies.",
)
async def list_companies(actor: CurrentActor, db: DBSession) -> CompanyListResponse:
    service = CompanyService(db)
    return _company_list(await service.visible_companies_for_user(actor))


@router.get(
    "/repository",
    response_model=CompanyListResponse,
    summary="List personal repository",
)
async def list_repository(actor: CurrentActor, db: DBSession) -> CompanyListResponse:
    """Companies in "My Repositories", most recently added first."""
    service = CompanyService(db)
    return _company_list(await service.personal_repository(actor))


@router.get(
    "/team",
    response_model=CompanyListResponse,
    summary="List team repository",
)
async def list_team_repository(
    actor: CurrentActor,
    db: DBSession,
    team_id: Annotated[Optional[str], Query(description="Restrict to one team")] = None,
) -> CompanyListResponse:
    """Companies owned by the caller's teams."""
    service = CompanyService(db)
    return _company_list(await service.team_repository(actor, team_id=team_id))


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Search companies",
    description="Case-insensitive name match among visible companies, plus "
    "external candidates that are not stored yet.",
)
async def search_companies(
    actor: CurrentActor,
    db: DBSession,
    search_client: SearchClient,
    q: Annotated[str, Query(description="Search text")] = "",
) -> SearchResponse:
    service = CompanyService(db, search_client=search_client)
    local, external = await service.search(actor, q)
    return SearchResponse(
        local=[_company_to_response(c) for c in local],
        external=external,
    )


# =============================================================================
# Company CRUD
# =============================================================================


@router.post(
    "",
    response_model=CompanyMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a company",
)
async def create_company(
    request: CompanyCreate,
    actor: CurrentActor,
    db: DBSession,
) -> CompanyMutationResponse:
    """Create a company and add it to the caller's repository."""
    service = CompanyService(db)
    company = await service.create_company(actor, PartialCompany(**request.model_dump()))
    return CompanyMutationResponse(
        company=_company_to_response(company),
        invalidates=views_for("create_company", actor_id=actor.id, company_id=company.id),
    )


@router.get(
    "/{company_id}",
    response_model=CompanyDetailResponse,
    summary="Get company details",
)
async def get_company(
    company_id: Annotated[str, Path(description="Company UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> CompanyDetailResponse:
    """Get a company with its visible reviews and comments."""
    service = CompanyService(db)
    company = await service.get_visible_company(actor, company_id)
    memberships = await load_memberships(db, actor)
    reviews = visible_reviews(company, actor, memberships)
    return CompanyDetailResponse(
        **_company_to_response(company).model_dump(),
        reviews=reviews,
        average_rating=rounded_rating(average_rating(reviews)),
        comments=company.comment_entries(),
    )


@router.patch(
    "/{company_id}",
    response_model=CompanyMutationResponse,
    summary="Update company",
    description="Update descriptive fields. Requires being the creator or an "
    "admin of the owning team.",
)
async def update_company(
    company_id: Annotated[str, Path(description="Company UUID")],
    request: CompanyUpdate,
    actor: CurrentActor,
    db: DBSession,
) -> CompanyMutationResponse:
    service = CompanyService(db)
    company = await service.update_company(
        actor, company_id, request.model_dump(exclude_unset=True)
    )
    return CompanyMutationResponse(
        company=_company_to_response(company),
        invalidates=views_for("update_company", actor_id=actor.id, company_id=company.id),
    )


# =============================================================================
# Repository and Team Link
# =============================================================================


@router.post(
    "/repository",
    response_model=CompanyMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add to personal repository",
    description="Add an existing company, or create a new one and add it in "
    "the same transaction.",
)
async def add_to_repository(
    request: RepositoryAdd,
    actor: CurrentActor,
    db: DBSession,
) -> CompanyMutationResponse:
    service = CompanyService(db)
    company = await service.add_to_repository(actor, PartialCompany(**request.model_dump()))
    return CompanyMutationResponse(
        company=_company_to_response(company),
        invalidates=views_for("add_to_repository", actor_id=actor.id, company_id=company.id),
    )


@router.delete(
    "/repository/{company_id}",
    response_model=RemovalResponse,
    summary="Remove from personal repository",
)
async def remove_from_repository(
    company_id: Annotated[str, Path(description="Company UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> RemovalResponse:
    """Remove the caller's repository entry. Removing twice is not an error."""
    service = CompanyService(db)
    removed = await service.remove_from_repository(actor, company_id)
    return RemovalResponse(
        removed=removed,
        invalidates=views_for(
            "remove_from_repository", actor_id=actor.id, company_id=company_id
        ),
    )


@router.post(
    "/{company_id}/team",
    response_model=CompanyMutationResponse,
    summary="Link company to team",
    description="Hand an unlinked company over to one of the caller's teams. "
    "Linking cannot be undone.",
)
async def link_to_team(
    company_id: Annotated[str, Path(description="Company UUID")],
    request: TeamLinkRequest,
    actor: CurrentActor,
    db: DBSession,
) -> CompanyMutationResponse:
    service = CompanyService(db)
    company = await service.link_to_team(actor, company_id, request.team_id)
    return CompanyMutationResponse(
        company=_company_to_response(company),
        invalidates=views_for(
            "link_to_team",
            actor_id=actor.id,
            company_id=company_id,
            team_id=request.team_id,
        ),
    )


# =============================================================================
# Reviews and Comments
# =============================================================================


@router.get(
    "/{company_id}/reviews",
    response_model=ReviewListResponse,
    summary="List visible reviews",
)
async def list_reviews(
    company_id: Annotated[str, Path(description="Company UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> ReviewListResponse:
    """Public reviews, plus team reviews for members of the owning team."""
    service = ReviewService(db)
    reviews, average = await service.company_reviews(actor, company_id)
    return ReviewListResponse(
        items=reviews,
        total=len(reviews),
        average_rating=rounded_rating(average),
    )


@router.post(
    "/{company_id}/reviews",
    response_model=ReviewMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a review",
)
async def add_review(
    company_id: Annotated[str, Path(description="Company UUID")],
    request: ReviewCreate,
    actor: CurrentActor,
    db: DBSession,
) -> ReviewMutationResponse:
    service = ReviewService(db)
    review = await service.add_review(
        actor,
        company_id,
        rating=request.rating,
        comment=request.comment,
        is_team_review=request.is_team_review,
    )
    return ReviewMutationResponse(
        review=review,
        invalidates=views_for("add_review", actor_id=actor.id, company_id=company_id),
    )


@router.post(
    "/{company_id}/comments",
    response_model=CommentMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment",
)
async def add_comment(
    company_id: Annotated[str, Path(description="Company UUID")],
    request: CommentCreate,
    actor: CurrentActor,
    db: DBSession,
) -> CommentMutationResponse:
    service = ReviewService(db)
    comment = await service.add_comment(actor, company_id, request.text)
    return CommentMutationResponse(
        comment=comment,
        invalidates=views_for("add_comment", actor_id=actor.id, company_id=company_id),
    )
