"""Backend services for CRM Hub.

The access policy decides; services fetch the facts it needs, ask it, and
then read or write.

Architecture:
    Frontend → FastAPI → Services (facts + access policy) → SQLAlchemy

Services:
- access_policy: pure allow/deny rules
- company_service: visible sets, personal repositories, team linking
- project_service: projects and project-company links
- review_service: review visibility, averages, comments
- team_service: teams, members, invitations
- license_service: feature gating
- company_search: external company search provider

Usage:
    from crmhub.services import CompanyService

    # In FastAPI endpoint
    service = CompanyService(db)
    companies = await service.visible_companies_for_user(actor)
"""

from .access_policy import Actor, Memberships
from .company_search import CompanySearchClient, PartialCompany
from .company_service import CompanyService, dedupe_by_id
from .errors import (
    AlreadyExistsError,
    ConflictError,
    CRMServiceError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    UnavailableError,
)
from .invalidation import MUTATION_VIEWS, views_for
from .license_service import Feature, LicenseService
from .profile_service import ProfileService
from .project_service import ProjectService
from .review_service import ReviewService, average_rating, rounded_rating, visible_reviews
from .team_service import TeamService

__all__ = [
    # Policy inputs
    "Actor",
    "Memberships",
    # Company Service
    "CompanyService",
    "dedupe_by_id",
    # Search
    "CompanySearchClient",
    "PartialCompany",
    # Project Service
    "ProjectService",
    # Review Service
    "ReviewService",
    "visible_reviews",
    "average_rating",
    "rounded_rating",
    # Team Service
    "TeamService",
    # License Service
    "LicenseService",
    "Feature",
    # Profile Service
    "ProfileService",
    # Invalidation
    "MUTATION_VIEWS",
    "views_for",
    # Errors
    "CRMServiceError",
    "ForbiddenError",
    "NotFoundError",
    "AlreadyExistsError",
    "InvalidInputError",
    "ConflictError",
    "UnavailableError",
]
