"""CRM Hub - company catalogue with personal and team repositories.

Users collect companies into a personal repository, hand them over to
teams, group them into projects, and review them. Who may see or change
what is decided by one pure access policy.

Quick Start:
    from crmhub import Actor, CompanyService

    service = CompanyService(db)
    companies = await service.visible_companies_for_user(Actor(id=user_id))

Architecture:
    Request -> access policy facts (memberships, repository entries)
            -> access policy decision -> read or write in one transaction
"""

__version__ = "0.1.0"

from crmhub.services import (
    Actor,
    CompanyService,
    CRMServiceError,
    LicenseService,
    Memberships,
    ProfileService,
    ProjectService,
    ReviewService,
    TeamService,
    views_for,
)

__all__ = [
    # Version
    "__version__",
    # Policy inputs
    "Actor",
    "Memberships",
    # Services
    "CompanyService",
    "ProjectService",
    "ReviewService",
    "TeamService",
    "LicenseService",
    "ProfileService",
    # Errors
    "CRMServiceError",
    # Invalidation
    "views_for",
]
