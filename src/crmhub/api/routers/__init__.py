"""API routers for different endpoint groups.

Routers:
- health: Health check and monitoring endpoints
- companies: Catalogue, repositories, team linking, reviews
- projects: Projects and their companies
- teams: Teams, members and invitations
- licenses: Feature gating
- profiles: The caller's profile
"""

from .companies import router as companies_router
from .health import router as health_router
from .licenses import router as licenses_router
from .profiles import router as profiles_router
from .projects import router as projects_router
from .teams import router as teams_router

__all__ = [
    "companies_router",
    "health_router",
    "licenses_router",
    "profiles_router",
    "projects_router",
    "teams_router",
]
