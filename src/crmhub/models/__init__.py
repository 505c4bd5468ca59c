"""Database models for CRM Hub.

SQLAlchemy models for:
- Profiles and licenses
- Teams, memberships and invitations
- Companies and personal repositories
- Projects and project-company links

All models use async SQLAlchemy with asyncpg for PostgreSQL.
"""

from .company import Company, CompanyRepositoryEntry, LinkedTo, TeamLink, Unlinked
from .database import Base, close_db, get_engine, get_session, init_db, utcnow
from .entries import Comment, Note, Review
from .project import Project, ProjectCompany
from .team import InvitationStatus, MemberRole, Team, TeamInvitation, TeamMember
from .user import LicenseType, Profile, UserLicense

__all__ = [
    # Database
    "Base",
    "init_db",
    "get_session",
    "get_engine",
    "close_db",
    "utcnow",
    # Users
    "Profile",
    "UserLicense",
    "LicenseType",
    # Teams
    "Team",
    "TeamMember",
    "TeamInvitation",
    "MemberRole",
    "InvitationStatus",
    # Companies
    "Company",
    "CompanyRepositoryEntry",
    "TeamLink",
    "Unlinked",
    "LinkedTo",
    # Projects
    "Project",
    "ProjectCompany",
    # Embedded entries
    "Review",
    "Comment",
    "Note",
]
