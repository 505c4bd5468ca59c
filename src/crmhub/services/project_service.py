"""Project service.

Provides business logic for:
- Project CRUD, personal or shared with a team
- Project <-> company association
- Candidate companies for a project
- Append-only project notes
"""

import logging
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crmhub.models.company import Company
from crmhub.models.entries import Note, dump_entries
from crmhub.models.project import Project, ProjectCompany
from crmhub.models.team import TeamMember
from crmhub.services.access_policy import (
    Actor,
    Memberships,
    can_add_company_to_project,
    can_delete_project,
    can_view_company,
    can_view_project,
)
from crmhub.services.company_service import CompanyService, dedupe_by_id
from crmhub.services.errors import (
    AlreadyExistsError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from crmhub.services.facts import in_repository, load_memberships

logger = logging.getLogger(__name__)


class ProjectService:
    """Service for projects and their companies."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # =========================================================================
    # Project CRUD
    # =========================================================================

    async def create_project(
        self,
        actor: Actor | None,
        name: str,
        team_id: Optional[str] = None,
    ) -> Project:
        """Create a project, optionally shared with one of the actor's teams.

        Raises:
            ForbiddenError: If unauthenticated or not a member of ``team_id``
            InvalidInputError: If the name is blank
        """
        if actor is None:
            raise ForbiddenError("Authentication required")
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("Project name is required")
        if team_id is not None:
            memberships = await load_memberships(self.db, actor)
            if not memberships.is_member(team_id):
                raise ForbiddenError("You can only share projects with your own teams")

        project = Project(name=name, created_by=actor.id, team_id=team_id, notes=[])
        self.db.add(project)
        await self.db.commit()
        logger.info(f"User {actor.id} created project {project.id}")
        return project

    async def projects_visible_to_user(self, actor: Actor | None) -> list[Project]:
        """Projects the actor created plus projects shared with their teams."""
        if actor is None:
            return []
        team_ids = select(TeamMember.team_id).where(TeamMember.user_id == actor.id)
        result = await self.db.execute(
            select(Project)
            .where(or_(Project.created_by == actor.id, Project.team_id.in_(team_ids)))
            .order_by(Project.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_project(self, actor: Actor | None, project_id: str) -> Project:
        """Get a project the actor can see.

        Raises:
            NotFoundError: If project doesn't exist
            ForbiddenError: If the actor is neither creator nor team member
        """
        project, _ = await self._project_with_memberships(actor, project_id)
        return project

    async def delete_project(self, actor: Actor | None, project_id: str) -> Project:
        """Delete a project and its company links.

        Raises:
            NotFoundError: If project doesn't exist
            ForbiddenError: If the actor is neither creator nor team admin
        """
        project = await self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        memberships = await load_memberships(self.db, actor)
        if not can_delete_project(actor, project, memberships):
            raise ForbiddenError("Only the creator or a team admin can delete this project")

        await self.db.execute(
            delete(ProjectCompany).where(ProjectCompany.project_id == project_id)
        )
        await self.db.delete(project)
        await self.db.commit()
        logger.info(f"User {actor.id} deleted project {project_id}")
        return project

    # =========================================================================
    # Companies
    # =========================================================================

    async def project_companies(self, actor: Actor | None, project_id: str) -> list[Company]:
        await self.get_project(actor, project_id)
        result = await self.db.execute(
            select(Company)
            .join(ProjectCompany, ProjectCompany.company_id == Company.id)
            .where(ProjectCompany.project_id == project_id)
            .order_by(ProjectCompany.created_at)
        )
        return list(result.scalars().all())

    async def add_company_to_project(
        self,
        actor: Actor | None,
        project_id: str,
        company_id: str,
    ) -> ProjectCompany:
        """Link a company to a project.

        Raises:
            NotFoundError: If project or company doesn't exist
            ForbiddenError: If the actor may not modify the project or see the company
            AlreadyExistsError: If the company is already in the project
        """
        project = await self.db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project", project_id)

        memberships = await load_memberships(self.db, actor)
        if not can_add_company_to_project(actor, project, memberships):
            raise ForbiddenError("You can't add companies to this project")
        company = await self.db.get(Company, company_id)
        if company is None:
            raise NotFoundError("Company", company_id)
        listed = await in_repository(self.db, actor, company_id)
        if not can_view_company(actor, company, memberships, listed):
            raise ForbiddenError("You don't have access to this company")

        existing = await self._find_link(project_id, company_id)
        if existing is not None:
            raise AlreadyExistsError(
                f"{company.name} is already in this project",
                {"project_id": project_id, "company_id": company_id},
            )

        link = ProjectCompany(project_id=project_id, company_id=company_id)
        self.db.add(link)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise AlreadyExistsError(
                "Company is already in this project",
                {"project_id": project_id, "company_id": company_id},
            ) from e
        return link

    async def remove_company_from_project(
        self,
        actor: Actor | None,
        project_id: str,
        company_id: str,
    ) -> bool:
        """Unlink a company from a project. Safe to repeat.

        Raises:
            NotFoundError: If project doesn't exist
            ForbiddenError: If the actor may not modify the project
        """
        project, memberships = await self._project_with_memberships(actor, project_id)
        if not can_add_company_to_project(actor, project, memberships):
            raise ForbiddenError("You can't modify this project")
        result = await self.db.execute(
            delete(ProjectCompany).where(
                ProjectCompany.project_id == project_id,
                ProjectCompany.company_id == company_id,
            )
        )
        await self.db.commit()
        return result.rowcount > 0

    async def available_companies_for_project(
        self,
        actor: Actor | None,
        project_id: str,
    ) -> list[Company]:
        """Candidates to add: the actor's repository plus, for a team
        project, that team's companies, minus those already linked."""
        project, memberships = await self._project_with_memberships(actor, project_id)

        companies = CompanyService(self.db)
        candidates = await companies.personal_repository(actor)
        if project.team_id is not None and memberships.is_member(project.team_id):
            candidates = dedupe_by_id(
                candidates,
                await companies.team_repository(actor, team_id=project.team_id),
            )

        result = await self.db.execute(
            select(ProjectCompany.company_id).where(ProjectCompany.project_id == project_id)
        )
        linked = set(result.scalars().all())
        return [c for c in candidates if c.id not in linked]

    # =========================================================================
    # Notes
    # =========================================================================

    async def add_note(self, actor: Actor | None, project_id: str, text: str) -> Note:
        """Append a note to a project.

        Raises:
            InvalidInputError: If text is empty or whitespace
            NotFoundError: If project doesn't exist
            ForbiddenError: If the actor can't see the project
        """
        text = (text or "").strip()
        if not text:
            raise InvalidInputError("Note text is required")

        project, _ = await self._project_with_memberships(actor, project_id, lock=True)
        note = Note(text=text)
        project.notes = [*(project.notes or []), *dump_entries([note])]
        await self.db.commit()
        return note

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _find_link(self, project_id: str, company_id: str) -> Optional[ProjectCompany]:
        result = await self.db.execute(
            select(ProjectCompany).where(
                ProjectCompany.project_id == project_id,
                ProjectCompany.company_id == company_id,
            )
        )
        return result.scalar_one_or_none()

    async def _project_with_memberships(
        self,
        actor: Actor | None,
        project_id: str,
        lock: bool = False,
    ) -> tuple[Project, Memberships]:
        query = select(Project).where(Project.id == project_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        project = result.scalar_one_or_none()
        if project is None:
            raise NotFoundError("Project", project_id)
        memberships = await load_memberships(self.db, actor)
        if not can_view_project(actor, project, memberships):
            raise ForbiddenError("You don't have access to this project")
        return project, memberships


__all__ = ["ProjectService"]
