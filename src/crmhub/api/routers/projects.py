"""Projects router.

Endpoints for projects, personal or shared with a team:
- Project CRUD
- Project <-> company links and candidate companies
- Append-only notes
"""

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Path, status
from pydantic import BaseModel, Field

from crmhub.api.deps import CurrentActor, DBSession
from crmhub.api.routers.companies import CompanyListResponse, _company_list
from crmhub.models.entries import Note
from crmhub.models.project import Project
from crmhub.services.invalidation import views_for
from crmhub.services.project_service import ProjectService

router = APIRouter()


# =============================================================================
# Pydantic Schemas
# =============================================================================


class ProjectCreate(BaseModel):
    """Request to create a project."""

    name: str = Field(..., min_length=1, max_length=255)
    team_id: Optional[str] = Field(None, description="Share with one of your teams")


class ProjectResponse(BaseModel):
    """Project information response."""

    id: str
    name: str
    created_by: Optional[str]
    team_id: Optional[str]
    notes: list[Note]
    created_at: Optional[datetime]


class ProjectListResponse(BaseModel):
    """List of projects."""

    items: list[ProjectResponse]
    total: int


class ProjectMutationResponse(BaseModel):
    project: ProjectResponse
    invalidates: list[str]


class ProjectCompanyAdd(BaseModel):
    """Request to link a company to a project."""

    company_id: str


class ProjectCompanyResponse(BaseModel):
    project_id: str
    company_id: str
    invalidates: list[str]


class RemovalResponse(BaseModel):
    removed: bool
    invalidates: list[str]


class NoteCreate(BaseModel):
    text: str


class NoteMutationResponse(BaseModel):
    note: Note
    invalidates: list[str]


# =============================================================================
# Helper Functions
# =============================================================================


def _project_to_response(project: Project) -> ProjectResponse:
    """Convert Project model to response schema."""
    return ProjectResponse(
        id=project.id,
        name=project.name,
        created_by=project.created_by,
        team_id=project.team_id,
        notes=project.note_entries(),
        created_at=project.created_at,
    )


# =============================================================================
# Project Endpoints
# =============================================================================


@router.get(
    "",
    response_model=ProjectListResponse,
    summary="List projects",
    description="Projects the caller created plus projects shared with their teams.",
)
async def list_projects(actor: CurrentActor, db: DBSession) -> ProjectListResponse:
    service = ProjectService(db)
    projects = await service.projects_visible_to_user(actor)
    return ProjectListResponse(
        items=[_project_to_response(p) for p in projects],
        total=len(projects),
    )


@router.post(
    "",
    response_model=ProjectMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
)
async def create_project(
    request: ProjectCreate,
    actor: CurrentActor,
    db: DBSession,
) -> ProjectMutationResponse:
    service = ProjectService(db)
    project = await service.create_project(actor, request.name, team_id=request.team_id)
    return ProjectMutationResponse(
        project=_project_to_response(project),
        invalidates=views_for(
            "create_project",
            actor_id=actor.id,
            project_id=project.id,
            team_id=project.team_id,
        ),
    )


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    summary="Get project details",
)
async def get_project(
    project_id: Annotated[str, Path(description="Project UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> ProjectResponse:
    service = ProjectService(db)
    return _project_to_response(await service.get_project(actor, project_id))


@router.delete(
    "/{project_id}",
    response_model=ProjectMutationResponse,
    summary="Delete project",
    description="Delete a project and its company links. Requires being the "
    "creator or an admin of the project's team.",
)
async def delete_project(
    project_id: Annotated[str, Path(description="Project UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> ProjectMutationResponse:
    service = ProjectService(db)
    project = await service.delete_project(actor, project_id)
    return ProjectMutationResponse(
        project=_project_to_response(project),
        invalidates=views_for(
            "delete_project",
            actor_id=actor.id,
            project_id=project_id,
            team_id=project.team_id,
        ),
    )


# =============================================================================
# Company Endpoints
# =============================================================================


@router.get(
    "/{project_id}/companies",
    response_model=CompanyListResponse,
    summary="List project companies",
)
async def list_project_companies(
    project_id: Annotated[str, Path(description="Project UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> CompanyListResponse:
    service = ProjectService(db)
    return _company_list(await service.project_companies(actor, project_id))


@router.get(
    "/{project_id}/available-companies",
    response_model=CompanyListResponse,
    summary="List companies that can be added",
    description="The caller's repository plus, for a team project, the team's "
    "companies, minus those already in the project.",
)
async def list_available_companies(
    project_id: Annotated[str, Path(description="Project UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> CompanyListResponse:
    service = ProjectService(db)
    return _company_list(await service.available_companies_for_project(actor, project_id))


@router.post(
    "/{project_id}/companies",
    response_model=ProjectCompanyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add company to project",
)
async def add_company_to_project(
    project_id: Annotated[str, Path(description="Project UUID")],
    request: ProjectCompanyAdd,
    actor: CurrentActor,
    db: DBSession,
) -> ProjectCompanyResponse:
    service = ProjectService(db)
    await service.add_company_to_project(actor, project_id, request.company_id)
    return ProjectCompanyResponse(
        project_id=project_id,
        company_id=request.company_id,
        invalidates=views_for(
            "add_company_to_project",
            actor_id=actor.id,
            project_id=project_id,
            company_id=request.company_id,
        ),
    )


@router.delete(
    "/{project_id}/companies/{company_id}",
    response_model=RemovalResponse,
    summary="Remove company from project",
)
async def remove_company_from_project(
    project_id: Annotated[str, Path(description="Project UUID")],
    company_id: Annotated[str, Path(description="Company UUID")],
    actor: CurrentActor,
    db: DBSession,
) -> RemovalResponse:
    service = ProjectService(db)
    removed = await service.remove_company_from_project(actor, project_id, company_id)
    return RemovalResponse(
        removed=removed,
        invalidates=views_for(
            "remove_company_from_project",
            actor_id=actor.id,
            project_id=project_id,
            company_id=company_id,
        ),
    )


# =============================================================================
# Notes
# =============================================================================


@router.post(
    "/{project_id}/notes",
    response_model=NoteMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a note",
)
async def add_note(
    project_id: Annotated[str, Path(description="Project UUID")],
    request: NoteCreate,
    actor: CurrentActor,
    db: DBSession,
) -> NoteMutationResponse:
    service = ProjectService(db)
    note = await service.add_note(actor, project_id, request.text)
    return NoteMutationResponse(
        note=note,
        invalidates=views_for("add_note", actor_id=actor.id, project_id=project_id),
    )
