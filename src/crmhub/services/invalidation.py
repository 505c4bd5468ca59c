"""Materialized views touched by each mutation.

Clients cache list and detail views keyed as ``<view>:<scope id>``. Every
mutation declares exactly which of those it affects so callers can refetch
only what changed. ``<view>:*`` means every scope of that view.
"""

from enum import Enum


class Scope(str, Enum):
    """What a view key is scoped by."""
    ACTOR = "actor"
    COMPANY = "company"
    PROJECT = "project"
    TEAM = "team"
    ALL = "all"


MUTATION_VIEWS: dict[str, tuple[tuple[str, Scope], ...]] = {
    # Companies
    "create_company": (
        ("personal_repository", Scope.ACTOR),
        ("visible_companies", Scope.ACTOR),
    ),
    "update_company": (
        ("company", Scope.COMPANY),
    ),
    "add_to_repository": (
        ("personal_repository", Scope.ACTOR),
        ("visible_companies", Scope.ACTOR),
    ),
    "remove_from_repository": (
        ("personal_repository", Scope.ACTOR),
        ("visible_companies", Scope.ACTOR),
    ),
    # Linking changes who can see the company, not just the actor
    "link_to_team": (
        ("company", Scope.COMPANY),
        ("team_repository", Scope.TEAM),
        ("visible_companies", Scope.ALL),
    ),
    "add_review": (
        ("company_reviews", Scope.COMPANY),
    ),
    "add_comment": (
        ("company", Scope.COMPANY),
    ),
    # Projects
    "create_project": (
        ("projects", Scope.ACTOR),
        ("team_projects", Scope.TEAM),
    ),
    "delete_project": (
        ("projects", Scope.ACTOR),
        ("team_projects", Scope.TEAM),
        ("project_companies", Scope.PROJECT),
        ("available_companies", Scope.PROJECT),
    ),
    "add_company_to_project": (
        ("project_companies", Scope.PROJECT),
        ("available_companies", Scope.PROJECT),
    ),
    "remove_company_from_project": (
        ("project_companies", Scope.PROJECT),
        ("available_companies", Scope.PROJECT),
    ),
    "add_note": (
        ("project", Scope.PROJECT),
    ),
    # Teams
    "create_team": (
        ("teams", Scope.ACTOR),
    ),
    "delete_team": (
        ("teams", Scope.ALL),
        ("team_members", Scope.TEAM),
        ("team_repository", Scope.TEAM),
        ("team_projects", Scope.TEAM),
    ),
    "remove_member": (
        ("team_members", Scope.TEAM),
    ),
    "create_invitation": (
        ("team_invitations", Scope.TEAM),
    ),
    "respond_to_invitation": (
        ("invitations", Scope.ACTOR),
        ("teams", Scope.ACTOR),
        ("visible_companies", Scope.ACTOR),
        ("team_members", Scope.TEAM),
        ("team_invitations", Scope.TEAM),
    ),
    # Profiles
    "update_profile": (
        ("profile", Scope.ACTOR),
    ),
}


def views_for(
    mutation: str,
    *,
    actor_id: str | None = None,
    company_id: str | None = None,
    project_id: str | None = None,
    team_id: str | None = None,
) -> list[str]:
    """Render the view keys a mutation invalidates.

    Views whose scope id is not supplied are skipped, e.g. a personal
    project has no ``team_projects`` slice.

    Raises:
        ValueError: If the mutation is not declared.
    """
    try:
        declared = MUTATION_VIEWS[mutation]
    except KeyError:
        raise ValueError(f"Unknown mutation '{mutation}'") from None

    scope_ids = {
        Scope.ACTOR: actor_id,
        Scope.COMPANY: company_id,
        Scope.PROJECT: project_id,
        Scope.TEAM: team_id,
    }

    keys = []
    for view, scope in declared:
        if scope == Scope.ALL:
            keys.append(f"{view}:*")
            continue
        scope_id = scope_ids[scope]
        if scope_id is not None:
            keys.append(f"{view}:{scope_id}")
    return keys
