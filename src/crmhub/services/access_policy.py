"""Access policy engine.

Pure allow/deny decisions over facts the caller has already fetched
(team memberships, repository entries, ownership columns). Nothing here
touches the database.

Rules:
- a null ``team_id`` means public (companies) or personal (projects),
  never inaccessible;
- a missing actor (unauthenticated) is denied everything.

Resources are duck-typed: any object with the attributes a rule reads
(``created_by``, ``team_id``, ``email``, ``status``) will do, so ORM rows
and plain test doubles are both accepted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from crmhub.models.team import InvitationStatus, MemberRole


@dataclass(frozen=True)
class Actor:
    """Authenticated user identity supplied by the auth collaborator."""

    id: str
    email: str | None = None


@dataclass(frozen=True)
class Memberships:
    """An actor's team memberships, keyed by team id."""

    roles: Mapping[str, MemberRole] = field(default_factory=dict)

    @property
    def team_ids(self) -> list[str]:
        return list(self.roles)

    def is_member(self, team_id: Optional[str]) -> bool:
        return team_id is not None and team_id in self.roles

    def is_admin(self, team_id: Optional[str]) -> bool:
        return self.is_member(team_id) and self.roles[team_id] == MemberRole.ADMIN


NO_MEMBERSHIPS = Memberships()


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _is_creator(actor: Actor, resource: Any) -> bool:
    created_by = getattr(resource, "created_by", None)
    return created_by is not None and created_by == actor.id


# =========================================================================
# Companies
# =========================================================================


def can_view_company(
    actor: Actor | None,
    company: Any,
    memberships: Memberships = NO_MEMBERSHIPS,
    in_repository: bool = False,
) -> bool:
    """Public, team member, in the actor's repository, or the creator."""
    if actor is None:
        return False
    if company.team_id is None:
        return True
    return (
        memberships.is_member(company.team_id)
        or in_repository
        or _is_creator(actor, company)
    )


def can_edit_company(
    actor: Actor | None,
    company: Any,
    memberships: Memberships = NO_MEMBERSHIPS,
) -> bool:
    """The creator, or an admin of the owning team."""
    if actor is None:
        return False
    return _is_creator(actor, company) or memberships.is_admin(company.team_id)


def can_link_company_to_team(
    actor: Actor | None,
    company: Any,
    team_id: Optional[str],
    memberships: Memberships = NO_MEMBERSHIPS,
) -> bool:
    """Company still unlinked and the actor belongs to the target team."""
    if actor is None or team_id is None:
        return False
    if company.team_id is not None:
        return False
    return memberships.is_member(team_id)


def can_add_team_review(
    actor: Actor | None,
    company: Any,
    memberships: Memberships = NO_MEMBERSHIPS,
) -> bool:
    """Team reviews need a linked company and a member of that team."""
    if actor is None or company.team_id is None:
        return False
    return memberships.is_member(company.team_id)


# =========================================================================
# Teams and invitations
# =========================================================================


def can_manage_team(
    actor: Actor | None,
    team_id: Optional[str],
    memberships: Memberships = NO_MEMBERSHIPS,
) -> bool:
    """Only admins delete teams and manage members or invitations."""
    if actor is None:
        return False
    return memberships.is_admin(team_id)


def can_respond_to_invitation(actor: Actor | None, invitation: Any) -> bool:
    """Addressed to the actor's email and still pending."""
    if actor is None or not actor.email:
        return False
    if _normalize_email(invitation.email) != _normalize_email(actor.email):
        return False
    return invitation.status == InvitationStatus.PENDING


# =========================================================================
# Projects
# =========================================================================


def can_view_project(
    actor: Actor | None,
    project: Any,
    memberships: Memberships = NO_MEMBERSHIPS,
) -> bool:
    if actor is None:
        return False
    return _is_creator(actor, project) or memberships.is_member(project.team_id)


def can_add_company_to_project(
    actor: Actor | None,
    project: Any,
    memberships: Memberships = NO_MEMBERSHIPS,
) -> bool:
    """The project creator, or a member of the team it is shared with."""
    return can_view_project(actor, project, memberships)


def can_delete_project(
    actor: Actor | None,
    project: Any,
    memberships: Memberships = NO_MEMBERSHIPS,
) -> bool:
    if actor is None:
        return False
    return _is_creator(actor, project) or memberships.is_admin(project.team_id)


__all__ = [
    "Actor",
    "Memberships",
    "NO_MEMBERSHIPS",
    "can_view_company",
    "can_edit_company",
    "can_link_company_to_team",
    "can_add_team_review",
    "can_manage_team",
    "can_respond_to_invitation",
    "can_view_project",
    "can_add_company_to_project",
    "can_delete_project",
]
