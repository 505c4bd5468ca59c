"""Tests for the pure access policy rules."""

from types import SimpleNamespace

import pytest

from crmhub.models import InvitationStatus, MemberRole
from crmhub.services.access_policy import (
    NO_MEMBERSHIPS,
    Actor,
    Memberships,
    can_add_company_to_project,
    can_add_team_review,
    can_delete_project,
    can_edit_company,
    can_link_company_to_team,
    can_manage_team,
    can_respond_to_invitation,
    can_view_company,
    can_view_project,
)

ALICE = Actor(id="alice", email="alice@example.com")
BOB = Actor(id="bob", email="bob@x.com")
MEMBER_OF_T = Memberships(roles={"T": MemberRole.MEMBER})
ADMIN_OF_T = Memberships(roles={"T": MemberRole.ADMIN})


def company(created_by="alice", team_id=None):
    return SimpleNamespace(created_by=created_by, team_id=team_id)


def project(created_by="alice", team_id=None):
    return SimpleNamespace(created_by=created_by, team_id=team_id)


def invitation(email="bob@x.com", status=InvitationStatus.PENDING):
    return SimpleNamespace(email=email, status=status)


class TestMemberships:
    def test_member_and_admin(self) -> None:
        assert MEMBER_OF_T.is_member("T")
        assert not MEMBER_OF_T.is_admin("T")
        assert ADMIN_OF_T.is_admin("T")
        assert not ADMIN_OF_T.is_member(None)
        assert MEMBER_OF_T.team_ids == ["T"]


class TestCanViewCompany:
    @pytest.mark.parametrize("actor", [ALICE, BOB, Actor(id="someone-else")])
    def test_public_company_visible_to_any_user(self, actor) -> None:
        assert can_view_company(actor, company(team_id=None))

    def test_team_company_hidden_from_outsider(self) -> None:
        assert not can_view_company(BOB, company(team_id="T"))

    def test_team_company_visible_through_each_path(self) -> None:
        owned = company(created_by="alice", team_id="T")
        assert can_view_company(BOB, owned, MEMBER_OF_T)
        assert can_view_company(BOB, owned, NO_MEMBERSHIPS, in_repository=True)
        assert can_view_company(ALICE, owned)

    def test_membership_in_another_team_does_not_help(self) -> None:
        other = Memberships(roles={"U": MemberRole.ADMIN})
        assert not can_view_company(BOB, company(team_id="T"), other)

    def test_unauthenticated_denied_even_for_public(self) -> None:
        assert not can_view_company(None, company(team_id=None))


class TestCanEditCompany:
    def test_creator_can_edit(self) -> None:
        assert can_edit_company(ALICE, company())

    def test_unrelated_user_cannot_edit_public_company(self) -> None:
        acme = company(created_by="alice")
        assert can_view_company(BOB, acme)
        assert not can_edit_company(BOB, acme)

    def test_team_admin_can_edit_but_member_cannot(self) -> None:
        owned = company(created_by="alice", team_id="T")
        assert can_edit_company(BOB, owned, ADMIN_OF_T)
        assert not can_edit_company(BOB, owned, MEMBER_OF_T)

    def test_company_without_creator(self) -> None:
        assert not can_edit_company(BOB, company(created_by=None))


class TestCanLinkCompanyToTeam:
    def test_member_links_unlinked_company(self) -> None:
        assert can_link_company_to_team(BOB, company(), "T", MEMBER_OF_T)

    def test_non_member_cannot_link(self) -> None:
        assert not can_link_company_to_team(BOB, company(), "T", NO_MEMBERSHIPS)

    @pytest.mark.parametrize("memberships", [MEMBER_OF_T, ADMIN_OF_T, NO_MEMBERSHIPS])
    def test_already_linked_is_denied_regardless_of_membership(self, memberships) -> None:
        assert not can_link_company_to_team(ALICE, company(team_id="T"), "T", memberships)

    def test_missing_team_id_denied(self) -> None:
        assert not can_link_company_to_team(BOB, company(), None, MEMBER_OF_T)


class TestTeamRules:
    def test_only_admins_manage(self) -> None:
        assert can_manage_team(ALICE, "T", ADMIN_OF_T)
        assert not can_manage_team(ALICE, "T", MEMBER_OF_T)
        assert not can_manage_team(None, "T", ADMIN_OF_T)

    def test_team_review_requires_linked_company_and_membership(self) -> None:
        assert can_add_team_review(BOB, company(team_id="T"), MEMBER_OF_T)
        assert not can_add_team_review(BOB, company(team_id=None), MEMBER_OF_T)
        assert not can_add_team_review(BOB, company(team_id="T"), NO_MEMBERSHIPS)


class TestCanRespondToInvitation:
    def test_addressee_can_respond(self) -> None:
        assert can_respond_to_invitation(BOB, invitation())

    def test_email_match_ignores_case_and_whitespace(self) -> None:
        assert can_respond_to_invitation(BOB, invitation(email="  Bob@X.com "))

    def test_other_user_cannot_respond(self) -> None:
        assert not can_respond_to_invitation(ALICE, invitation())

    @pytest.mark.parametrize("status", [InvitationStatus.ACCEPTED, InvitationStatus.DECLINED])
    def test_settled_invitation_denied(self, status) -> None:
        assert not can_respond_to_invitation(BOB, invitation(status=status))

    def test_actor_without_email_denied(self) -> None:
        assert not can_respond_to_invitation(Actor(id="bob"), invitation())


class TestProjectRules:
    def test_personal_project_only_for_creator(self) -> None:
        personal = project(created_by="alice")
        assert can_view_project(ALICE, personal)
        assert can_add_company_to_project(ALICE, personal)
        assert not can_add_company_to_project(BOB, personal)
        assert not can_view_project(BOB, personal)

    def test_team_project_open_to_members(self) -> None:
        shared = project(created_by="alice", team_id="T")
        assert can_add_company_to_project(BOB, shared, MEMBER_OF_T)
        assert not can_add_company_to_project(BOB, shared, NO_MEMBERSHIPS)

    def test_delete_requires_creator_or_team_admin(self) -> None:
        shared = project(created_by="alice", team_id="T")
        assert can_delete_project(ALICE, shared)
        assert can_delete_project(BOB, shared, ADMIN_OF_T)
        assert not can_delete_project(BOB, shared, MEMBER_OF_T)


@pytest.mark.parametrize(
    "rule, args",
    [
        (can_view_company, (company(),)),
        (can_edit_company, (company(created_by=None),)),
        (can_link_company_to_team, (company(), "T", ADMIN_OF_T)),
        (can_add_team_review, (company(team_id="T"), ADMIN_OF_T)),
        (can_manage_team, ("T", ADMIN_OF_T)),
        (can_respond_to_invitation, (invitation(),)),
        (can_view_project, (project(created_by=None, team_id="T"), ADMIN_OF_T)),
        (can_add_company_to_project, (project(created_by=None, team_id="T"), ADMIN_OF_T)),
        (can_delete_project, (project(created_by=None, team_id="T"), ADMIN_OF_T)),
    ],
)
def test_unauthenticated_actor_denied_by_every_rule(rule, args) -> None:
    assert rule(None, *args) is False
