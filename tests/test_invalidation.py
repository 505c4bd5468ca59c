"""Tests for per-mutation view invalidation."""

import pytest

from crmhub.services.invalidation import MUTATION_VIEWS, views_for


def test_add_to_repository_touches_only_the_actors_views() -> None:
    assert views_for("add_to_repository", actor_id="u1", company_id="c1") == [
        "personal_repository:u1",
        "visible_companies:u1",
    ]


def test_link_to_team_reaches_every_viewer() -> None:
    keys = views_for("link_to_team", actor_id="u1", company_id="c1", team_id="t1")
    assert keys == ["company:c1", "team_repository:t1", "visible_companies:*"]


def test_views_without_scope_id_are_skipped() -> None:
    assert views_for("create_project", actor_id="u1", project_id="p1") == ["projects:u1"]
    assert views_for("create_project", actor_id="u1", team_id="t1") == [
        "projects:u1",
        "team_projects:t1",
    ]


def test_unknown_mutation() -> None:
    with pytest.raises(ValueError):
        views_for("drop_everything", actor_id="u1")


@pytest.mark.parametrize("mutation", sorted(MUTATION_VIEWS))
def test_every_mutation_declares_views(mutation) -> None:
    assert MUTATION_VIEWS[mutation]
    keys = views_for(mutation, actor_id="u", company_id="c", project_id="p", team_id="t")
    assert len(keys) == len(set(keys)) == len(MUTATION_VIEWS[mutation])
