"""Tests for company visibility, repositories and team linking."""

import uuid
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from crmhub.models import Company, CompanyRepositoryEntry
from crmhub.services.company_search import PartialCompany, external_company_id
from crmhub.services.company_service import CompanyService, dedupe_by_id
from crmhub.services.errors import (
    AlreadyExistsError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)


class FakeSearchClient:
    """Stands in for the external provider."""

    def __init__(self, hits: list[PartialCompany]):
        self.hits = hits
        self.queries: list[str] = []

    async def search(self, query: str) -> list[PartialCompany]:
        self.queries.append(query)
        return self.hits


def test_dedupe_by_id_keeps_first_occurrence_in_order() -> None:
    a1, b, a2, c = (SimpleNamespace(id=i, tag=t) for i, t in [("a", 1), ("b", 2), ("a", 3), ("c", 4)])
    merged = dedupe_by_id([a1, b], [a2, c])
    assert [(x.id, x.tag) for x in merged] == [("a", 1), ("b", 2), ("c", 4)]


class TestVisibleCompanies:
    async def test_public_companies_visible_to_everyone(self, db, make_user, make_company) -> None:
        alice, bob = await make_user(), await make_user()
        acme = await make_company("Acme", created_by=alice.id)

        visible = await CompanyService(db).visible_companies_for_user(bob)
        assert [c.id for c in visible] == [acme.id]

    async def test_team_company_visibility_paths(
        self, db, make_user, make_team, make_company
    ) -> None:
        alice, member, listed, outsider = (
            await make_user(), await make_user(), await make_user(), await make_user()
        )
        team_id = await make_team(alice, member)
        secret = await make_company("Secret", created_by=alice.id, team_id=team_id)
        db.add(CompanyRepositoryEntry(company_id=secret.id, user_id=listed.id))
        await db.commit()

        service = CompanyService(db)
        for actor in (alice, member, listed):
            assert secret.id in [c.id for c in await service.visible_companies_for_user(actor)]
        assert await service.visible_companies_for_user(outsider) == []

    async def test_no_duplicates_when_qualifying_twice(
        self, db, make_user, make_team, make_company
    ) -> None:
        alice = await make_user()
        team_id = await make_team(alice)
        public = await make_company("Public", created_by=alice.id)
        owned = await make_company("Owned", created_by=alice.id, team_id=team_id)
        db.add_all([
            CompanyRepositoryEntry(company_id=public.id, user_id=alice.id),
            CompanyRepositoryEntry(company_id=owned.id, user_id=alice.id),
        ])
        await db.commit()

        ids = [c.id for c in await CompanyService(db).visible_companies_for_user(alice)]
        assert sorted(ids) == sorted([public.id, owned.id])
        assert len(ids) == len(set(ids))

    async def test_unauthenticated_gets_empty_sets(self, db, make_company) -> None:
        await make_company("Acme")
        service = CompanyService(db)
        assert await service.visible_companies_for_user(None) == []
        assert await service.personal_repository(None) == []
        assert await service.team_repository(None) == []

    async def test_team_repository_only_lists_own_teams(
        self, db, make_user, make_team, make_company
    ) -> None:
        alice, bob = await make_user(), await make_user()
        team_a = await make_team(alice, name="A")
        team_b = await make_team(bob, name="B")
        mine = await make_company("Mine", team_id=team_a)
        await make_company("Theirs", team_id=team_b)
        await make_company("Public")

        service = CompanyService(db)
        assert [c.id for c in await service.team_repository(alice)] == [mine.id]
        assert await service.team_repository(alice, team_id=team_b) == []


class TestGetVisibleCompany:
    async def test_missing_company(self, db, make_user) -> None:
        alice = await make_user()
        with pytest.raises(NotFoundError):
            await CompanyService(db).get_visible_company(alice, str(uuid.uuid4()))

    async def test_private_company_forbidden(self, db, make_user, make_team, make_company) -> None:
        alice, bob = await make_user(), await make_user()
        team_id = await make_team(alice)
        secret = await make_company("Secret", team_id=team_id)
        with pytest.raises(ForbiddenError):
            await CompanyService(db).get_visible_company(bob, secret.id)


class TestCreateAndUpdate:
    async def test_create_company_files_it_in_repository(self, db, make_user) -> None:
        alice = await make_user()
        service = CompanyService(db)
        company = await service.create_company(alice, PartialCompany(name="  Acme OÜ "))

        assert company.name == "Acme OÜ"
        assert company.created_by == alice.id
        assert company.team_id is None
        assert [c.id for c in await service.personal_repository(alice)] == [company.id]

    async def test_create_requires_name(self, db, make_user) -> None:
        alice = await make_user()
        with pytest.raises(InvalidInputError):
            await CompanyService(db).create_company(alice, PartialCompany(name="   "))

    async def test_creator_updates_descriptive_fields(self, db, make_user, make_company) -> None:
        alice = await make_user()
        acme = await make_company("Acme", created_by=alice.id)
        updated = await CompanyService(db).update_company(
            alice, acme.id, {"industry": "Logistics", "notes": "Call in May"}
        )
        assert updated.industry == "Logistics"
        assert updated.notes == "Call in May"

    async def test_unrelated_user_cannot_update(self, db, make_user, make_company) -> None:
        alice, bob = await make_user(), await make_user()
        acme = await make_company("Acme", created_by=alice.id)
        with pytest.raises(ForbiddenError):
            await CompanyService(db).update_company(bob, acme.id, {"industry": "Retail"})

    async def test_ownership_fields_not_editable(self, db, make_user, make_company) -> None:
        alice = await make_user()
        acme = await make_company("Acme", created_by=alice.id)
        with pytest.raises(InvalidInputError):
            await CompanyService(db).update_company(alice, acme.id, {"team_id": "T"})


class TestAddToRepository:
    async def test_new_candidate_creates_company_and_entry(self, db, make_user) -> None:
        alice = await make_user()
        link = "https://www.teatmik.ee/en/personlegal/10000000-Acme"
        candidate = PartialCompany(id=external_company_id(link), name="Acme", website=link)

        company = await CompanyService(db).add_to_repository(alice, candidate)

        assert company.id == external_company_id(link)
        assert company.created_by == alice.id
        assert await _entry_id(db, alice.id, company.id)

    async def test_second_add_fails_and_company_created_once(self, db, make_user) -> None:
        alice = await make_user()
        candidate = PartialCompany(id=str(uuid.uuid4()), name="Acme")
        service = CompanyService(db)

        await service.add_to_repository(alice, candidate)
        with pytest.raises(AlreadyExistsError):
            await service.add_to_repository(alice, candidate)

        assert await _count(db, Company) == 1
        assert await _count(db, CompanyRepositoryEntry) == 1

    async def test_second_user_reuses_existing_company(self, db, make_user) -> None:
        alice, bob = await make_user(), await make_user()
        candidate = PartialCompany(id=str(uuid.uuid4()), name="Acme")
        service = CompanyService(db)

        first = await service.add_to_repository(alice, candidate)
        second = await service.add_to_repository(bob, candidate)

        assert first.id == second.id
        assert second.created_by == alice.id
        assert await _count(db, Company) == 1
        assert await _count(db, CompanyRepositoryEntry) == 2

    async def test_team_private_company_cannot_be_collected(
        self, db, make_user, make_team, make_company
    ) -> None:
        alice, bob = await make_user(), await make_user()
        team_id = await make_team(alice)
        secret = await make_company("Secret", team_id=team_id)
        with pytest.raises(ForbiddenError):
            await CompanyService(db).add_to_repository(
                bob, PartialCompany(id=secret.id, name="Secret")
            )

    async def test_failed_entry_rolls_back_new_company(self, db, make_user) -> None:
        """Creating the company and its entry is all or nothing."""
        alice = await make_user()
        company_id = str(uuid.uuid4())
        # An entry racing in for a company row that is not there yet
        db.add(CompanyRepositoryEntry(company_id=company_id, user_id=alice.id))
        await db.commit()

        with pytest.raises(AlreadyExistsError):
            await CompanyService(db).add_to_repository(
                alice, PartialCompany(id=company_id, name="Acme")
            )

        assert await db.get(Company, company_id) is None

    async def test_unauthenticated_rejected(self, db) -> None:
        with pytest.raises(ForbiddenError):
            await CompanyService(db).add_to_repository(None, PartialCompany(name="Acme"))


class TestRemoveFromRepository:
    async def test_remove_is_idempotent(self, db, make_user, make_company) -> None:
        alice = await make_user()
        acme = await make_company("Acme")
        db.add(CompanyRepositoryEntry(company_id=acme.id, user_id=alice.id))
        await db.commit()

        service = CompanyService(db)
        assert await service.remove_from_repository(alice, acme.id) is True
        assert await service.remove_from_repository(alice, acme.id) is False
        assert await service.personal_repository(alice) == []


class TestLinkToTeam:
    async def test_link_then_relink_is_forbidden(self, db, make_user, make_team, make_company) -> None:
        admin, member = await make_user(), await make_user()
        team_t = await make_team(admin, member, name="T")
        team_t2 = await make_team(member, name="T2")
        acme = await make_company("Acme", created_by=admin.id)
        service = CompanyService(db)

        linked = await service.link_to_team(admin, acme.id, team_t)
        assert linked.team_id == team_t

        with pytest.raises(ForbiddenError):
            await service.link_to_team(member, acme.id, team_t2)
        assert (await service.get_company(acme.id)).team_id == team_t

    async def test_relink_to_missing_team_is_forbidden(
        self, db, make_user, make_team, make_company
    ) -> None:
        admin = await make_user()
        team_id = await make_team(admin)
        acme = await make_company("Acme", created_by=admin.id, team_id=team_id)
        with pytest.raises(ForbiddenError):
            await CompanyService(db).link_to_team(admin, acme.id, str(uuid.uuid4()))

    async def test_non_member_cannot_link(self, db, make_user, make_team, make_company) -> None:
        alice, bob = await make_user(), await make_user()
        team_id = await make_team(alice)
        acme = await make_company("Acme", created_by=bob.id)
        with pytest.raises(ForbiddenError):
            await CompanyService(db).link_to_team(bob, acme.id, team_id)

    async def test_missing_entities(self, db, make_user, make_team, make_company) -> None:
        alice = await make_user()
        team_id = await make_team(alice)
        acme = await make_company("Acme")
        service = CompanyService(db)
        with pytest.raises(NotFoundError):
            await service.link_to_team(alice, str(uuid.uuid4()), team_id)
        with pytest.raises(NotFoundError):
            await service.link_to_team(alice, acme.id, str(uuid.uuid4()))

    async def test_linking_hides_company_from_outsiders(
        self, db, make_user, make_team, make_company
    ) -> None:
        alice, outsider = await make_user(), await make_user()
        team_id = await make_team(alice)
        acme = await make_company("Acme", created_by=alice.id)
        service = CompanyService(db)
        assert [c.id for c in await service.visible_companies_for_user(outsider)] == [acme.id]

        await service.link_to_team(alice, acme.id, team_id)

        assert await service.visible_companies_for_user(outsider) == []
        assert [c.id for c in await service.team_repository(alice)] == [acme.id]


class TestSearch:
    async def test_local_match_is_case_insensitive(self, db, make_user, make_company) -> None:
        alice = await make_user()
        acme = await make_company("Acme Logistics")
        await make_company("Globex")

        local, external = await CompanyService(db).search(alice, "acme")
        assert [c.id for c in local] == [acme.id]
        assert external == []

    async def test_external_hits_already_stored_are_dropped(
        self, db, make_user, make_team, make_company
    ) -> None:
        alice, bob = await make_user(), await make_user()
        team_id = await make_team(bob)
        # Stored but invisible to alice; still not offered as new
        hidden = await make_company("Acme Hidden", team_id=team_id)
        fresh = PartialCompany(id=str(uuid.uuid4()), name="Acme New")
        client = FakeSearchClient([PartialCompany(id=hidden.id, name="Acme Hidden"), fresh])

        local, external = await CompanyService(db, search_client=client).search(alice, " Acme ")

        assert local == []
        assert external == [fresh]
        assert client.queries == ["Acme"]

    async def test_blank_query_returns_visible_set(self, db, make_user, make_company) -> None:
        alice = await make_user()
        await make_company("Acme")
        client = FakeSearchClient([])
        local, external = await CompanyService(db, search_client=client).search(alice, "  ")
        assert len(local) == 1
        assert external == []
        assert client.queries == []


async def _count(db, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


async def _entry_id(db, user_id: str, company_id: str) -> str:
    result = await db.execute(
        select(CompanyRepositoryEntry.id).where(
            CompanyRepositoryEntry.user_id == user_id,
            CompanyRepositoryEntry.company_id == company_id,
        )
    )
    return result.scalar_one()
