"""HTTP API tests: routing, auth wiring and error-category mapping."""

from types import SimpleNamespace

import httpx
import pytest_asyncio
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from crmhub.api.deps import get_search_client
from crmhub.api.main import create_app
from crmhub.core.supabase import get_current_actor
from crmhub.models.database import get_session
from crmhub.services.access_policy import Actor
from crmhub.services.company_search import PartialCompany


class FakeSearchClient:
    def __init__(self, hits=()):
        self.hits = list(hits)

    async def search(self, query: str) -> list[PartialCompany]:
        return [h for h in self.hits if query.lower() in h.name.lower()]


@pytest_asyncio.fixture
async def api(db):
    """App wired to the test session, with a switchable signed-in actor."""
    app = create_app()
    state = SimpleNamespace(actor=None, search=FakeSearchClient())

    async def override_session():
        yield db

    async def override_actor():
        if state.actor is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return state.actor

    def override_search_client():
        return state.search

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_current_actor] = override_actor
    app.dependency_overrides[get_search_client] = override_search_client

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        state.client = client
        yield state


class TestHealth:
    async def test_health_without_database(self, api) -> None:
        response = await api.client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["database"] == "not initialized"
        assert body["status"] == "degraded"

    async def test_probes(self, api) -> None:
        assert (await api.client.get("/api/live")).json() == {"alive": True}
        assert (await api.client.get("/api/ready")).json() == {"ready": True}


class TestAuthentication:
    async def test_missing_bearer_token(self, db) -> None:
        app = create_app()

        async def override_session():
            yield db

        app.dependency_overrides[get_session] = override_session
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/companies")
        assert response.status_code == 401

    async def test_first_request_creates_profile(self, api) -> None:
        api.actor = Actor(id="0b8d6a52-6c55-4a55-9d0e-6a1f5c0b2e11", email="new@x.com")
        response = await api.client.get("/api/profiles/me")
        assert response.status_code == 200
        assert response.json()["email"] == "new@x.com"


class TestCompanyEndpoints:
    async def test_repository_add_invalidates_only_own_views(self, api, make_user) -> None:
        api.actor = await make_user()

        response = await api.client.post("/api/companies/repository", json={"name": "Acme"})

        assert response.status_code == 201
        body = response.json()
        assert body["invalidates"] == [
            f"personal_repository:{api.actor.id}",
            f"visible_companies:{api.actor.id}",
        ]
        listed = (await api.client.get("/api/companies/repository")).json()
        assert [c["id"] for c in listed["items"]] == [body["company"]["id"]]

    async def test_duplicate_repository_entry_is_409(self, api, make_user) -> None:
        api.actor = await make_user()
        first = await api.client.post("/api/companies/repository", json={"name": "Acme"})
        company = first.json()["company"]

        again = await api.client.post(
            "/api/companies/repository", json={"id": company["id"], "name": "Acme"}
        )

        assert again.status_code == 409
        assert again.json()["category"] == "duplicate"

    async def test_request_validation_is_422(self, api, make_user) -> None:
        api.actor = await make_user()
        response = await api.client.post("/api/companies/repository", json={})
        assert response.status_code == 422
        assert response.json()["category"] == "validation"

    async def test_missing_company_is_404(self, api, make_user) -> None:
        api.actor = await make_user()
        response = await api.client.get("/api/companies/does-not-exist")
        assert response.status_code == 404
        body = response.json()
        assert body["category"] == "lookup"
        assert body["details"]["resource"] == "Company"

    async def test_link_to_foreign_team_is_403(self, api, make_user, make_team, make_company) -> None:
        owner, alice = await make_user(), await make_user()
        team_id = await make_team(owner)
        acme = await make_company("Acme", created_by=alice.id)
        api.actor = alice

        response = await api.client.post(
            f"/api/companies/{acme.id}/team", json={"team_id": team_id}
        )

        assert response.status_code == 403
        assert response.json()["category"] == "permission"

    async def test_reviews_and_average(self, api, make_user, make_company) -> None:
        api.actor = await make_user()
        acme = await make_company("Acme")

        bad = await api.client.post(f"/api/companies/{acme.id}/reviews", json={"rating": 6})
        assert bad.status_code == 422
        assert bad.json()["category"] == "validation"

        for rating in (5, 4, 4):
            created = await api.client.post(
                f"/api/companies/{acme.id}/reviews", json={"rating": rating}
            )
            assert created.status_code == 201
        assert created.json()["invalidates"] == [f"company_reviews:{acme.id}"]

        detail = (await api.client.get(f"/api/companies/{acme.id}")).json()
        assert len(detail["reviews"]) == 3
        assert detail["average_rating"] == 4.3

    async def test_search_returns_local_and_external(self, api, make_user, make_company) -> None:
        api.actor = await make_user()
        acme = await make_company("Acme Logistics")
        fresh = PartialCompany(id="5d7c1f8e-0000-5000-8000-000000000001", name="Acme Shipping")
        api.search = FakeSearchClient([fresh])

        body = (await api.client.get("/api/companies/search", params={"q": "acme"})).json()

        assert [c["id"] for c in body["local"]] == [acme.id]
        assert [c["id"] for c in body["external"]] == [fresh.id]


class TestProjectEndpoints:
    async def test_stranger_cannot_add_company(self, api, make_user, make_company) -> None:
        owner, stranger = await make_user(), await make_user()
        acme = await make_company("Acme")
        api.actor = owner
        created = await api.client.post("/api/projects", json={"name": "Q3"})
        assert created.status_code == 201
        project_id = created.json()["project"]["id"]

        api.actor = stranger
        response = await api.client.post(
            f"/api/projects/{project_id}/companies", json={"company_id": acme.id}
        )
        assert response.status_code == 403

        api.actor = owner
        added = await api.client.post(
            f"/api/projects/{project_id}/companies", json={"company_id": acme.id}
        )
        assert added.status_code == 201
        companies = (await api.client.get(f"/api/projects/{project_id}/companies")).json()
        assert companies["total"] == 1


class TestTeamEndpoints:
    async def test_invitation_round_trip(self, api, make_user) -> None:
        admin = await make_user("admin@x.com")
        bob = await make_user("bob@x.com")

        api.actor = admin
        team = (await api.client.post("/api/teams", json={"name": "Sales"})).json()["team"]
        invite = await api.client.post(
            f"/api/teams/{team['id']}/invitations", json={"email": "bob@x.com"}
        )
        assert invite.status_code == 201
        assert "token" not in invite.json()["invitation"]

        api.actor = bob
        mine = (await api.client.get("/api/teams/invitations")).json()
        assert mine["total"] == 1
        assert mine["items"][0]["team_name"] == "Sales"
        invitation_id = mine["items"][0]["id"]

        accepted = await api.client.post(
            f"/api/teams/invitations/{invitation_id}/respond", json={"accept": True}
        )
        assert accepted.status_code == 200
        assert accepted.json()["invitation"]["status"] == "accepted"

        again = await api.client.post(
            f"/api/teams/invitations/{invitation_id}/respond", json={"accept": True}
        )
        assert again.status_code == 409
        assert again.json()["category"] == "conflict"

        members = (await api.client.get(f"/api/teams/{team['id']}/members")).json()
        assert members["total"] == 2


class TestProfileAndLicense:
    async def test_update_profile(self, api, make_user) -> None:
        api.actor = await make_user()
        response = await api.client.patch("/api/profiles/me", json={"first_name": "Mari"})
        assert response.status_code == 200
        body = response.json()
        assert body["profile"]["first_name"] == "Mari"
        assert body["invalidates"] == [f"profile:{api.actor.id}"]

    async def test_license_defaults_to_free(self, api, make_user) -> None:
        api.actor = await make_user()
        license_ = (await api.client.get("/api/licenses/me")).json()
        assert license_["license_type"] == "free"
        check = (await api.client.get("/api/licenses/me/features/api_access")).json()
        assert check == {"feature": "api_access", "granted": False}


async def test_store_outage_is_503(db) -> None:
    app = create_app()

    async def broken_session():
        raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    app.dependency_overrides[get_session] = broken_session
    app.dependency_overrides[get_current_actor] = lambda: None
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/companies")

    assert response.status_code == 503
    assert response.json()["category"] == "transient"
