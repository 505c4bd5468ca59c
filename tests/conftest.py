"""Shared fixtures: an in-memory SQLite store and entity factories."""

import uuid
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from crmhub.models import Base, Company, MemberRole, Profile, TeamMember
from crmhub.services.access_policy import Actor
from crmhub.services.team_service import TeamService


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    """Create a profile and return the matching Actor."""

    async def _make(email: Optional[str] = None) -> Actor:
        user_id = str(uuid.uuid4())
        email = email or f"user-{user_id[:8]}@example.com"
        db.add(Profile(id=user_id, email=email))
        await db.commit()
        return Actor(id=user_id, email=email)

    return _make


@pytest.fixture
def make_team(db):
    """Create a team with ``admin`` as admin and ``members`` as plain members."""

    async def _make(admin: Actor, *members: Actor, name: str = "Sales") -> str:
        team = await TeamService(db).create_team(admin, name)
        for member in members:
            db.add(TeamMember(team_id=team.id, user_id=member.id, role=MemberRole.MEMBER))
        await db.commit()
        return team.id

    return _make


@pytest.fixture
def make_company(db):
    """Insert a company directly, without any repository entry."""

    async def _make(
        name: str = "Acme",
        created_by: Optional[str] = None,
        team_id: Optional[str] = None,
        **fields,
    ) -> Company:
        company = Company(
            name=name,
            created_by=created_by,
            team_id=team_id,
            reviews=fields.pop("reviews", []),
            team_reviews=fields.pop("team_reviews", []),
            comments=fields.pop("comments", []),
            **fields,
        )
        db.add(company)
        await db.commit()
        return company

    return _make
