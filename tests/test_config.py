"""Tests for settings helpers."""

import pytest

from crmhub.core.config import Settings


@pytest.mark.parametrize(
    "url",
    [
        "postgres://crm:secret@db:5432/crmhub",
        "postgresql://crm:secret@db:5432/crmhub",
        "postgresql+asyncpg://crm:secret@db:5432/crmhub",
    ],
)
def test_async_database_url_uses_asyncpg(url) -> None:
    settings = Settings(database_url=url)
    assert settings.async_database_url == "postgresql+asyncpg://crm:secret@db:5432/crmhub"


def test_other_drivers_untouched() -> None:
    settings = Settings(database_url="sqlite+aiosqlite:///:memory:")
    assert settings.async_database_url == "sqlite+aiosqlite:///:memory:"


def test_search_config_requires_both_credentials() -> None:
    assert not Settings(google_api_key="key").has_search_config()
    assert Settings(google_api_key="key", google_search_engine_id="cx").has_search_config()
