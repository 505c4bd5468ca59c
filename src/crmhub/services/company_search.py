"""External company search.

Queries the Google Custom Search JSON API, restricted to a company
registry site, and maps hits to company-shaped candidates. Results are
never authoritative: they only reach the database through
``CompanyService.add_to_repository``.
"""

import logging
import uuid
from typing import Optional

import httpx
from pydantic import BaseModel

from crmhub.core.config import Settings, get_settings
from crmhub.services.errors import UnavailableError

logger = logging.getLogger(__name__)


class PartialCompany(BaseModel):
    """Company-shaped candidate, from a search hit or a client payload."""

    id: Optional[str] = None
    name: str
    industry: Optional[str] = None
    sales_volume: Optional[str] = None
    growth: Optional[str] = None
    website: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None


def external_company_id(link: str) -> str:
    """Stable id for a search hit, so the same hit always maps to one row."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, link))


class CompanySearchClient:
    """Thin async client for the external search provider."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    async def search(self, query: str) -> list[PartialCompany]:
        """Search the provider for companies matching ``query``.

        Returns an empty list for a blank query or missing configuration.

        Raises:
            UnavailableError: On transport or HTTP errors.
        """
        query = query.strip()
        if not query:
            return []
        if not self.settings.has_search_config():
            logger.warning("Google search API configuration missing, skipping external search")
            return []

        params = {
            "key": self.settings.google_api_key,
            "cx": self.settings.google_search_engine_id,
            "q": f"{query} site:{self.settings.search_site}",
        }

        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=self.settings.search_timeout_seconds,
            ) as client:
                response = await client.get(self.settings.google_search_api_base, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Company search failed: {e}")
            raise UnavailableError("Company search provider unavailable") from e
        except ValueError as e:
            logger.warning(f"Company search returned malformed JSON: {e}")
            raise UnavailableError("Company search provider returned an invalid response") from e

        if not isinstance(data, dict):
            logger.warning(f"Company search returned unexpected payload: {type(data).__name__}")
            raise UnavailableError("Company search provider returned an invalid response")

        items = data.get("items") or []
        logger.info(f"Company search for '{query}' returned {len(items)} results")
        return [self._to_partial(item) for item in items if item.get("link")]

    @staticmethod
    def _to_partial(item: dict) -> PartialCompany:
        link = item["link"]
        snippet = item.get("snippet") or ""
        return PartialCompany(
            id=external_company_id(link),
            name=item.get("title") or link,
            industry=snippet.split(" - ")[0] or None,
            website=link,
        )
