from typing import Any, Dict, Optional

import httpx
from loguru import logger

from fixture_bot.clients.base_client import BaseClient, ClientError
from fixture_bot.config.settings import settings
from fixture_bot.models.team import TeamEnrichment


class SerpApiClient(BaseClient):
    """Google search results via SerpAPI, used as the fixture feed."""

    service_name = "SerpAPI"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(client)
        self.api_key = api_key or settings.serpapi_api_key
        if not self.api_key:
            raise ValueError("SERPAPI_API_KEY is not configured.")
        self.base_url = base_url or settings.serpapi_base_url

    async def search(self, query: str, location: Optional[str] = None) -> Dict[str, Any]:
        params = {
            "q": query,
            "location": location or settings.search_location,
            "api_key": self.api_key,
        }
        data = await self._get_json(self.base_url, params=params)
        if not isinstance(data, dict):
            raise ClientError(f"Unexpected SerpAPI payload type: {type(data)}")
        if data.get("error"):
            # SerpAPI reports some failures with a 200 and an error field
            raise ClientError(f"SerpAPI error for '{query}': {data['error']}")
        return data

    async def fetch_fixtures(self, query: str, location: Optional[str] = None) -> Dict[str, Any]:
        """Raw search response for a tracked club's fixtures."""
        logger.info(f"Fetching fixtures for '{query}'")
        return await self.search(f"{query} fixtures", location)

    async def search_team(self, name: str) -> Optional[TeamEnrichment]:
        """Logo lookup for a team; None when the search has no team panel."""
        data = await self.search(f"{name} football club")

        logo = None
        sports_results = data.get("sports_results")
        if isinstance(sports_results, dict):
            logo = sports_results.get("thumbnail")
        knowledge_graph = data.get("knowledge_graph")
        if not logo and isinstance(knowledge_graph, dict):
            logo = knowledge_graph.get("thumbnail") or knowledge_graph.get("image")

        if not isinstance(logo, str) or not logo:
            logger.debug(f"No team panel found for '{name}'")
            return None
        return TeamEnrichment(logo=logo)
