from typing import Optional, Protocol, Set

from loguru import logger

from fixture_bot.clients.base_client import ClientError
from fixture_bot.models.team import Team, TeamCreate, TeamEnrichment
from fixture_bot.storage.base import FixtureStore
from fixture_bot.sync.coalesce import RequestCoalescer
from fixture_bot.utils.misc_utils import short_name_for


class TeamEnrichmentSource(Protocol):
    async def search_team(self, name: str) -> Optional[TeamEnrichment]: ...


class TeamResolver:
    """Finds or creates the team row for a feed team name."""

    def __init__(
        self,
        store: FixtureStore,
        enrichment: Optional[TeamEnrichmentSource] = None,
    ):
        self.store = store
        self.enrichment = enrichment
        self._coalescer = RequestCoalescer("teams")
        # Names whose missing logo was already searched for in this process
        self._logo_retried: Set[str] = set()

    async def resolve_team(self, name: str, logo_hint: str = "") -> Team:
        name = name.strip()
        if not name:
            raise ValueError("Team name must not be empty.")
        return await self._coalescer.run(
            name.lower(), lambda: self._resolve(name, logo_hint)
        )

    async def _resolve(self, name: str, logo_hint: str) -> Team:
        existing = await self.store.get_team_by_name(name)
        if existing is not None:
            if existing.logo or name in self._logo_retried:
                return existing
            self._logo_retried.add(name)
            logger.debug(f"Team '{name}' has no logo, retrying enrichment")

        enrichment = await self._enrich(name)
        logo = (enrichment.logo if enrichment else None) or logo_hint or ""
        short_name = (enrichment.short_name if enrichment else None) or (
            existing.short_name if existing else ""
        ) or short_name_for(name)

        if existing is not None and not logo:
            return existing

        team = await self.store.upsert_team(
            TeamCreate(name=name, logo=logo, short_name=short_name)
        )
        if existing is None:
            logger.info(f"Created team '{team.name}' ({team.short_name})")
        else:
            logger.info(f"Backfilled logo for team '{team.name}'")
        return team

    async def _enrich(self, name: str) -> Optional[TeamEnrichment]:
        if self.enrichment is None:
            return None
        try:
            return await self.enrichment.search_team(name)
        except ClientError as e:
            logger.warning(f"Team search failed for '{name}', using fallbacks: {e}")
            return None
