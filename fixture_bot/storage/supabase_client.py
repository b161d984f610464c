# fixture_bot/storage/supabase_client.py
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger
from postgrest import APIResponse
from postgrest.exceptions import APIError
from supabase import AsyncClient, create_async_client

from fixture_bot.config.settings import settings
from fixture_bot.models.enums import IdentityMode, MatchFlag, MatchStatus
from fixture_bot.models.match import Match, MatchIdentity, MatchWrite
from fixture_bot.models.team import Team, TeamCreate
from fixture_bot.storage.base import DuplicateMatchError, StorageError

TEAMS_TABLE = "teams"
MATCHES_TABLE = "matches"

# Match columns plus both joined team rows
MATCH_SELECT = (
    "*, "
    "home_team:teams!home_team_id(id, name, logo, short_name), "
    "away_team:teams!away_team_id(id, name, logo, short_name)"
)

# PostgreSQL unique_violation
UNIQUE_VIOLATION = "23505"


async def initialize_supabase() -> AsyncClient:
    """Creates the async Supabase client used for all reads and writes."""
    key = settings.supabase_write_key
    if not settings.supabase_url or not key:
        logger.critical("Supabase URL or Key not configured in settings.")
        raise SystemExit("Supabase configuration missing.")

    logger.debug(
        f"Attempting to initialize Async Supabase client with URL: {settings.supabase_url}"
    )
    logger.debug(f"Using Supabase Key (snippet): {key[:5]}...{key[-5:]}")

    client: AsyncClient = await create_async_client(str(settings.supabase_url), key)
    logger.success("Async Supabase client initialized successfully.")
    return client


class SupabaseStore:
    """FixtureStore backed by the teams/matches tables in Supabase."""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def _execute(self, query: Any, action: str) -> APIResponse:
        try:
            return await query.execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DuplicateMatchError(f"{action}: {e.message}") from e
            logger.error(f"Supabase error during {action}: {e.message}")
            logger.debug(f"Full APIError details: {e}")
            raise StorageError(f"{action} failed: {e.message}") from e
        except httpx.HTTPError as e:
            logger.error(f"Network error during {action}: {e}")
            raise StorageError(f"{action} failed: {e}") from e

    # --- Teams ---

    async def get_team_by_name(self, name: str) -> Optional[Team]:
        response = await self._execute(
            self.client.table(TEAMS_TABLE).select("*").eq("name", name).limit(1),
            f"fetch team '{name}'",
        )
        return Team.model_validate(response.data[0]) if response.data else None

    async def upsert_team(self, team: TeamCreate) -> Team:
        response = await self._execute(
            self.client.table(TEAMS_TABLE).upsert(team.model_dump(), on_conflict="name"),
            f"upsert team '{team.name}'",
        )
        if not response.data:
            raise StorageError(f"Upsert of team '{team.name}' returned no row.")
        return Team.model_validate(response.data[0])

    # --- Matches ---

    async def find_match(
        self, identity: MatchIdentity, mode: IdentityMode
    ) -> Optional[Match]:
        query = self.client.table(MATCHES_TABLE).select("*")
        for column, value in identity.filters(mode).items():
            query = query.eq(column, value)
        response = await self._execute(query.limit(1), "find match")
        return Match.model_validate(response.data[0]) if response.data else None

    async def insert_match(self, write: MatchWrite) -> Match:
        row = write.insert_row()
        response = await self._execute(
            self.client.table(MATCHES_TABLE).insert(row), "insert match"
        )
        if not response.data:
            raise StorageError("Insert of match returned no row.")
        return Match.model_validate(response.data[0])

    async def update_match(self, match_id: int, fields: Dict[str, Any]) -> Match:
        response = await self._execute(
            self.client.table(MATCHES_TABLE).update(fields).eq("id", match_id),
            f"update match {match_id}",
        )
        if not response.data:
            raise StorageError(f"Match {match_id} not found for update.")
        return Match.model_validate(response.data[0])

    async def update_match_by_identity(
        self, identity: MatchIdentity, mode: IdentityMode, fields: Dict[str, Any]
    ) -> Optional[Match]:
        query = self.client.table(MATCHES_TABLE).update(fields)
        for column, value in identity.filters(mode).items():
            query = query.eq(column, value)
        response = await self._execute(query, "force update match")
        return Match.model_validate(response.data[0]) if response.data else None

    async def query_matches(
        self,
        start: datetime,
        end: datetime,
        status: MatchStatus = MatchStatus.SCHEDULED,
        unset_flag: Optional[MatchFlag] = None,
        limit: int = 100,
    ) -> List[Match]:
        query = (
            self.client.table(MATCHES_TABLE)
            .select(MATCH_SELECT)
            .gte("date", start.isoformat())
            .lte("date", end.isoformat())
            .eq("status", status.value)
        )
        if unset_flag is not None:
            query = query.eq(unset_flag.value, "false")
        response = await self._execute(
            query.order("date", desc=False).limit(limit), "query matches"
        )
        return [Match.model_validate(row) for row in response.data or []]

    async def list_flagged_matches(self) -> List[Match]:
        response = await self._execute(
            self.client.table(MATCHES_TABLE)
            .select("*")
            .or_("notified.eq.true,voice_room_created.eq.true"),
            "list flagged matches",
        )
        return [Match.model_validate(row) for row in response.data or []]

    async def delete_all_matches(self) -> int:
        # PostgREST refuses a DELETE without a filter
        response = await self._execute(
            self.client.table(MATCHES_TABLE).delete().gte("id", 0), "delete all matches"
        )
        deleted = len(response.data or [])
        logger.info(f"Deleted {deleted} match rows before sync.")
        return deleted
