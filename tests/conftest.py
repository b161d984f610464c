"""Shared fakes for the sync pipeline tests.

``InMemoryStore`` behaves like the Supabase tables: team names are unique,
matches carry a unique identity constraint and rows come back as validated
models. The fake upstream clients record their calls so tests can assert
on coalescing and fallbacks.
"""

import asyncio
import itertools
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import pytest

from fixture_bot.clients.base_client import ClientError
from fixture_bot.clients.openrouter_client import OddsEstimationError
from fixture_bot.models.club import ClubConfig
from fixture_bot.models.enums import IdentityMode, MatchFlag, MatchStatus
from fixture_bot.models.match import Match, MatchIdentity, MatchWrite
from fixture_bot.models.odds import MatchOdds
from fixture_bot.models.team import Team, TeamCreate, TeamEnrichment
from fixture_bot.storage.base import DuplicateMatchError, StorageError
from fixture_bot.utils.misc_utils import FEED_TZ

# Wednesday
NOW = datetime(2025, 8, 20, 12, 0, tzinfo=FEED_TZ)


class InMemoryStore:
    def __init__(self, unique_mode: IdentityMode = IdentityMode.CALENDAR_DATE):
        self.unique_mode = unique_mode
        self.teams: Dict[int, Team] = {}
        self.rows: Dict[int, Dict[str, Any]] = {}
        self._team_ids = itertools.count(1)
        self._match_ids = itertools.count(1)

        self.team_lookups = 0
        self.team_writes = 0
        self.match_writes = 0
        # Number of upcoming find_match calls that pretend to see nothing
        self.hide_matches = 0
        self.fail_force_update = False

    # --- Teams ---

    async def get_team_by_name(self, name: str) -> Optional[Team]:
        self.team_lookups += 1
        await asyncio.sleep(0)
        return next((team for team in self.teams.values() if team.name == name), None)

    async def upsert_team(self, team: TeamCreate) -> Team:
        self.team_writes += 1
        await asyncio.sleep(0)
        existing = next((t for t in self.teams.values() if t.name == team.name), None)
        team_id = existing.id if existing else next(self._team_ids)
        stored = Team(id=team_id, **team.model_dump())
        self.teams[team_id] = stored
        return stored

    def add_team(self, name: str, logo: str = "", short_name: str = "") -> Team:
        team = Team(id=next(self._team_ids), name=name, logo=logo, short_name=short_name)
        self.teams[team.id] = team
        return team

    # --- Matches ---

    def _matches_filters(self, row: Dict[str, Any], filters: Dict[str, Any]) -> bool:
        return all(row[column] == value for column, value in filters.items())

    def _to_match(self, row: Dict[str, Any], with_teams: bool = False) -> Match:
        data = dict(row)
        if with_teams:
            data["home_team"] = self.teams.get(row["home_team_id"])
            data["away_team"] = self.teams.get(row["away_team_id"])
        return Match.model_validate(data)

    async def find_match(
        self, identity: MatchIdentity, mode: IdentityMode
    ) -> Optional[Match]:
        await asyncio.sleep(0)
        if self.hide_matches:
            self.hide_matches -= 1
            return None
        filters = identity.filters(mode)
        for row in self.rows.values():
            if self._matches_filters(row, filters):
                return self._to_match(row)
        return None

    async def insert_match(self, write: MatchWrite) -> Match:
        await asyncio.sleep(0)
        unique = write.identity().filters(self.unique_mode)
        if any(self._matches_filters(row, unique) for row in self.rows.values()):
            raise DuplicateMatchError("duplicate key value violates unique constraint")
        self.match_writes += 1
        match_id = next(self._match_ids)
        self.rows[match_id] = {
            "id": match_id,
            **write.insert_row(),
        }
        return self._to_match(self.rows[match_id])

    async def update_match(self, match_id: int, fields: Dict[str, Any]) -> Match:
        await asyncio.sleep(0)
        if match_id not in self.rows:
            raise StorageError(f"Match {match_id} not found for update.")
        self.match_writes += 1
        self.rows[match_id].update(fields)
        return self._to_match(self.rows[match_id])

    async def update_match_by_identity(
        self, identity: MatchIdentity, mode: IdentityMode, fields: Dict[str, Any]
    ) -> Optional[Match]:
        await asyncio.sleep(0)
        if self.fail_force_update:
            raise StorageError("force update rejected")
        filters = identity.filters(mode)
        for row in self.rows.values():
            if self._matches_filters(row, filters):
                self.match_writes += 1
                row.update(fields)
                return self._to_match(row)
        return None

    async def query_matches(
        self,
        start: datetime,
        end: datetime,
        status: MatchStatus = MatchStatus.SCHEDULED,
        unset_flag: Optional[MatchFlag] = None,
        limit: int = 100,
    ) -> List[Match]:
        matches = [self._to_match(row, with_teams=True) for row in self.rows.values()]
        selected = [
            match
            for match in matches
            if start <= match.date <= end
            and match.status == status
            and (unset_flag is None or not getattr(match, unset_flag.value))
        ]
        return sorted(selected, key=lambda match: match.date)[:limit]

    async def list_flagged_matches(self) -> List[Match]:
        return [
            self._to_match(row)
            for row in self.rows.values()
            if row["notified"] or row["voice_room_created"]
        ]

    async def delete_all_matches(self) -> int:
        deleted = len(self.rows)
        self.rows.clear()
        return deleted

    def seed_match(self, write: MatchWrite, **flags: bool) -> Match:
        match_id = next(self._match_ids)
        self.rows[match_id] = {
            "id": match_id,
            **write.to_row(),
            "notified": False,
            "voice_room_created": False,
            **flags,
        }
        return self._to_match(self.rows[match_id])


class FakeFixtureSource:
    """Returns canned search responses per query; exceptions are raised."""

    def __init__(self, responses: Dict[str, Union[Dict[str, Any], Exception]]):
        self.responses = responses
        self.calls: List[str] = []

    async def fetch_fixtures(self, query: str, location: Optional[str] = None) -> Dict[str, Any]:
        self.calls.append(query)
        await asyncio.sleep(0)
        response = self.responses.get(query, {})
        if isinstance(response, Exception):
            raise response
        return response


class FakeEnrichment:
    def __init__(self, logos: Optional[Dict[str, str]] = None, fail: bool = False):
        self.logos = logos or {}
        self.fail = fail
        self.calls: List[str] = []

    async def search_team(self, name: str) -> Optional[TeamEnrichment]:
        self.calls.append(name)
        await asyncio.sleep(0)
        if self.fail:
            raise ClientError("search quota exhausted")
        logo = self.logos.get(name)
        return TeamEnrichment(logo=logo) if logo else None


class FakeOdds:
    def __init__(self, odds: Optional[MatchOdds] = None, fail: bool = False):
        self.odds = odds or MatchOdds(home_win=50, away_win=30, draw=20)
        self.fail = fail
        self.calls: List[tuple] = []

    async def get_odds(self, home_team: str, away_team: str) -> MatchOdds:
        self.calls.append((home_team, away_team))
        if self.fail:
            raise OddsEstimationError("model unavailable")
        return self.odds


def game(
    home: str,
    away: str,
    date: str,
    time: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """A sports_results.games entry as SerpAPI returns it."""
    record: Dict[str, Any] = {
        "teams": [
            {"name": home, "thumbnail": f"https://img.example/{home}.png"},
            {"name": away, "thumbnail": f"https://img.example/{away}.png"},
        ],
        "date": date,
        **extra,
    }
    if time is not None:
        record["time"] = time
    return record


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def arsenal() -> ClubConfig:
    return ClubConfig(name="Arsenal", query="Arsenal", league="Premier League")


@pytest.fixture
def galatasaray() -> ClubConfig:
    return ClubConfig(name="Galatasaray", query="Galatasaray", league="Süper Lig")
