import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from loguru import logger
from pydantic import BaseModel, Field

from fixture_bot.clients.base_client import ClientError
from fixture_bot.models.club import ClubConfig
from fixture_bot.models.fixture import NormalizedFixture
from fixture_bot.models.match import Match, MatchWrite
from fixture_bot.models.odds import MatchOdds
from fixture_bot.normalization.extractor import FixtureExtractor, map_match_status
from fixture_bot.storage.base import FixtureStore, StorageError
from fixture_bot.sync.match_upsert import MatchUpserter, MatchUpsertError
from fixture_bot.sync.team_resolver import TeamResolver
from fixture_bot.utils.misc_utils import FEED_TZ

# (home_team_id, away_team_id, match_day, league)
IdentityKey = Tuple[Any, ...]
# identity key -> (notified, voice_room_created)
FlagSnapshot = Dict[IdentityKey, Tuple[bool, bool]]


class SyncError(Exception):
    """Raised when a sync cycle produced nothing because every club failed."""

    pass


class FixtureSource(Protocol):
    async def fetch_fixtures(
        self, query: str, location: Optional[str] = None
    ) -> Dict[str, Any]: ...


class OddsSource(Protocol):
    async def get_odds(self, home_team: str, away_team: str) -> MatchOdds: ...


class ClubSyncResult(BaseModel):
    """Outcome of syncing one tracked club."""

    club: str
    fixtures_found: int = 0
    fixtures_failed: int = 0
    matches: List[Match] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def matches_upserted(self) -> int:
        return len(self.matches)


class SyncReport(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime] = None
    wiped_rows: int = 0
    flags_restored: int = 0
    results: List[ClubSyncResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[ClubSyncResult]:
        return [result for result in self.results if result.ok]

    @property
    def failed(self) -> List[ClubSyncResult]:
        return [result for result in self.results if not result.ok]

    @property
    def matches_upserted(self) -> int:
        return sum(result.matches_upserted for result in self.results)


def _feed_now() -> datetime:
    return datetime.now(FEED_TZ)


def _identity_key(match: Match) -> IdentityKey:
    return (match.home_team_id, match.away_team_id, match.match_day, match.league)


class SyncOrchestrator:
    """Runs one full fixture sync across all tracked clubs."""

    def __init__(
        self,
        source: FixtureSource,
        store: FixtureStore,
        extractor: FixtureExtractor,
        team_resolver: TeamResolver,
        upserter: MatchUpserter,
        odds: Optional[OddsSource] = None,
        location: Optional[str] = None,
        max_concurrency: int = 4,
        wipe_before_sync: bool = True,
        clock: Callable[[], datetime] = _feed_now,
    ):
        self.source = source
        self.store = store
        self.extractor = extractor
        self.team_resolver = team_resolver
        self.upserter = upserter
        self.odds = odds
        self.location = location
        self.max_concurrency = max_concurrency
        self.wipe_before_sync = wipe_before_sync
        self.clock = clock

    async def sync_all(self, clubs: Sequence[ClubConfig]) -> SyncReport:
        now = self.clock()
        report = SyncReport(started_at=now)
        logger.info(f"Starting fixture sync for {len(clubs)} clubs")

        flag_snapshot: FlagSnapshot = {}
        if self.wipe_before_sync:
            flag_snapshot = await self._snapshot_flags()
            report.wiped_rows = await self.store.delete_all_matches()

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run_club(club: ClubConfig) -> ClubSyncResult:
            async with semaphore:
                try:
                    return await self.sync_club(club, now, flag_snapshot)
                except Exception as e:
                    logger.exception(f"Unexpected error while syncing {club.name}: {e}")
                    return ClubSyncResult(club=club.name, error=f"{type(e).__name__}: {e}")

        report.results = list(await asyncio.gather(*(run_club(club) for club in clubs)))

        report.flags_restored = len(
            {
                match.id
                for result in report.results
                for match in result.matches
                if _identity_key(match) in flag_snapshot
            }
        )

        report.finished_at = self.clock()
        for result in report.failed:
            logger.error(f"Sync failed for {result.club}: {result.error}")
        logger.info(
            f"Sync finished: {len(report.succeeded)}/{len(report.results)} clubs ok, "
            f"{report.matches_upserted} matches written"
        )

        if clubs and not report.succeeded:
            raise SyncError(f"All {len(clubs)} club syncs failed")
        return report

    async def sync_club(
        self,
        club: ClubConfig,
        now: Optional[datetime] = None,
        flag_snapshot: Optional[FlagSnapshot] = None,
    ) -> ClubSyncResult:
        """Syncs one club; errors are captured in the result, never raised.

        Rows recreated for a key in ``flag_snapshot`` are written with the
        notified/voice_room_created flags they had before the wipe.
        """
        now = now or self.clock()
        result = ClubSyncResult(club=club.name)
        logger.info(f"Syncing fixtures for {club.name}")

        try:
            raw_response = await self.source.fetch_fixtures(club.query, self.location)
            fixtures = self.extractor.extract_fixtures(raw_response, club, now)
        except (ClientError, StorageError) as e:
            result.error = str(e)
            return result

        result.fixtures_found = len(fixtures)
        for fixture in fixtures:
            try:
                result.matches.append(await self._sync_fixture(fixture, flag_snapshot or {}))
            except (MatchUpsertError, StorageError, ValueError) as e:
                result.fixtures_failed += 1
                logger.error(
                    f"Failed to store {fixture.candidate.description} for {club.name}: {e}"
                )

        logger.success(
            f"Synced {result.matches_upserted}/{result.fixtures_found} fixtures for {club.name}"
        )
        return result

    async def _sync_fixture(
        self, fixture: NormalizedFixture, flag_snapshot: FlagSnapshot
    ) -> Match:
        candidate = fixture.candidate
        home = await self.team_resolver.resolve_team(
            candidate.home_team_name, candidate.home_team_logo or ""
        )
        away = await self.team_resolver.resolve_team(
            candidate.away_team_name, candidate.away_team_logo or ""
        )

        odds = await self._estimate_odds(home.name, away.name)
        home_win, away_win, draw = (
            odds.normalized().as_percentages() if odds else (None, None, None)
        )

        write = MatchWrite(
            home_team_id=home.id,
            away_team_id=away.id,
            kickoff=fixture.moment.kickoff,
            league=fixture.league,
            status=map_match_status(candidate.status),
            google_link=candidate.video_link,
            broadcast_channel=candidate.venue,
            home_win_probability=home_win,
            away_win_probability=away_win,
            draw_probability=draw,
        )
        preserved = flag_snapshot.get(write.identity().key)
        if preserved:
            write.notified, write.voice_room_created = preserved
        return await self.upserter.upsert_match(write)

    async def _estimate_odds(self, home_team: str, away_team: str) -> Optional[MatchOdds]:
        if self.odds is None:
            return None
        try:
            return await self.odds.get_odds(home_team, away_team)
        except ClientError as e:
            logger.warning(f"No odds for {home_team} vs {away_team}: {e}")
            return None

    async def _snapshot_flags(self) -> FlagSnapshot:
        flagged = await self.store.list_flagged_matches()
        if flagged:
            logger.info(f"Preserving flags of {len(flagged)} matches across the wipe")
        return {
            _identity_key(match): (match.notified, match.voice_room_created)
            for match in flagged
        }
