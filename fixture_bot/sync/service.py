import asyncio
from datetime import timedelta
from typing import List, Optional, Sequence

from loguru import logger

from fixture_bot.clients.base_client import BaseClient
from fixture_bot.clients.openrouter_client import OddsEstimator
from fixture_bot.clients.serpapi_client import SerpApiClient
from fixture_bot.config.settings import AppSettings, settings as default_settings
from fixture_bot.models.club import ClubConfig
from fixture_bot.models.match import Match
from fixture_bot.normalization.extractor import FixtureExtractor
from fixture_bot.storage.base import FixtureStore
from fixture_bot.storage.match_queries import MatchQueries
from fixture_bot.storage.supabase_client import SupabaseStore, initialize_supabase
from fixture_bot.sync.match_upsert import MatchUpserter
from fixture_bot.sync.orchestrator import SyncError, SyncOrchestrator, SyncReport
from fixture_bot.sync.team_resolver import TeamResolver


class FixtureService:
    """Owns the periodic sync loop and the consumer query API."""

    def __init__(
        self,
        store: FixtureStore,
        orchestrator: SyncOrchestrator,
        queries: MatchQueries,
        clubs: Sequence[ClubConfig],
        sync_interval: timedelta = timedelta(hours=168),
        clients: Sequence[BaseClient] = (),
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.queries = queries
        self.clubs = list(clubs)
        self.sync_interval = sync_interval
        self.clients = list(clients)
        self.last_report: Optional[SyncReport] = None
        self._loop_task: Optional["asyncio.Task[None]"] = None
        self._sync_lock = asyncio.Lock()

    @classmethod
    async def build(cls, app_settings: Optional[AppSettings] = None) -> "FixtureService":
        """Wires the Supabase store and the SerpAPI/OpenRouter clients from settings."""
        cfg = app_settings or default_settings
        store = SupabaseStore(await initialize_supabase())
        serpapi = SerpApiClient(api_key=cfg.serpapi_api_key, base_url=cfg.serpapi_base_url)
        clients: List[BaseClient] = [serpapi]

        odds = None
        if cfg.openrouter_api_key:
            odds = OddsEstimator(
                api_key=cfg.openrouter_api_key,
                model=cfg.openrouter_model,
                base_url=cfg.openrouter_base_url,
            )
            clients.append(odds)
        else:
            logger.warning("OPENROUTER_API_KEY not set, matches will be stored without odds.")

        orchestrator = SyncOrchestrator(
            source=serpapi,
            store=store,
            extractor=FixtureExtractor(
                corrections=cfg.time_corrections,
                window_days=cfg.sync_window_days,
                default_time=cfg.default_kickoff_time,
            ),
            team_resolver=TeamResolver(store, enrichment=serpapi),
            upserter=MatchUpserter(store, cfg.match_identity_mode),
            odds=odds,
            location=cfg.search_location,
            max_concurrency=cfg.max_concurrent_club_syncs,
            wipe_before_sync=cfg.wipe_before_sync,
        )
        queries = MatchQueries(
            store,
            notification_lead=timedelta(minutes=cfg.notification_lead_minutes),
            voice_room_lead=timedelta(minutes=cfg.voice_room_lead_minutes),
        )
        return cls(
            store=store,
            orchestrator=orchestrator,
            queries=queries,
            clubs=cfg.tracked_clubs,
            sync_interval=timedelta(hours=cfg.sync_interval_hours),
            clients=clients,
        )

    # --- Sync loop ---

    async def run_once(self) -> SyncReport:
        """Runs one sync cycle; overlapping calls wait for the running one."""
        async with self._sync_lock:
            self.last_report = await self.orchestrator.sync_all(self.clubs)
            return self.last_report

    async def _run_forever(self) -> None:
        while True:
            try:
                await self.run_once()
            except SyncError as e:
                logger.error(f"Sync cycle failed: {e}")
            except Exception as e:
                logger.exception(f"Unexpected error during sync cycle: {e}")
            logger.info(f"Next sync in {self.sync_interval}")
            await asyncio.sleep(self.sync_interval.total_seconds())

    def start(self) -> "asyncio.Task[None]":
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self._run_forever())
            logger.info("Fixture sync loop started")
        return self._loop_task

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def stop(self) -> None:
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
            logger.info("Fixture sync loop stopped")
        for client in self.clients:
            await client.close()
        self.clients = []

    # --- Consumer API ---

    async def get_matches_for_notification(self) -> List[Match]:
        return await self.queries.get_matches_for_notification()

    async def get_matches_for_voice_room(self) -> List[Match]:
        return await self.queries.get_matches_for_voice_room()

    async def get_upcoming_matches(self, days: int = 7) -> List[Match]:
        return await self.queries.get_upcoming_matches(days)

    async def mark_notified(self, match_id: int) -> Match:
        return await self.queries.mark_notified(match_id)

    async def mark_voice_room_created(self, match_id: int) -> Match:
        return await self.queries.mark_voice_room_created(match_id)
