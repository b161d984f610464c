from datetime import datetime, timedelta
from typing import Callable, List

from loguru import logger

from fixture_bot.models.enums import MatchFlag
from fixture_bot.models.match import Match
from fixture_bot.storage.base import FixtureStore
from fixture_bot.utils.misc_utils import FEED_TZ

NOTIFICATION_LIMIT = 50
VOICE_ROOM_LIMIT = 20
UPCOMING_LIMIT = 100


class MatchQueries:
    """Read side used by the Discord bot: what to announce and when."""

    def __init__(
        self,
        store: FixtureStore,
        notification_lead: timedelta = timedelta(minutes=60),
        voice_room_lead: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = lambda: datetime.now(FEED_TZ),
    ):
        self.store = store
        self.notification_lead = notification_lead
        self.voice_room_lead = voice_room_lead
        self.clock = clock

    async def get_matches_for_notification(self) -> List[Match]:
        """Scheduled, not yet announced matches kicking off within the lead window."""
        now = self.clock()
        return await self.store.query_matches(
            now,
            now + self.notification_lead,
            unset_flag=MatchFlag.NOTIFIED,
            limit=NOTIFICATION_LIMIT,
        )

    async def get_matches_for_voice_room(self) -> List[Match]:
        """Scheduled matches about to start that have no voice room yet."""
        now = self.clock()
        return await self.store.query_matches(
            now,
            now + self.voice_room_lead,
            unset_flag=MatchFlag.VOICE_ROOM_CREATED,
            limit=VOICE_ROOM_LIMIT,
        )

    async def get_upcoming_matches(self, days: int = 7) -> List[Match]:
        now = self.clock()
        return await self.store.query_matches(
            now, now + timedelta(days=days), limit=UPCOMING_LIMIT
        )

    async def mark_notified(self, match_id: int) -> Match:
        logger.debug(f"Marking match {match_id} as notified")
        return await self.store.update_match(match_id, {MatchFlag.NOTIFIED.value: True})

    async def mark_voice_room_created(self, match_id: int) -> Match:
        logger.debug(f"Marking voice room created for match {match_id}")
        return await self.store.update_match(
            match_id, {MatchFlag.VOICE_ROOM_CREATED.value: True}
        )
