from loguru import logger

from fixture_bot.models.enums import IdentityMode
from fixture_bot.models.match import Match, MatchWrite
from fixture_bot.storage.base import DuplicateMatchError, FixtureStore, StorageError


class MatchUpsertError(Exception):
    """Raised when a match can neither be inserted nor force-updated."""

    pass


class MatchUpserter:
    """Writes fixtures so each logical match maps to exactly one row."""

    def __init__(
        self,
        store: FixtureStore,
        identity_mode: IdentityMode = IdentityMode.CALENDAR_DATE,
    ):
        self.store = store
        self.identity_mode = IdentityMode(identity_mode)

    async def upsert_match(self, write: MatchWrite) -> Match:
        identity = write.identity()
        existing = await self.store.find_match(identity, self.identity_mode)

        if existing is not None:
            changes = existing.changed_fields(write)
            if not changes:
                logger.debug(f"Match {existing.id} unchanged, skipping write")
                return existing
            if "date" in changes:
                logger.info(
                    f"Kickoff of match {existing.id} moved from "
                    f"{existing.date.isoformat()} to {write.kickoff.isoformat()}"
                )
            logger.debug(f"Updating match {existing.id}: {sorted(changes)}")
            return await self.store.update_match(existing.id, changes)

        try:
            match = await self.store.insert_match(write)
            logger.info(f"Inserted match {match.id} on {write.match_day.isoformat()}")
            return match
        except DuplicateMatchError as e:
            logger.warning(
                f"Insert lost a race for {identity.key}, forcing an update: {e}"
            )
            return await self._force_update(write)

    async def _force_update(self, write: MatchWrite) -> Match:
        fields = {**write.to_row(), **write.flag_row()}
        try:
            match = await self.store.update_match_by_identity(
                write.identity(), self.identity_mode, fields
            )
        except StorageError as e:
            raise MatchUpsertError(
                f"Force update failed for {write.identity().key}: {e}"
            ) from e
        if match is None:
            raise MatchUpsertError(
                f"Force update matched no row for {write.identity().key}"
            )
        return match
