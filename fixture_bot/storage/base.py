from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from fixture_bot.models.enums import IdentityMode, MatchFlag, MatchStatus
from fixture_bot.models.match import Match, MatchIdentity, MatchWrite
from fixture_bot.models.team import Team, TeamCreate


class StorageError(Exception):
    """Raised when a storage read or write fails."""

    pass


class DuplicateMatchError(StorageError):
    """Raised when an insert collides with the match identity constraint."""

    pass


class FixtureStore(Protocol):
    """Conflict-safe team/match store used by the sync pipeline."""

    async def get_team_by_name(self, name: str) -> Optional[Team]: ...

    async def upsert_team(self, team: TeamCreate) -> Team: ...

    async def find_match(
        self, identity: MatchIdentity, mode: IdentityMode
    ) -> Optional[Match]: ...

    async def insert_match(self, write: MatchWrite) -> Match: ...

    async def update_match(self, match_id: int, fields: Dict[str, Any]) -> Match: ...

    async def update_match_by_identity(
        self, identity: MatchIdentity, mode: IdentityMode, fields: Dict[str, Any]
    ) -> Optional[Match]: ...

    async def query_matches(
        self,
        start: datetime,
        end: datetime,
        status: MatchStatus = MatchStatus.SCHEDULED,
        unset_flag: Optional[MatchFlag] = None,
        limit: int = 100,
    ) -> List[Match]: ...

    async def list_flagged_matches(self) -> List[Match]: ...

    async def delete_all_matches(self) -> int: ...
