from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from fixture_bot.models.enums import IdentityMode, MatchFlag, MatchStatus
from fixture_bot.models.team import Team
from fixture_bot.utils.misc_utils import FEED_TZ


def _in_feed_timezone(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=FEED_TZ)
    return value.astimezone(FEED_TZ)


class MatchIdentity(BaseModel):
    """Fields that decide whether two observations are the same logical match.

    Kickoff time is not part of the identity: a feed revising the time of a
    known fixture updates the existing row.
    """

    model_config = ConfigDict(frozen=True)

    home_team_id: int
    away_team_id: int
    match_day: date
    league: str
    kickoff: datetime  # Only consulted in IdentityMode.EXACT_KICKOFF

    def filters(self, mode: IdentityMode) -> Dict[str, Any]:
        """Column equality filters for the storage lookup."""
        filters: Dict[str, Any] = {
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "league": self.league,
        }
        if mode == IdentityMode.EXACT_KICKOFF:
            filters["date"] = self.kickoff.isoformat()
        else:
            filters["match_day"] = self.match_day.isoformat()
        return filters

    @property
    def key(self) -> tuple:
        return (self.home_team_id, self.away_team_id, self.match_day, self.league)


class MatchWrite(BaseModel):
    """Everything the sync pipeline knows about a fixture, ready to persist."""

    home_team_id: int
    away_team_id: int
    kickoff: datetime
    league: str
    status: MatchStatus = MatchStatus.SCHEDULED
    google_link: Optional[str] = None
    broadcast_channel: Optional[str] = None
    home_win_probability: Optional[int] = None
    away_win_probability: Optional[int] = None
    draw_probability: Optional[int] = None
    # Carried over from a row wiped before this sync; never cleared by a write
    notified: bool = False
    voice_room_created: bool = False

    @field_validator("kickoff")
    @classmethod
    def _kickoff_in_feed_timezone(cls, value: datetime) -> datetime:
        return _in_feed_timezone(value).replace(second=0, microsecond=0)

    @property
    def time(self) -> str:
        return self.kickoff.strftime("%H:%M")

    @property
    def match_day(self) -> date:
        return self.kickoff.date()

    def identity(self) -> MatchIdentity:
        return MatchIdentity(
            home_team_id=self.home_team_id,
            away_team_id=self.away_team_id,
            match_day=self.match_day,
            league=self.league,
            kickoff=self.kickoff,
        )

    def to_row(self) -> Dict[str, Any]:
        """Column values written on both insert and update.

        The one-way notified/voice_room_created flags are absent, see flag_row().
        """
        return {
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "date": self.kickoff.isoformat(),
            "time": self.time,
            "match_day": self.match_day.isoformat(),
            "league": self.league,
            "status": self.status.value,
            "google_link": self.google_link,
            "broadcast_channel": self.broadcast_channel,
            "home_win_probability": self.home_win_probability,
            "away_win_probability": self.away_win_probability,
            "draw_probability": self.draw_probability,
        }

    def flag_row(self) -> Dict[str, Any]:
        """The one-way flags this write sets; false flags are left untouched."""
        return {flag.value: True for flag in MatchFlag if getattr(self, flag.value)}

    def insert_row(self) -> Dict[str, Any]:
        return {
            **self.to_row(),
            "notified": self.notified,
            "voice_room_created": self.voice_room_created,
        }


class Match(BaseModel):
    """A persisted, deduplicated fixture row."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    home_team_id: int
    away_team_id: int
    date: datetime
    time: str
    match_day: date
    league: str
    status: MatchStatus = MatchStatus.SCHEDULED
    google_link: Optional[str] = None
    broadcast_channel: Optional[str] = None
    home_win_probability: Optional[int] = None
    away_win_probability: Optional[int] = None
    draw_probability: Optional[int] = None
    notified: bool = False
    voice_room_created: bool = False

    # Joined team rows, present on consumer queries
    home_team: Optional[Team] = None
    away_team: Optional[Team] = None

    @field_validator("date")
    @classmethod
    def _date_in_feed_timezone(cls, value: datetime) -> datetime:
        # Postgres hands timestamptz back in UTC
        return _in_feed_timezone(value)

    @property
    def kickoff(self) -> datetime:
        return self.date

    def changed_fields(self, write: MatchWrite) -> Dict[str, Any]:
        """Columns whose stored value differs from the incoming write."""
        changes: Dict[str, Any] = {}
        for column, new_value in write.to_row().items():
            if column == "date":
                if self.date != write.kickoff:
                    changes[column] = new_value
                continue
            current = getattr(self, column)
            if isinstance(current, MatchStatus):
                current = current.value
            elif isinstance(current, date):
                current = current.isoformat()
            if current != new_value:
                changes[column] = new_value
        for flag, value in write.flag_row().items():
            if not getattr(self, flag):
                changes[flag] = value
        return changes

    @property
    def description(self) -> str:
        home = self.home_team.name if self.home_team else f"team#{self.home_team_id}"
        away = self.away_team.name if self.away_team else f"team#{self.away_team_id}"
        return f"{self.league}: {home} vs {away} ({self.date.strftime('%Y-%m-%d %H:%M')})"
