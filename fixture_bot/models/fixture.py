from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field, field_validator

from fixture_bot.models.enums import MomentOutcome
from fixture_bot.utils.misc_utils import FEED_TZ


class RawFixtureCandidate(BaseModel):
    """A fixture as found in a search response, before any normalization."""

    home_team_name: str
    away_team_name: str
    raw_date: str
    raw_time: Optional[str] = None
    league: Optional[str] = None
    status: Optional[str] = None
    venue: Optional[str] = None
    video_link: Optional[str] = None
    home_team_logo: Optional[str] = None
    away_team_logo: Optional[str] = None
    source: str = "unknown"  # Extraction strategy that produced it

    @computed_field  # type: ignore[misc]
    @property
    def description(self) -> str:
        return f"{self.home_team_name} vs {self.away_team_name} ({self.raw_date!r})"


class CanonicalMoment(BaseModel):
    """A fully resolved kickoff, always expressed at UTC+03:00."""

    model_config = ConfigDict(frozen=True)

    kickoff: datetime

    @field_validator("kickoff")
    @classmethod
    def _to_feed_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=FEED_TZ)
        return value.astimezone(FEED_TZ).replace(second=0, microsecond=0)

    @property
    def time(self) -> str:
        return self.kickoff.strftime("%H:%M")

    @property
    def match_day(self) -> date:
        return self.kickoff.date()

    def isoformat(self) -> str:
        return self.kickoff.isoformat()


class MomentResult(BaseModel):
    """Outcome of parse_fixture_moment; moment is only set when parsed."""

    model_config = ConfigDict(frozen=True)

    outcome: MomentOutcome
    moment: Optional[CanonicalMoment] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == MomentOutcome.PARSED and self.moment is not None


class NormalizedFixture(BaseModel):
    """A surviving candidate with its canonical kickoff."""

    candidate: RawFixtureCandidate
    moment: CanonicalMoment
    league: str

    @property
    def home_team_name(self) -> str:
        return self.candidate.home_team_name

    @property
    def away_team_name(self) -> str:
        return self.candidate.away_team_name
