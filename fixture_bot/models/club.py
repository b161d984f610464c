import re
from typing import List

from pydantic import BaseModel, field_validator

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ClubConfig(BaseModel):
    """A tracked club and the search query used to fetch its fixtures."""

    name: str
    query: str
    league: str  # Fallback league name when the feed omits the tournament
    aliases: List[str] = []

    @property
    def names(self) -> List[str]:
        return [self.name, self.query, *self.aliases]


class TimeCorrection(BaseModel):
    """Overrides a known-wrong kickoff time reported by the feed."""

    matcher: str  # Substring matched against league and team names
    wrong_time: str
    corrected_time: str

    @field_validator("wrong_time", "corrected_time")
    @classmethod
    def _validate_clock(cls, value: str) -> str:
        if not _HHMM.match(value):
            raise ValueError(f"Expected HH:MM, got {value!r}")
        return value
