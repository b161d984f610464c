from enum import Enum


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PLAY = "in_play"
    FULL_TIME = "full_time"


class MomentOutcome(str, Enum):
    """Result kinds of parsing a feed date/time."""

    PARSED = "parsed"
    POSTPONED = "postponed"  # Excluded from persistence, not an error
    PAST_EVENT = "past_event"  # "3 hours ago" style offsets
    PARSE_FAILURE = "parse_failure"


class IdentityMode(str, Enum):
    """How an incoming fixture is matched against existing rows."""

    CALENDAR_DATE = "calendar_date"  # Kickoff time revisions update the same row
    EXACT_KICKOFF = "exact_kickoff"  # Any kickoff change is a new row


class MatchFlag(str, Enum):
    NOTIFIED = "notified"
    VOICE_ROOM_CREATED = "voice_room_created"
