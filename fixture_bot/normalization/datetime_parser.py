"""Parsing of the free-form date/time strings found in search results.

The search feed has no date format contract. Depending on the query, the
locale and the kind of result, a kickoff shows up as ``"today, 7:00 PM"``,
``"Fri, Aug 8"``, ``"06.08.25"``, ``"in 2 hours"`` or ``"Postponed"``. Every
recognized form is turned into a :class:`CanonicalMoment` at UTC+03:00.
Anything unrecognized is a parse failure; it is never defaulted to some date.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, List, Optional, Tuple, Union

from fixture_bot.models.enums import MomentOutcome
from fixture_bot.models.fixture import CanonicalMoment, MomentResult
from fixture_bot.normalization.postponement import find_postponement_marker
from fixture_bot.utils.misc_utils import FEED_TZ, fold_text

DEFAULT_KICKOFF = "20:00"

Clock = Tuple[int, int]
DateValue = Union[datetime, date]  # datetime means the kickoff is already exact

MONTHS = {
    # English
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
    # Turkish (folded)
    "oca": 1, "ocak": 1,
    "sub": 2, "subat": 2,
    "mart": 3,
    "nis": 4, "nisan": 4,
    "mayis": 5,
    "haz": 6, "haziran": 6,
    "tem": 7, "temmuz": 7,
    "agu": 8, "agustos": 8,
    "eyl": 9, "eylul": 9,
    "eki": 10, "ekim": 10,
    "kas": 11, "kasim": 11,
    "ara": 12, "aralik": 12,
}  # fmt: skip

WEEKDAYS = {
    "mon": 0, "monday": 0, "pzt": 0, "pazartesi": 0,
    "tue": 1, "tues": 1, "tuesday": 1, "sal": 1, "sali": 1,
    "wed": 2, "wednesday": 2, "car": 2, "carsamba": 2,
    "thu": 3, "thur": 3, "thurs": 3, "thursday": 3, "per": 3, "persembe": 3,
    "fri": 4, "friday": 4, "cum": 4, "cuma": 4,
    "sat": 5, "saturday": 5, "cmt": 5, "cumartesi": 5,
    "sun": 6, "sunday": 6, "paz": 6, "pazar": 6,
}  # fmt: skip

_UNIT_WORDS = {
    "minute": "minutes", "minutes": "minutes", "min": "minutes", "mins": "minutes",
    "dakika": "minutes", "dk": "minutes",
    "hour": "hours", "hours": "hours", "hr": "hours", "hrs": "hours", "saat": "hours",
    "day": "days", "days": "days", "gun": "days",
    "week": "weeks", "weeks": "weeks", "hafta": "weeks",
}  # fmt: skip

_AMOUNT = r"(?P<n>\d+|an?|one)"
_UNIT = r"(?P<unit>minutes?|mins?|hours?|hrs?|days?|weeks?|dakika|dk|saat|gun|hafta)"

_CLOCK_RE = re.compile(
    r"^(?P<h>\d{1,2})(?:[:.](?P<m>\d{2}))?\s*(?P<mer>am|pm)?$"
)
_EMBEDDED_CLOCK_RE = re.compile(
    r"^(?P<date>.*?)[,\s]+(?:at\s+|saat\s+)?"
    r"(?P<clock>\d{1,2}[:.]\d{2}\s*(?:am|pm)?|\d{1,2}\s*(?:am|pm))$"
)
_PAST_RE = re.compile(
    rf"\b{_AMOUNT}\s+{_UNIT}\s+(?:ago|once)\b|^(?:yesterday|dun)\b"
)
_FUTURE_OFFSET_RES = (
    re.compile(rf"^in\s+{_AMOUNT}\s+{_UNIT}$"),
    re.compile(rf"^{_AMOUNT}\s+{_UNIT}\s+sonra$"),
)
_WEEKDAY_PREFIX_RE = re.compile(r"^(?P<wd>[a-z]+)\.?,?\s+(?P<rest>.+)$")
_DOTTED_RE = re.compile(
    r"^(?P<d>\d{1,2})\.(?P<m>\d{1,2})(?:\.(?P<y>\d{4}|\d{2}))?\.?$"
)
_MONTH_FIRST_RE = re.compile(
    r"^(?P<mon>[a-z]+)\.?\s+(?P<d>\d{1,2})(?:st|nd|rd|th)?(?:,?\s+(?P<y>\d{4}))?$"
)
_DAY_FIRST_RE = re.compile(
    r"^(?P<d>\d{1,2})(?:st|nd|rd|th)?\.?\s+(?P<mon>[a-z]+)\.?(?:,?\s+(?P<y>\d{4}))?$"
)
_YMD_RE = re.compile(r"^(?P<y>\d{4})[-/](?P<m>\d{1,2})[-/](?P<d>\d{1,2})$")
_MDY_RE = re.compile(r"^(?P<a>\d{1,2})[-/](?P<b>\d{1,2})[-/](?P<y>\d{4}|\d{2})$")
_MD_SLASH_RE = re.compile(r"^(?P<a>\d{1,2})/(?P<b>\d{1,2})$")
_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[t ]\d{2}:\d{2}")


def _prepare(text: str) -> str:
    """Folds case/accents, normalizes a.m./p.m. and separators, strips edge punctuation."""
    folded = fold_text(text)
    folded = re.sub(r"\b([ap])\.\s?m\.?", r"\1m", folded)
    folded = re.sub(r"\s*[·•|]\s*|\s+[–—]\s+", ", ", folded)
    return folded.strip(" ,;-|")


def _amount(raw: str) -> int:
    return 1 if raw in ("a", "an", "one") else int(raw)


def _clock(hour: int, minute: int, meridiem: Optional[str]) -> Optional[Clock]:
    """Validates a clock reading, converting 12-hour readings to 24-hour."""
    if minute > 59:
        return None
    if meridiem:
        if not 1 <= hour <= 12:
            return None
        if meridiem == "pm":
            hour = hour if hour == 12 else hour + 12
        else:
            hour = 0 if hour == 12 else hour
    elif hour > 23:
        return None
    return hour, minute


def parse_clock_time(raw_time: Optional[str]) -> Optional[Clock]:
    """Parses '19:00', '19.00', '7:00 PM', '7 pm' or '12 a.m.' into (hour, minute)."""
    if not raw_time:
        return None
    match = _CLOCK_RE.match(_prepare(raw_time))
    if not match:
        return None
    minute, meridiem = match.group("m"), match.group("mer")
    if minute is None and meridiem is None:
        return None  # A bare number is not a time
    return _clock(int(match.group("h")), int(minute or 0), meridiem)


def format_clock(clock: Clock) -> str:
    return f"{clock[0]:02d}:{clock[1]:02d}"


def expand_two_digit_year(year: int, today: date) -> int:
    """Places a two digit year in the century closest to today."""
    full = today.year // 100 * 100 + year
    if full - today.year > 50:
        full -= 100
    elif today.year - full > 50:
        full += 100
    return full


def _infer_year(month: int, day: int, today: date) -> date:
    """Dates without a year are this year, unless that is long past."""
    candidate = date(today.year, month, day)
    if candidate < today - timedelta(days=183):
        candidate = date(today.year + 1, month, day)
    return candidate


# --- Date recognizers ---
# Each takes prepared text and today's date (feed time) and returns a date,
# an exact datetime, or None when the form does not apply.


def _relative_day(text: str, now: datetime) -> Optional[DateValue]:
    if text in ("today", "tonight", "bugun", "bu aksam"):
        return now.date()
    if text in ("tomorrow", "yarin"):
        return now.date() + timedelta(days=1)
    return None


def _relative_offset(text: str, now: datetime) -> Optional[DateValue]:
    if text in ("next week", "gelecek hafta", "haftaya"):
        return now.date() + timedelta(days=7)
    if text in ("this weekend", "weekend", "bu hafta sonu", "hafta sonu"):
        today = now.date()
        if today.weekday() >= 5:
            return today
        return today + timedelta(days=5 - today.weekday())

    match = next(filter(None, (regex.match(text) for regex in _FUTURE_OFFSET_RES)), None)
    if not match:
        return None
    amount = _amount(match.group("n"))
    unit = _UNIT_WORDS[match.group("unit")]
    if unit in ("minutes", "hours"):
        return now + timedelta(**{unit: amount})
    return now.date() + timedelta(**{unit: amount})


def _weekday_only(text: str, now: datetime) -> Optional[DateValue]:
    weekday = WEEKDAYS.get(text.rstrip("."))
    if weekday is None:
        return None
    today = now.date()
    return today + timedelta(days=(weekday - today.weekday()) % 7)


def _iso_timestamp(text: str, now: datetime) -> Optional[DateValue]:
    if not _ISO_RE.match(text):
        return None
    parsed = datetime.fromisoformat(text.upper().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=FEED_TZ)
    return parsed.astimezone(FEED_TZ)


def _dotted(text: str, now: datetime) -> Optional[DateValue]:
    match = _DOTTED_RE.match(text)
    if not match:
        return None
    day, month = int(match.group("d")), int(match.group("m"))
    year = match.group("y")
    if year is None:
        return _infer_year(month, day, now.date())
    full_year = int(year) if len(year) == 4 else expand_two_digit_year(int(year), now.date())
    return date(full_year, month, day)


def _month_name(text: str, now: datetime) -> Optional[DateValue]:
    match = _MONTH_FIRST_RE.match(text) or _DAY_FIRST_RE.match(text)
    if not match:
        return None
    month = MONTHS.get(match.group("mon"))
    if month is None:
        return None
    day = int(match.group("d"))
    if match.group("y"):
        return date(int(match.group("y")), month, day)
    return _infer_year(month, day, now.date())


def _numeric(text: str, now: datetime) -> Optional[DateValue]:
    match = _YMD_RE.match(text)
    if match:
        return date(int(match.group("y")), int(match.group("m")), int(match.group("d")))

    match = _MDY_RE.match(text) or _MD_SLASH_RE.match(text)
    if not match:
        return None
    month, day = int(match.group("a")), int(match.group("b"))
    if month > 12 >= day:
        month, day = day, month  # Only readable as DD-MM
    year = match.groupdict().get("y")
    if year is None:
        return _infer_year(month, day, now.date())
    full_year = int(year) if len(year) == 4 else expand_two_digit_year(int(year), now.date())
    return date(full_year, month, day)


RECOGNIZERS: List[Callable[[str, datetime], Optional[DateValue]]] = [
    _relative_day,
    _relative_offset,
    _weekday_only,
    _iso_timestamp,
    _dotted,
    _month_name,
    _numeric,
]


def _strip_weekday_prefix(text: str) -> str:
    match = _WEEKDAY_PREFIX_RE.match(text)
    if match and match.group("wd") in WEEKDAYS:
        return match.group("rest")
    return text


def _recognize(text: str, now: datetime) -> Optional[DateValue]:
    for candidate in dict.fromkeys((text, _strip_weekday_prefix(text))):
        for recognizer in RECOGNIZERS:
            try:
                value = recognizer(candidate, now)
            except ValueError:
                # Out of range day/month, e.g. 31.02.2025
                value = None
            if value is not None:
                return value
    return None


def _now_in_feed_tz(now: Optional[datetime]) -> datetime:
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=FEED_TZ)
    return now.astimezone(FEED_TZ)


def parse_fixture_moment(
    raw_date: Optional[str],
    raw_time: Optional[str] = None,
    now: Optional[datetime] = None,
    default_time: str = DEFAULT_KICKOFF,
) -> MomentResult:
    """Resolves a feed date (and optional separate time) to a canonical kickoff.

    Args:
        raw_date: The date field as the feed reported it, possibly with an
            embedded time ("today, 7:00 PM").
        raw_time: A separate time field, used when the date carries none.
        now: Reference instant for relative forms. Defaults to the current time.
        default_time: Kickoff used when neither field carries a time.

    Returns:
        A MomentResult whose outcome is PARSED (with a moment), POSTPONED,
        PAST_EVENT or PARSE_FAILURE.
    """
    if not raw_date or not raw_date.strip():
        return MomentResult(outcome=MomentOutcome.PARSE_FAILURE, reason="empty date")

    marker = find_postponement_marker(raw_date) or find_postponement_marker(raw_time)
    if marker:
        return MomentResult(outcome=MomentOutcome.POSTPONED, reason=marker)

    reference = _now_in_feed_tz(now)
    text = _prepare(raw_date)

    if _PAST_RE.search(text):
        return MomentResult(outcome=MomentOutcome.PAST_EVENT, reason=text)

    value: Optional[DateValue] = None
    clock: Optional[Clock] = None

    split = _EMBEDDED_CLOCK_RE.match(text)
    if split:
        clock = parse_clock_time(split.group("clock"))
        if clock is not None:
            value = _recognize(split.group("date").strip(" ,"), reference)
    if value is None:
        # "Fri 06.08" looks like a weekday plus a clock, so retry unsplit
        clock = None
        value = _recognize(text, reference)
    if value is None:
        return MomentResult(
            outcome=MomentOutcome.PARSE_FAILURE,
            reason=f"unrecognized date format: {raw_date!r}",
        )

    if isinstance(value, datetime):
        kickoff = value
    else:
        if clock is None:
            clock = parse_clock_time(raw_time) or parse_clock_time(default_time)
        if clock is None:
            return MomentResult(
                outcome=MomentOutcome.PARSE_FAILURE,
                reason=f"invalid default kickoff time: {default_time!r}",
            )
        kickoff = datetime.combine(value, time(*clock), tzinfo=FEED_TZ)

    return MomentResult(
        outcome=MomentOutcome.PARSED, moment=CanonicalMoment(kickoff=kickoff)
    )
