from datetime import date, datetime

import pytest

from fixture_bot.models.enums import MomentOutcome
from fixture_bot.normalization.datetime_parser import (
    expand_two_digit_year,
    parse_clock_time,
    parse_fixture_moment,
)
from fixture_bot.utils.misc_utils import FEED_TZ

NOW = datetime(2025, 8, 20, 12, 0, tzinfo=FEED_TZ)


def kickoff(raw_date, raw_time=None, now=NOW):
    result = parse_fixture_moment(raw_date, raw_time, now)
    assert result.ok, result.reason
    return result.moment.kickoff


class TestRecognizedForms:
    @pytest.mark.parametrize(
        "raw_date, raw_time, expected",
        [
            ("today, 7:00 PM", None, "2025-08-20T19:00:00+03:00"),
            ("today 19:00", None, "2025-08-20T19:00:00+03:00"),
            ("Today · 19:00", None, "2025-08-20T19:00:00+03:00"),
            ("Sun, Aug 24 • 7:00 PM", None, "2025-08-24T19:00:00+03:00"),
            ("Aug 24 – 18:30", None, "2025-08-24T18:30:00+03:00"),
            ("tomorrow, 9:30 AM", None, "2025-08-21T09:30:00+03:00"),
            ("tomorrow 9:30 AM", None, "2025-08-21T09:30:00+03:00"),
            ("Bugün 21:45", None, "2025-08-20T21:45:00+03:00"),
            ("yarın", "19:00", "2025-08-21T19:00:00+03:00"),
            ("tomorrow", None, "2025-08-21T20:00:00+03:00"),
            ("06.08.2025", None, "2025-08-06T20:00:00+03:00"),
            ("08.06.25", None, "2025-06-08T20:00:00+03:00"),
            ("06.08.2025 7:30 PM", None, "2025-08-06T19:30:00+03:00"),
            ("Aug 24", None, "2025-08-24T20:00:00+03:00"),
            ("Aug 24", "19:00", "2025-08-24T19:00:00+03:00"),
            ("Aug 24, 19:00", "21:00", "2025-08-24T19:00:00+03:00"),
            ("24 Ağustos", None, "2025-08-24T20:00:00+03:00"),
            ("24 Aug", "18:00", "2025-08-24T18:00:00+03:00"),
            ("Sun, 24 August 2025", None, "2025-08-24T20:00:00+03:00"),
            ("2025-08-24", "18:30", "2025-08-24T18:30:00+03:00"),
            ("2025-08-24T19:00:00+00:00", None, "2025-08-24T22:00:00+03:00"),
            ("08/24/2025", None, "2025-08-24T20:00:00+03:00"),
            ("24/08/2025", None, "2025-08-24T20:00:00+03:00"),
            ("08-06-2025", None, "2025-08-06T20:00:00+03:00"),
            ("in 2 hours", None, "2025-08-20T14:00:00+03:00"),
            ("in 30 minutes", None, "2025-08-20T12:30:00+03:00"),
            ("2 saat sonra", None, "2025-08-20T14:00:00+03:00"),
            ("in 3 days", None, "2025-08-23T20:00:00+03:00"),
            ("next week", None, "2025-08-27T20:00:00+03:00"),
            ("this weekend", None, "2025-08-23T20:00:00+03:00"),
            ("Saturday", "17:00", "2025-08-23T17:00:00+03:00"),
        ],
    )
    def test_parses_to_feed_time(self, raw_date, raw_time, expected):
        assert kickoff(raw_date, raw_time).isoformat() == expected

    def test_weekday_prefixed_month_name(self):
        now = datetime(2025, 8, 1, 10, 0, tzinfo=FEED_TZ)
        assert kickoff("Fri, Aug 8", now=now) == datetime(2025, 8, 8, 20, 0, tzinfo=FEED_TZ)

    def test_kickoff_is_always_plus_three(self):
        moment = parse_fixture_moment("2025-08-24T16:00:00Z", now=NOW).moment
        assert moment.kickoff.utcoffset().total_seconds() == 3 * 3600
        assert moment.time == "19:00"
        assert moment.match_day == date(2025, 8, 24)

    def test_yearless_date_long_past_rolls_into_next_year(self):
        now = datetime(2025, 12, 20, 12, 0, tzinfo=FEED_TZ)
        assert kickoff("Jan 4", now=now).date() == date(2026, 1, 4)
        assert kickoff("05.01", now=now).date() == date(2026, 1, 5)

    def test_recent_yearless_date_stays_in_current_year(self):
        assert kickoff("Aug 10").date() == date(2025, 8, 10)

    def test_naive_now_is_read_as_feed_time(self):
        naive = datetime(2025, 8, 20, 12, 0)
        assert kickoff("today, 7:00 PM", now=naive) == datetime(
            2025, 8, 20, 19, 0, tzinfo=FEED_TZ
        )


class TestExcludedAndFailed:
    @pytest.mark.parametrize(
        "raw_date, raw_time",
        [
            ("Postponed", None),
            ("Ertelendi", None),
            ("TBD", None),
            ("Aug 24", "TBC"),
            ("Cancelled", None),
            ("Maç iptal", None),
        ],
    )
    def test_postponed(self, raw_date, raw_time):
        result = parse_fixture_moment(raw_date, raw_time, NOW)
        assert result.outcome == MomentOutcome.POSTPONED
        assert result.moment is None

    @pytest.mark.parametrize(
        "raw_date", ["3 hours ago", "2 days ago", "Yesterday", "dün", "2 gün önce"]
    )
    def test_past_event(self, raw_date):
        result = parse_fixture_moment(raw_date, None, NOW)
        assert result.outcome == MomentOutcome.PAST_EVENT
        assert result.moment is None

    @pytest.mark.parametrize(
        "raw_date", ["", "   ", None, "soon", "31.02.2025", "Aug 45", "13/13/2025", "Matchday 3"]
    )
    def test_failure_is_never_defaulted(self, raw_date):
        result = parse_fixture_moment(raw_date, "19:00", NOW)
        assert result.outcome == MomentOutcome.PARSE_FAILURE
        assert result.moment is None
        assert result.reason


class TestClockTime:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("19:00", (19, 0)),
            ("19.00", (19, 0)),
            ("7:00 PM", (19, 0)),
            ("7 pm", (19, 0)),
            ("7:15 p.m.", (19, 15)),
            ("12:00 PM", (12, 0)),
            ("12:30 AM", (0, 30)),
            ("9:30 AM", (9, 30)),
        ],
    )
    def test_valid(self, raw, expected):
        assert parse_clock_time(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "19", "25:00", "19:75", "13 PM", "noon"])
    def test_invalid(self, raw):
        assert parse_clock_time(raw) is None

    def test_twelve_pm_stays_noon_in_full_parse(self):
        assert kickoff("today, 12:00 PM").hour == 12
        assert kickoff("today, 12:00 AM").hour == 0


class TestTwoDigitYear:
    def test_closest_century(self):
        today = date(2025, 8, 20)
        assert expand_two_digit_year(25, today) == 2025
        assert expand_two_digit_year(30, today) == 2030
        assert expand_two_digit_year(99, today) == 1999
