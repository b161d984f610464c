import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from loguru import logger

from fixture_bot.models.club import ClubConfig, TimeCorrection
from fixture_bot.models.enums import MatchStatus, MomentOutcome
from fixture_bot.models.fixture import NormalizedFixture, RawFixtureCandidate
from fixture_bot.normalization.corrections import apply_time_corrections
from fixture_bot.normalization.datetime_parser import (
    DEFAULT_KICKOFF,
    parse_fixture_moment,
)
from fixture_bot.normalization.postponement import find_postponement_synonym
from fixture_bot.utils.misc_utils import FEED_TZ, fold_text

# Type alias for an extraction strategy: raw search response -> candidates
ExtractionStrategy = Callable[[Dict[str, Any]], List[RawFixtureCandidate]]

SOURCE_GAMES = "sports_results.games"
SOURCE_SPOTLIGHT = "sports_results.game_spotlight"
SOURCE_ORGANIC = "organic_results"

_VS_SPLIT_RE = re.compile(r"\s+vs\.?\s+", re.IGNORECASE)
_HOME_PREFIX_SEPARATORS = re.compile(r".*(?::|\||\s-\s)\s*")
_AWAY_SUFFIX_SEPARATORS = re.compile(r"\s*(?::|\||\s-\s|,|\(|\d).*$")
_MONTH_WORD = (
    r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?"
)
_SNIPPET_DATE_RES = (
    re.compile(r"\b\d{1,2}\.\d{1,2}\.(?:\d{4}|\d{2})\b"),
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
    re.compile(rf"\b{_MONTH_WORD}\s+\d{{1,2}}(?:,?\s+\d{{4}})?\b", re.IGNORECASE),
    re.compile(rf"\b\d{{1,2}}\s+{_MONTH_WORD}(?:\s+\d{{4}})?\b", re.IGNORECASE),
    re.compile(r"\b(?:today|tomorrow)\b", re.IGNORECASE),
)
_SNIPPET_TIME_RE = re.compile(
    r"\b\d{1,2}:\d{2}(?:\s*[ap]\.?m\.?)?", re.IGNORECASE
)

_STATUS_WORDS = {
    MatchStatus.IN_PLAY: ("live", "in progress", "half time", "halftime", "ht"),
    MatchStatus.FULL_TIME: ("ft", "full time", "full-time", "final", "ended", "mac sonu"),
}


def map_match_status(raw_status: Optional[str]) -> MatchStatus:
    """Maps the feed's free-text status onto the stored status values."""
    folded = fold_text(raw_status or "")
    for status, words in _STATUS_WORDS.items():
        if folded in words or any(folded.startswith(f"{word} ") for word in words):
            return status
    return MatchStatus.SCHEDULED


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _team_name(team: Any) -> Optional[str]:
    return _text(team.get("name")) if isinstance(team, dict) else None


def _candidate_from_game(game: Any, source: str) -> Optional[RawFixtureCandidate]:
    """Turns one sports-panel game record into a candidate."""
    if not isinstance(game, dict):
        return None

    teams = game.get("teams")
    if not isinstance(teams, list) or len(teams) != 2:
        logger.debug(f"Skipping {source} record without exactly two teams: {teams}")
        return None

    home_name, away_name = _team_name(teams[0]), _team_name(teams[1])
    if not home_name or not away_name or home_name == away_name:
        logger.debug(f"Skipping {source} record with unusable team names: {teams}")
        return None

    raw_date = _text(game.get("date"))
    if not raw_date:
        logger.debug(f"Skipping {source} record without a date: {home_name} vs {away_name}")
        return None

    highlights = game.get("video_highlights")
    return RawFixtureCandidate(
        home_team_name=home_name,
        away_team_name=away_name,
        raw_date=raw_date,
        raw_time=_text(game.get("time")),
        league=_text(game.get("tournament")) or _text(game.get("league")),
        status=_text(game.get("status")),
        venue=_text(game.get("venue")) or _text(game.get("stadium")),
        video_link=_text(highlights.get("link")) if isinstance(highlights, dict) else None,
        home_team_logo=_text(teams[0].get("thumbnail")),
        away_team_logo=_text(teams[1].get("thumbnail")),
        source=source,
    )


def sports_results_games(response: Dict[str, Any]) -> List[RawFixtureCandidate]:
    """Games listed in the sports results panel."""
    sports_results = response.get("sports_results")
    if not isinstance(sports_results, dict):
        return []
    games = sports_results.get("games")
    if not isinstance(games, list):
        return []
    candidates = (_candidate_from_game(game, SOURCE_GAMES) for game in games)
    return [candidate for candidate in candidates if candidate]


def game_spotlight(response: Dict[str, Any]) -> List[RawFixtureCandidate]:
    """The single featured game of the sports results panel."""
    sports_results = response.get("sports_results")
    if not isinstance(sports_results, dict):
        return []
    candidate = _candidate_from_game(
        sports_results.get("game_spotlight"), SOURCE_SPOTLIGHT
    )
    return [candidate] if candidate else []


def _find_snippet_date(text: str) -> Optional[str]:
    for regex in _SNIPPET_DATE_RES:
        match = regex.search(text)
        if match:
            return match.group(0)
    return None


def organic_results(response: Dict[str, Any]) -> List[RawFixtureCandidate]:
    """Plain search results whose title reads like 'Home vs Away'."""
    results = response.get("organic_results")
    if not isinstance(results, list):
        return []

    candidates: List[RawFixtureCandidate] = []
    for result in results:
        if not isinstance(result, dict):
            continue
        title = _text(result.get("title")) or ""
        sides = _VS_SPLIT_RE.split(title, maxsplit=1)
        if len(sides) != 2:
            continue

        home_name = _HOME_PREFIX_SEPARATORS.sub("", sides[0]).strip()
        away_name = _AWAY_SUFFIX_SEPARATORS.sub("", sides[1]).strip()
        if not home_name or not away_name or fold_text(home_name) == fold_text(away_name):
            continue

        snippet = _text(result.get("snippet")) or ""
        raw_date = _find_snippet_date(snippet) or _find_snippet_date(title)
        if not raw_date:
            logger.debug(f"No date found in organic result '{title}'")
            continue
        time_match = _SNIPPET_TIME_RE.search(snippet)

        candidates.append(
            RawFixtureCandidate(
                home_team_name=home_name,
                away_team_name=away_name,
                raw_date=raw_date,
                raw_time=time_match.group(0) if time_match else None,
                video_link=_text(result.get("link")),
                source=SOURCE_ORGANIC,
            )
        )
    return candidates


DEFAULT_STRATEGIES: Sequence[ExtractionStrategy] = (
    sports_results_games,
    game_spotlight,
    organic_results,
)


class FixtureExtractor:
    """Turns raw search responses into windowed, normalized fixtures."""

    def __init__(
        self,
        strategies: Sequence[ExtractionStrategy] = DEFAULT_STRATEGIES,
        corrections: Sequence[TimeCorrection] = (),
        window_days: int = 7,
        default_time: str = DEFAULT_KICKOFF,
    ):
        self.strategies = list(strategies)
        self.corrections = list(corrections)
        self.window = timedelta(days=window_days)
        self.default_time = default_time

    def extract_candidates(
        self, raw_response: Dict[str, Any], club: ClubConfig
    ) -> List[RawFixtureCandidate]:
        """Runs every strategy and merges their candidates.

        No strategy's shape is guaranteed to be present and several may be
        present at once, so all of them always run.
        """
        if not isinstance(raw_response, dict):
            logger.warning(
                f"Expected a JSON object for {club.name}, got {type(raw_response)}"
            )
            return []

        candidates: List[RawFixtureCandidate] = []
        for strategy in self.strategies:
            try:
                found = strategy(raw_response)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.error(
                    f"Extraction strategy {strategy.__name__} failed for {club.name}: {e}"
                )
                continue

            for candidate in found:
                if candidate.source == SOURCE_ORGANIC and not self._mentions_club(
                    candidate, club
                ):
                    logger.debug(
                        f"Ignoring organic result unrelated to {club.name}: {candidate.description}"
                    )
                    continue
                if not candidate.league:
                    candidate = candidate.model_copy(update={"league": club.league})
                candidates.append(candidate)

        logger.debug(f"Extracted {len(candidates)} raw candidates for {club.name}")
        return candidates

    def extract_fixtures(
        self,
        raw_response: Dict[str, Any],
        club: ClubConfig,
        now: Optional[datetime] = None,
    ) -> List[NormalizedFixture]:
        """Candidates that survive postponement checks, parsing and the window."""
        now = (now or datetime.now(timezone.utc)).astimezone(FEED_TZ)
        window_end = now + self.window

        fixtures: List[NormalizedFixture] = []
        for candidate in self.extract_candidates(raw_response, club):
            fixture = self.normalize_candidate(candidate, now)
            if fixture is None:
                continue
            if not now <= fixture.moment.kickoff <= window_end:
                logger.debug(
                    f"Skipping {candidate.description}: kickoff {fixture.moment.isoformat()} outside sync window"
                )
                continue
            fixtures.append(fixture)

        logger.info(
            f"{club.name}: {len(fixtures)} fixtures inside the {self.window.days} day window"
        )
        return fixtures

    def normalize_candidate(
        self, candidate: RawFixtureCandidate, now: datetime
    ) -> Optional[NormalizedFixture]:
        """Normalizes one candidate, or returns None if it must be dropped."""
        synonym = find_postponement_synonym(
            candidate.status,
            candidate.raw_date,
            candidate.raw_time,
            candidate.home_team_name,
            candidate.away_team_name,
        )
        if synonym:
            logger.info(f"Skipping postponed fixture {candidate.description} ('{synonym}')")
            return None

        result = parse_fixture_moment(
            candidate.raw_date, candidate.raw_time, now, self.default_time
        )
        if result.outcome == MomentOutcome.POSTPONED:
            logger.info(f"Skipping postponed fixture {candidate.description} ('{result.reason}')")
            return None
        if result.outcome == MomentOutcome.PAST_EVENT:
            logger.info(f"Skipping past event {candidate.description}")
            return None
        if not result.ok:
            logger.warning(f"Could not parse date for {candidate.description}: {result.reason}")
            return None

        moment = apply_time_corrections(
            result.moment,
            candidate.league,
            candidate.home_team_name,
            candidate.away_team_name,
            self.corrections,
        )
        return NormalizedFixture(
            candidate=candidate, moment=moment, league=candidate.league or ""
        )

    @staticmethod
    def _mentions_club(candidate: RawFixtureCandidate, club: ClubConfig) -> bool:
        sides = (fold_text(candidate.home_team_name), fold_text(candidate.away_team_name))
        return any(
            fold_text(name) in side for name in club.names if name for side in sides
        )
