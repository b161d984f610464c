from typing import Optional, Sequence

from loguru import logger

from fixture_bot.models.club import TimeCorrection
from fixture_bot.models.fixture import CanonicalMoment
from fixture_bot.utils.misc_utils import fold_text


def find_time_correction(
    moment: CanonicalMoment,
    fields: Sequence[Optional[str]],
    corrections: Sequence[TimeCorrection],
) -> Optional[TimeCorrection]:
    """First table entry whose wrong time and matcher both apply."""
    folded_fields = [fold_text(field) for field in fields if field]
    for correction in corrections:
        if moment.time != correction.wrong_time:
            continue
        needle = fold_text(correction.matcher)
        if any(needle in field for field in folded_fields):
            return correction
    return None


def apply_time_corrections(
    moment: CanonicalMoment,
    league: Optional[str],
    home_team_name: str,
    away_team_name: str,
    corrections: Sequence[TimeCorrection],
) -> CanonicalMoment:
    """Moves a known-wrong kickoff to the league's real slot on the same day."""
    correction = find_time_correction(
        moment, (league, home_team_name, away_team_name), corrections
    )
    if correction is None:
        return moment

    hour, minute = (int(part) for part in correction.corrected_time.split(":"))
    corrected = CanonicalMoment(kickoff=moment.kickoff.replace(hour=hour, minute=minute))
    logger.info(
        f"Corrected kickoff for {home_team_name} vs {away_team_name} "
        f"from {moment.time} to {corrected.time} (matcher '{correction.matcher}')"
    )
    return corrected
