import re
from typing import Iterable, Optional

from fixture_bot.utils.misc_utils import fold_text

# Markers the feed puts in the date/time field itself. Matched on folded
# (lower-cased, accent-free) text.
POSTPONEMENT_MARKERS = (
    r"postponed",
    r"ertelendi",
    r"ertelenmis",
    r"tbd",
    r"tba",
    r"tbc",
    r"time tbc",
    r"to be (?:confirmed|announced|decided)",
    r"belirsiz",
    r"cancell?ed",
    r"iptal",
)

# Broader sweep over status, date and team-name fields.
POSTPONEMENT_SYNONYMS = POSTPONEMENT_MARKERS + (
    r"delayed",
    r"suspended",
    r"abandoned",
    r"rescheduled",
    r"called off",
    r"ertelenen",
    r"iptal edildi",
    r"askiya alindi",
    r"yarida kaldi",
    r"gecikmeli",
    r"yeniden planlandi",
)


def _compile(patterns: Iterable[str]) -> re.Pattern:
    return re.compile(r"\b(?:" + "|".join(patterns) + r")\b")


_MARKER_RE = _compile(POSTPONEMENT_MARKERS)
_SYNONYM_RE = _compile(POSTPONEMENT_SYNONYMS)


def find_postponement_marker(text: Optional[str]) -> Optional[str]:
    """Returns the marker found in a date/time string, if any."""
    if not text:
        return None
    match = _MARKER_RE.search(fold_text(text))
    return match.group(0) if match else None


def find_postponement_synonym(*fields: Optional[str]) -> Optional[str]:
    """Sweeps several free-text fields for any postponement wording."""
    for field in fields:
        if not field:
            continue
        match = _SYNONYM_RE.search(fold_text(field))
        if match:
            return match.group(0)
    return None
