# fixture_bot/utils/misc_utils.py
import re
import unicodedata
from datetime import timedelta, timezone

# All kickoff times are stored and displayed in Turkey time.
FEED_TZ = timezone(timedelta(hours=3))

_TURKISH_FOLDS = str.maketrans({"ı": "i", "İ": "i", "ş": "s", "ğ": "g"})


def fold_text(text: str) -> str:
    """Lower-cases and strips accents so 'Beşiktaş' and 'besiktas' compare equal."""
    if not text:
        return ""
    text = text.translate(_TURKISH_FOLDS)
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"\s+", " ", stripped.casefold()).strip()


def short_name_for(team_name: str) -> str:
    """Synthesizes a three letter code from the team name."""
    letters = re.sub(r"[^\w]", "", team_name.strip())
    return letters[:3].upper()


def coalesce_key(*parts: str) -> str:
    """Key used to collapse concurrent lookups for the same names."""
    return "|".join(part.strip().lower() for part in parts)
