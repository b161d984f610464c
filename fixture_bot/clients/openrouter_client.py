import json
import re
import time
from typing import Any, Dict, Optional, Tuple

import httpx
from loguru import logger
from pydantic import ValidationError

from fixture_bot.clients.base_client import BaseClient, ClientError
from fixture_bot.config.settings import settings
from fixture_bot.models.odds import MatchOdds
from fixture_bot.sync.coalesce import RequestCoalescer
from fixture_bot.utils.misc_utils import coalesce_key

ODDS_PROMPT = """
You are a football betting expert. Analyze the upcoming match between {home} and {away} and provide the win probabilities in the following JSON format:
{{
  "homeWin": 45,
  "awayWin": 30,
  "draw": 25
}}

Please provide realistic percentages that add up to 100. Base your analysis on general team strength, recent form, and typical match outcomes for teams of this caliber. IMPORTANT: Respond with ONLY the JSON object and nothing else. Do not include any markdown formatting, code blocks, or additional text.
"""

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_JSON_OBJECT_RE = re.compile(r"\{[^{}]*\}", re.DOTALL)


class OddsEstimationError(ClientError):
    """Raised when the model reply cannot be turned into odds."""

    pass


def parse_odds_reply(content: str) -> MatchOdds:
    """Pulls the odds object out of a model reply, tolerating fences and prose."""
    if not content or not content.strip():
        raise OddsEstimationError("Empty reply from odds model")

    cleaned = _FENCE_RE.sub("", content)
    # Reasoning models may echo the example object first; the answer comes last
    candidates = _JSON_OBJECT_RE.findall(cleaned)
    for raw in reversed(candidates):
        try:
            return MatchOdds.model_validate(json.loads(raw)).normalized()
        except (ValueError, ValidationError) as e:
            logger.debug(f"Discarding odds candidate {raw!r}: {e}")
    raise OddsEstimationError(f"No odds object found in reply: {content[:120]!r}")


class OddsEstimator(BaseClient):
    """Win/draw probability estimates from an LLM via OpenRouter."""

    service_name = "OpenRouter"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        cache_ttl_seconds: float = 30 * 60,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(client)
        self.api_key = api_key or settings.openrouter_api_key
        if not self.api_key:
            raise ValueError("OPENROUTER_API_KEY is not configured.")
        self.model = model or settings.openrouter_model
        self.base_url = (base_url or settings.openrouter_base_url).rstrip("/")
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cache: Dict[str, Tuple[float, MatchOdds]] = {}
        self._coalescer = RequestCoalescer("odds")

    async def get_odds(self, home_team: str, away_team: str) -> MatchOdds:
        """Normalized odds for a pairing; raises OddsEstimationError on failure."""
        key = coalesce_key(home_team, away_team)
        cached = self._cache.get(key)
        if cached and time.monotonic() - cached[0] < self.cache_ttl_seconds:
            return cached[1]

        odds = await self._coalescer.run(
            key, lambda: self._request_odds(home_team, away_team)
        )
        self._cache[key] = (time.monotonic(), odds)
        return odds

    async def _request_odds(self, home_team: str, away_team: str) -> MatchOdds:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": ODDS_PROMPT.format(home=home_team, away=away_team),
                }
            ],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": "Fixture Bot",
        }
        try:
            response = await self._make_request(
                "POST", f"{self.base_url}/chat/completions", headers=headers, json_data=payload
            )
            data = response.json()
        except ClientError as e:
            raise OddsEstimationError(
                f"Odds request failed for {home_team} vs {away_team}: {e}"
            ) from e
        except ValueError as e:
            raise OddsEstimationError("OpenRouter returned a non-JSON body") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise OddsEstimationError(f"Malformed OpenRouter response: {data!r}") from e

        odds = parse_odds_reply(content or "")
        logger.debug(
            f"Odds for {home_team} vs {away_team}: "
            f"{odds.home_win}/{odds.draw}/{odds.away_win}"
        )
        return odds
