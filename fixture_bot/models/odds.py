from pydantic import BaseModel, ConfigDict, Field, model_validator


class MatchOdds(BaseModel):
    """Win/draw probabilities (percent) estimated for a pairing."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    home_win: float = Field(..., ge=0, alias="homeWin")
    away_win: float = Field(..., ge=0, alias="awayWin")
    draw: float = Field(..., ge=0)

    @model_validator(mode="after")
    def _check_total(self) -> "MatchOdds":
        if self.total <= 0:
            raise ValueError("Odds must not all be zero.")
        return self

    @property
    def total(self) -> float:
        return self.home_win + self.away_win + self.draw

    def normalized(self) -> "MatchOdds":
        """Whole percentages summing to exactly 100; the draw absorbs rounding."""
        factor = 1 if abs(self.total - 100) <= 1 else 100 / self.total
        home_win = min(100, round(self.home_win * factor))
        away_win = min(100 - home_win, round(self.away_win * factor))
        return MatchOdds(
            home_win=home_win,
            away_win=away_win,
            draw=100 - home_win - away_win,
        )

    def as_percentages(self) -> tuple[int, int, int]:
        return int(self.home_win), int(self.away_win), int(self.draw)
