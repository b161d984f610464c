import logging
from typing import List, Optional

from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from fixture_bot.models.club import ClubConfig, TimeCorrection
from fixture_bot.models.enums import IdentityMode

DEFAULT_TRACKED_CLUBS: List[ClubConfig] = [
    ClubConfig(name="Galatasaray", query="Galatasaray", league="Süper Lig"),
    ClubConfig(
        name="Fenerbahçe",
        query="Fenerbahçe",
        league="Süper Lig",
        aliases=["Fenerbahce"],
    ),
    ClubConfig(
        name="Beşiktaş",
        query="Beşiktaş",
        league="Süper Lig",
        aliases=["Besiktas"],
    ),
    ClubConfig(name="Liverpool", query="Liverpool", league="Premier League"),
    ClubConfig(name="Chelsea", query="Chelsea", league="Premier League"),
    ClubConfig(name="Arsenal", query="Arsenal", league="Premier League"),
    ClubConfig(
        name="Manchester United",
        query="Manchester United",
        league="Premier League",
        aliases=["Man United", "Man Utd"],
    ),
    ClubConfig(
        name="Manchester City",
        query="Manchester City",
        league="Premier League",
        aliases=["Man City"],
    ),
    ClubConfig(name="Real Madrid", query="Real Madrid", league="La Liga"),
    ClubConfig(
        name="Barcelona",
        query="Barcelona",
        league="La Liga",
        aliases=["FC Barcelona", "Barça"],
    ),
]

# The feed reports 09:30 for evening Süper Lig kickoffs.
DEFAULT_TIME_CORRECTIONS: List[TimeCorrection] = [
    TimeCorrection(matcher="süper lig", wrong_time="09:30", corrected_time="20:00"),
    TimeCorrection(matcher="galatasaray", wrong_time="09:30", corrected_time="20:00"),
    TimeCorrection(matcher="fenerbahçe", wrong_time="09:30", corrected_time="20:00"),
    TimeCorrection(matcher="beşiktaş", wrong_time="09:30", corrected_time="20:00"),
]


class AppSettings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # Supabase Configuration
    supabase_url: Optional[HttpUrl] = Field(
        None, description="URL for the Supabase project."
    )
    supabase_key: Optional[str] = Field(
        None, description="Anon key for the Supabase project."
    )
    supabase_service_key: Optional[str] = Field(
        None, description="Service role key for Supabase, used for writes."
    )

    # Upstream APIs
    serpapi_api_key: Optional[str] = Field(None, description="API key for SerpAPI.")
    serpapi_base_url: str = "https://serpapi.com/search.json"
    search_location: str = Field(
        "Istanbul, Turkey", description="Location hint sent with every search."
    )
    openrouter_api_key: Optional[str] = Field(
        None, description="API key for OpenRouter (odds estimation)."
    )
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_model: str = "deepseek/deepseek-r1:free"
    request_timeout_seconds: float = Field(30.0, gt=0)

    # Sync Settings
    tracked_clubs: List[ClubConfig] = Field(
        default_factory=lambda: list(DEFAULT_TRACKED_CLUBS)
    )
    time_corrections: List[TimeCorrection] = Field(
        default_factory=lambda: list(DEFAULT_TIME_CORRECTIONS)
    )
    sync_window_days: int = Field(7, ge=1)
    sync_interval_hours: float = Field(
        168.0, gt=0, description="Hours between automatic sync cycles."
    )
    max_concurrent_club_syncs: int = Field(4, ge=1)
    wipe_before_sync: bool = Field(
        True, description="Delete every match row before a sync cycle."
    )
    match_identity_mode: IdentityMode = Field(
        IdentityMode.CALENDAR_DATE,
        description="'calendar_date' or 'exact_kickoff' match identity lookups.",
    )
    default_kickoff_time: str = "20:00"

    # Consumer Query Windows
    notification_lead_minutes: int = Field(60, ge=1)
    voice_room_lead_minutes: int = Field(15, ge=1)

    # Logging Configuration
    log_level: str = Field(
        "INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @property
    def supabase_write_key(self) -> Optional[str]:
        """Service role key if configured, otherwise the anon key."""
        return self.supabase_service_key or self.supabase_key


def load_settings() -> AppSettings:
    """Loads and validates application settings."""
    try:
        settings = AppSettings()
        log_level_upper = settings.log_level.upper()
        # Validate log_level even if loaded from .env
        if log_level_upper not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            logging.warning(
                f"Invalid LOG_LEVEL '{settings.log_level}' found in .env or default. Using INFO."
            )
            settings.log_level = "INFO"
        else:
            settings.log_level = log_level_upper
        return settings
    except Exception as e:
        logging.exception(f"Error loading application settings: {e}")
        raise SystemExit("Failed to load application settings. Exiting.")


settings: AppSettings = load_settings()
