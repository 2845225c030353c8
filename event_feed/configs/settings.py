"""Centralized settings management for the event feed."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings powered by pydantic-settings.

    Loads configuration from environment variables and a .env file located
    at the repository root.
    """

    # -------------------------------------------------------------------------
    # ENVIRONMENT
    # -------------------------------------------------------------------------
    ENV: str = "development"
    DEBUG: bool = True

    # -------------------------------------------------------------------------
    # SOURCE API KEYS
    # -------------------------------------------------------------------------
    TICKETMASTER_API_KEY: SecretStr | None = None

    # -------------------------------------------------------------------------
    # FEED
    # -------------------------------------------------------------------------
    FEED_DEFAULT_LOCATION: str = "Paris,France"
    FEED_PAGE_SIZE: int = Field(default=50, ge=1, le=200)

    # Remote fetch is longer when external aggregation is explicitly requested
    FETCH_TIMEOUT_S: float = Field(default=15.0, gt=0)
    FETCH_TIMEOUT_WITH_EXTERNAL_S: float = Field(default=60.0, gt=0)

    # Minimum interval between two network warnings of the same kind
    NETWORK_WARN_INTERVAL_S: float = Field(default=10.0, ge=0)

    # Records tagged by the retired open-data importer are hidden from the feed
    LEGACY_SOURCE_MARKERS: list[str] = Field(default_factory=lambda: ["paris_opendata"])
    LEGACY_ORGANIZER_MARKERS: list[str] = Field(
        default_factory=lambda: ["Ville de Paris - Que faire à Paris"]
    )

    # -------------------------------------------------------------------------
    # PATHS
    # -------------------------------------------------------------------------
    BASE_DIR: Path = Path(__file__).resolve().parents[1]
    FEED_CONFIG_PATH: Path = BASE_DIR / "configs" / "feed.yaml"

    # -------------------------------------------------------------------------
    # CONFIGURATION
    # -------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        # Allow extra fields in .env but ignore them in the model
        extra="ignore",
    )

    def fetch_timeout(self, include_external: bool) -> float:
        """
        Return the remote fetch timeout in seconds.

        Parameters
        ----------
        include_external : bool
            Whether external aggregation was explicitly requested.
        """
        if include_external:
            return self.FETCH_TIMEOUT_WITH_EXTERNAL_S
        return self.FETCH_TIMEOUT_S


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns
    -------
    Settings
        The singleton settings instance.
    """
    return Settings()
