"""Configuration loader for the event feed."""

from functools import lru_cache
from pathlib import Path

import yaml

from event_feed.configs.settings import get_settings


class Config:
    """Configuration for the event feed."""

    CONFIG_DIR = Path(__file__).parent.resolve()

    @classmethod
    def get_feed_config_path(cls) -> Path:
        """Return the absolute path to the feed YAML."""
        return get_settings().FEED_CONFIG_PATH

    @classmethod
    @lru_cache
    def load_feed_config(cls) -> dict:
        """Load the YAML configuration for the feed sources."""
        settings = get_settings()
        path = cls.get_feed_config_path()
        if not path.exists():
            raise FileNotFoundError(f"Missing config at {path}")

        with open(path, encoding="utf-8") as f:
            content = f.read()

            # Substitute environment variables from settings
            # This handles placeholders like ${TICKETMASTER_API_KEY} in the YAML
            for key, value in settings.model_dump().items():
                placeholder = f"${{{key}}}"
                if placeholder in content:
                    val_str = (
                        value.get_secret_value()
                        if hasattr(value, "get_secret_value")
                        else str(value)
                    )
                    content = content.replace(placeholder, val_str)

            return yaml.safe_load(content) or {}

    @classmethod
    def get_source_config(cls, source_name: str) -> dict:
        """Return the ``sources.<source_name>`` block, or an empty dict."""
        sources = cls.load_feed_config().get("sources") or {}
        return sources.get(source_name) or {}
