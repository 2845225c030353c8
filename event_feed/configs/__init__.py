"""Settings and YAML configuration for the event feed."""

from .config import Config
from .settings import Settings, get_settings

__all__ = ["Config", "Settings", "get_settings"]
