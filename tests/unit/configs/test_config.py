"""
Unit tests for the config module.

Tests for Config path resolution and feed YAML loading.
"""

from pathlib import Path

from event_feed.configs.config import Config


class TestConfigPaths:
    """Tests for Config path attributes."""

    def test_config_dir_exists(self):
        """CONFIG_DIR should exist."""
        assert isinstance(Config.CONFIG_DIR, Path)
        assert Config.CONFIG_DIR.exists()

    def test_feed_config_path(self):
        path = Config.get_feed_config_path()
        assert path.name == "feed.yaml"
        assert path.exists()


class TestLoadFeedConfig:
    """Tests for Config.load_feed_config."""

    def test_returns_dict_with_sources(self):
        config = Config.load_feed_config()
        assert isinstance(config, dict)
        assert "ticketmaster" in config["sources"]

    def test_cached(self):
        assert Config.load_feed_config() is Config.load_feed_config()


class TestGetSourceConfig:
    """Tests for Config.get_source_config."""

    def test_ticketmaster_block(self):
        source = Config.get_source_config("ticketmaster")
        assert source["enabled"] is True
        assert source["response_path"] == "_embedded.events"
        assert source["segments"]["music"] == "KZFzniwnSyZfZ7v7nJ"
        assert source["image"]["min_width"] == 1000

    def test_unknown_source_is_empty(self):
        assert Config.get_source_config("does_not_exist") == {}
