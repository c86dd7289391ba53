"""Tests for environment configuration."""

import pytest

from nutrilog.shell.config import AppConfig, STORE_FIRESTORE, STORE_MEMORY


class TestFromEnv:
    """Tests for AppConfig.from_env."""

    def test_defaults(self):
        """An empty environment gives the defaults."""
        config = AppConfig.from_env({})

        assert config.store == STORE_FIRESTORE
        assert config.port == 8080
        assert config.firestore.database == "nutrilog"
        assert config.firestore.project_id is None
        assert config.default_calorie_goal == 2000
        assert "http://localhost:5173" in config.cors_origins

    def test_overrides(self):
        """Variables override the defaults."""
        config = AppConfig.from_env({
            "NUTRILOG_STORE": "Memory",
            "GOOGLE_CLOUD_PROJECT": "demo",
            "PORT": "9000",
            "LOG_LEVEL": "debug",
            "CORS_ORIGINS": "https://a.example, https://b.example",
            "DEFAULT_CALORIE_GOAL": "1800",
        })

        assert config.store == STORE_MEMORY
        assert config.firestore.project_id == "demo"
        assert config.port == 9000
        assert config.base_url == "http://localhost:9000"
        assert config.log_level == "DEBUG"
        assert config.cors_origins == ["https://a.example", "https://b.example"]
        assert config.default_calorie_goal == 1800

    def test_unknown_store(self):
        """An unknown store is rejected."""
        with pytest.raises(ValueError):
            AppConfig.from_env({"NUTRILOG_STORE": "postgres"})
