"""Tests for environment configuration."""

from unittest.mock import patch

import pytest

from src.config import Config
from src.workflow.config import StudioConfig


class TestConfig:
    """Tests for the Config class."""

    def test_defaults(self):
        """Test default values when nothing is set."""
        with patch.dict("os.environ", {}, clear=True), patch("src.config.load_dotenv"):
            config = Config()

        assert config.DATABASE_URL == "sqlite:///./episode_studio.db"
        assert config.CHANGE_CHANNEL == "autoworkflow_changes"
        assert config.CHANGE_LISTENER_ENABLED is True
        assert config.COVER_ART_BUCKET == "podcast_assets"
        assert config.SUBMIT_WEBHOOK_URL == ""
        assert config.WEB_RATE_LIMIT == "10/minute"
        assert config.WEB_PORT == 8080

    def test_webhook_urls_trailing_slash_removed(self):
        env = {"SUBMIT_WEBHOOK_URL": "https://n8n.test/webhook/submit/"}
        with patch.dict("os.environ", env, clear=True), patch("src.config.load_dotenv"):
            config = Config()

        assert config.SUBMIT_WEBHOOK_URL == "https://n8n.test/webhook/submit"

    def test_invalid_url_rejected(self):
        env = {"AUDIO_WEBHOOK_URL": "ftp://n8n.test/audio"}
        with patch.dict("os.environ", env, clear=True), patch("src.config.load_dotenv"):
            with pytest.raises(ValueError, match="AUDIO_WEBHOOK_URL"):
                Config()

    @pytest.mark.parametrize("url,expected", [
        ("postgresql://u:p@db/app", True),
        ("postgresql+psycopg2://u:p@db/app", True),
        ("sqlite:///./episode_studio.db", False),
    ])
    def test_uses_postgres(self, url, expected):
        with patch.dict("os.environ", {"DATABASE_URL": url}, clear=True), patch("src.config.load_dotenv"):
            assert Config().uses_postgres is expected

    def test_env_file_is_loaded(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("COVER_ART_BUCKET=covers\n")
        with patch.dict("os.environ", {}, clear=True):
            config = Config(env_file=str(env_file))

        assert config.COVER_ART_BUCKET == "covers"


class TestStudioConfig:
    """Tests for StudioConfig.from_env."""

    def test_defaults(self):
        """Test default values when no env vars are set."""
        with patch.dict("os.environ", {}, clear=True):
            config = StudioConfig.from_env()

        assert config.poll_interval_seconds == 1.0
        assert config.wait_budget_seconds == 120
        assert config.audio_trigger_timeout_seconds == 30
        assert config.max_notices == 20

    def test_overrides(self):
        env = {
            "STUDIO_POLL_INTERVAL_SECONDS": "0.5",
            "STUDIO_WAIT_BUDGET_SECONDS": "60",
            "STUDIO_RECENT_EPISODES_LIMIT": "10",
        }
        with patch.dict("os.environ", env, clear=True):
            config = StudioConfig.from_env()

        assert config.poll_interval_seconds == 0.5
        assert config.wait_budget_seconds == 60
        assert config.recent_episodes_limit == 10

    def test_invalid_integer(self):
        with patch.dict("os.environ", {"STUDIO_WAIT_BUDGET_SECONDS": "soon"}, clear=True):
            with pytest.raises(ValueError, match="not a valid integer"):
                StudioConfig.from_env()

    def test_out_of_range(self):
        with patch.dict("os.environ", {"STUDIO_RECENT_EPISODES_LIMIT": "5000"}, clear=True):
            with pytest.raises(ValueError, match="must be <= 1000"):
                StudioConfig.from_env()

    def test_poll_interval_must_be_below_budget(self):
        env = {"STUDIO_POLL_INTERVAL_SECONDS": "10", "STUDIO_WAIT_BUDGET_SECONDS": "5"}
        with patch.dict("os.environ", env, clear=True):
            with pytest.raises(ValueError, match="must be less than"):
                StudioConfig.from_env()
