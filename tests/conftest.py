"""
Pytest configuration and fixtures for episode-studio tests.

This module runs before any test imports, setting up the test environment.
Environment variables are explicitly set to ensure deterministic test behavior
regardless of external environment configuration.
"""

import os
import tempfile

import pytest

# Keep the app's module-level repository away from the working directory
_TEST_DB_DIR = tempfile.mkdtemp(prefix="episode-studio-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'app.db')}"

# No LISTEN/NOTIFY against SQLite; tests publish change events directly
os.environ["CHANGE_LISTENER_ENABLED"] = "false"

# Webhooks are mocked in tests; never call real endpoints
os.environ["SUBMIT_WEBHOOK_URL"] = "https://automation.test/webhook/submit"
os.environ["AUDIO_WEBHOOK_URL"] = "https://automation.test/webhook/audio"
os.environ["SUPABASE_URL"] = "https://project.supabase.test"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-service-key"

# Generous limit so route tests are not throttled
os.environ["RATE_LIMIT"] = "1000/minute"

from src.db.factory import create_repository  # noqa: E402
from src.workflow.config import StudioConfig  # noqa: E402


@pytest.fixture
def repository(tmp_path):
    """
    Create a temporary SQLite-backed repository for tests.

    Yields a repository instance configured to use a SQLite file under the provided temporary path and closes the repository when the fixture is torn down.
    """
    db_path = tmp_path / "test.db"
    repo = create_repository(f"sqlite:///{db_path}", create_tables=True)
    yield repo
    repo.close()


@pytest.fixture
def fast_config():
    """Studio settings with short intervals so async tests finish quickly."""
    return StudioConfig(
        poll_interval_seconds=0.01,
        wait_budget_seconds=0.3,
        audio_trigger_timeout_seconds=1,
        max_notices=20,
        recent_episodes_limit=50,
    )


def make_row(episode_name="Ep-100", **overrides):
    """Build a column-keyed workflow row like the ones change events carry."""
    row = {
        "id": "row-1",
        "created_at": "2025-03-01T12:00:00+00:00",
        "episode_interview_file_name": episode_name,
        "episode_interview_script_1": None,
        "episode_interview_script_2": None,
        "episode_interview_script_3": None,
        "episode_interview_script_4": None,
        "episode_interview_full_script": None,
        "episode_interview_file": None,
        "episode_interview_script_status": None,
        "episode_text_files_status": None,
        "podcast_status": None,
    }
    row.update(overrides)
    return row
