"""
Tests for the web application endpoints and functionality.
"""

import pytest
from fastapi.testclient import TestClient

from src.web.app import app


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    with TestClient(app) as client:
        yield client


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_endpoint_returns_200(self, client):
        """Test that health endpoint returns 200 OK."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_endpoint_returns_correct_data(self, client):
        """Test that health endpoint returns correct health data."""
        response = client.get("/health")
        assert response.json() == {
            "status": "healthy",
            "service": "episode-studio"
        }


class TestCORSConfiguration:
    """Tests for CORS middleware configuration."""

    def test_cors_headers_present(self, client):
        """Test that CORS headers are present in responses."""
        response = client.options(
            "/api/episodes",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "GET",
            }
        )
        assert "access-control-allow-origin" in response.headers

    def test_cors_allows_configured_origins(self, client):
        """Test that CORS allows the configured origins."""
        response = client.get(
            "/health",
            headers={"Origin": "http://localhost:3000"}
        )
        assert response.status_code == 200


class TestEpisodeApi:
    """Smoke tests for the episode API on the real app."""

    def test_episode_list_is_served(self, client):
        """Test that the episode list is reachable on the SQLite dev store."""
        response = client.get("/api/episodes")
        assert response.status_code == 200
        assert "episodes" in response.json()

    def test_selection_cleared_on_shutdown(self):
        """Test that shutting the app down stops the selected session."""
        with TestClient(app) as client:
            client.put("/api/selection", json={"episode_name": "Ep-100"})
            assert app.state.coordinator.session is not None
        assert app.state.coordinator.session is None


class TestErrorHandling:
    """Tests for error handling in the application."""

    def test_invalid_json_returns_422(self, client):
        """Test that invalid JSON returns 422 Unprocessable Entity."""
        response = client.put(
            "/api/selection",
            content="invalid json",
            headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 422

    def test_404_for_unknown_routes(self, client):
        """Test that unknown routes return 404."""
        response = client.get("/nonexistent")
        assert response.status_code == 404


class TestConfiguration:
    """Tests for configuration handling."""

    def test_config_loaded_correctly(self):
        """Test that configuration is loaded from Config class."""
        from src.web.app import config
        assert hasattr(config, "WEB_ALLOWED_ORIGINS")
        assert hasattr(config, "WEB_STREAM_INTERVAL")
        assert hasattr(config, "WEB_RATE_LIMIT")
        assert hasattr(config, "WEB_PORT")

    def test_listener_disabled_for_tests(self):
        """Test that the change listener is off against the SQLite store."""
        from src.web.app import config
        assert config.CHANGE_LISTENER_ENABLED is False
        assert config.uses_postgres is False

    def test_write_rate_limit_comes_from_config(self):
        """Test that write routes use the configured rate limit."""
        from src.web.app import config
        from src.web.limits import write_rate_limit
        assert write_rate_limit() == config.WEB_RATE_LIMIT == "1000/minute"
