"""Tests for app wiring: health, error envelope and CORS."""

from fastapi.testclient import TestClient

from qa_dashboard.main import create_app
from qa_dashboard.utils.errors import ApiError


class TestHealth:
    """Tests for the health endpoints."""

    def test_health(self, client):
        """Should report healthy."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["service"] == "qa-dashboard-api"

    def test_ready(self, client):
        """Should be ready once the lifespan created the run services."""
        data = client.get("/health/ready").json()

        assert data["ready"] is True
        assert data["checks"]["orchestrator"] is True

    def test_not_ready_without_tests_dir(self, client, project_root):
        """Should report the missing tests directory."""
        (project_root / "tests").rmdir()

        data = client.get("/health/ready").json()

        assert data["ready"] is False
        assert data["checks"]["tests_dir"] is False

    def test_config_hides_secrets(self, client):
        """Should show only non-sensitive settings."""
        data = client.get("/health/config").json()

        assert data["max_concurrent_runs"] == 5
        assert "AXE_SCRIPT_URL" not in data


class TestErrorEnvelope:
    """Tests for the registered exception handlers."""

    def test_unknown_route(self, client):
        """Should wrap 404s in the envelope."""
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_api_error_extras(self):
        """Should drop None extras from the envelope."""
        error = ApiError(404, "Missing", searchedLocations=["a"], details=None)

        assert error.to_dict() == {"success": False, "error": "Missing", "searchedLocations": ["a"]}

    def test_unhandled_error(self, app_settings):
        """Should answer 500 with details and no stack outside development."""
        app = create_app(app_settings)

        @app.get("/boom")
        async def boom():
            raise RuntimeError("kaboom")

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/boom")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error", "details": "kaboom"}

    def test_stack_in_development(self, app_settings):
        """Should include the stack trace in development."""
        app = create_app(app_settings.model_copy(update={"ENVIRONMENT": "development"}))

        @app.get("/boom")
        async def boom():
            raise RuntimeError("kaboom")

        with TestClient(app, raise_server_exceptions=False) as client:
            data = client.get("/boom").json()

        assert "stack" in data


class TestCors:
    """Tests for CORS configuration."""

    def test_allowed_origin(self, client):
        """Should allow the dashboard origin."""
        response = client.get("/health", headers={"Origin": "http://localhost:3000"})

        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
