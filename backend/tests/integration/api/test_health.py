"""Integration tests for health and status endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from app.main import app


@pytest.fixture
def client():
    """Create test client (runs the lifespan)."""
    with TestClient(app) as test_client:
        yield test_client


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert "timestamp" in data

    def test_health_is_public(self, client):
        assert client.get("/health").status_code == 200
        assert client.get("/status").status_code == 200

    def test_status(self, client):
        data = client.get("/status").json()

        assert data["service"] == "tea-voice"
        assert data["status"] == "running"
        assert data["active_sessions"] == 0
        assert data["vector_store"] == "disabled"
        assert data["endpoints"]["voice_chat"] == "POST /voice-chat"
        assert data["endpoints"]["transcribe_stream"] == "WS /api/v1/transcribe/stream"

    def test_readiness_ok(self, client):
        with patch("app.main.ping_db", AsyncMock()):
            assert client.get("/health/ready").json() == {"status": "ready"}

    def test_readiness_reports_database_errors(self, client):
        with patch("app.main.ping_db", AsyncMock(side_effect=OSError("connection refused"))):
            data = client.get("/health/ready").json()

        assert data["status"] == "unhealthy"
        assert data["errors"] == ["Database: connection refused"]

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"x-request-id": "req-abc"})
        assert response.headers["x-request-id"] == "req-abc"

    def test_root_endpoint_in_dev(self, client):
        response = client.get("/")
        if response.status_code == 200:
            data = response.json()
            assert data["service"] == "tea-voice"
            assert "endpoints" in data


class TestLifespan:
    def test_container_and_sweeper(self):
        with TestClient(app) as client:
            container = client.app.state.container
            assert container.session_store.sweeper_running is True
            assert container.vector_store is None

        assert container.session_store.sweeper_running is False
