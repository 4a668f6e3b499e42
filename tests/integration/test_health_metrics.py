"""Integration tests for /health, /healthz and /metrics endpoints."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from tripsync.app.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


class TestHealthEndpoint:
    """Test liveness and readiness endpoints."""

    def test_health_always_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @patch("tripsync.app.api.routes.health.check_db")
    def test_healthz_returns_200_when_db_ok(self, mock_check_db: MagicMock, client: TestClient) -> None:
        """Test /healthz returns 200 with collaborator modes when the DB answers."""
        mock_check_db.return_value = (True, "ok")

        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["components"]["db"] == "ok"
        assert data["components"]["places"] == "fixtures"
        assert data["components"]["directions"] == "haversine"

    @patch("tripsync.app.api.routes.health.check_db")
    def test_healthz_returns_503_when_db_fails(self, mock_check_db: MagicMock, client: TestClient) -> None:
        """Test /healthz returns 503 when DB check fails."""
        mock_check_db.return_value = (False, "connection refused")

        response = client.get("/healthz")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["components"]["db"] == "connection refused"


class TestMetricsEndpoint:
    """Test /metrics endpoint."""

    def test_metrics_returns_prometheus_format(self, client: TestClient) -> None:
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]

    def test_metrics_include_sync_and_collaborator_series(self, client: TestClient) -> None:
        """Test /metrics exposes the sync and collaborator metrics."""
        from tripsync.app.utils.metrics import (
            collaborator_errors_total,
            collaborator_latency_ms,
            record_place_resolution,
            record_sync_action,
        )

        collaborator_latency_ms.labels(collaborator="test", outcome="success").observe(100)
        collaborator_errors_total.labels(collaborator="test", reason="timeout").inc()
        record_sync_action("ADD_DESTINATIONS", "applied")
        record_place_resolution("resolved")

        text = client.get("/metrics").text

        assert "collaborator_latency_ms" in text
        assert "collaborator_errors_total" in text
        assert 'sync_actions_total{kind="ADD_DESTINATIONS",outcome="applied"}' in text
        assert "place_resolution_total" in text


class TestRootEndpoint:
    """Test root endpoint."""

    def test_root_returns_api_info(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {"message": "TripSync API", "version": "0.1.0"}
