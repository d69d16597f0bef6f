"""Integration tests for health, metrics and request ID propagation."""

import pytest
from fastapi.testclient import TestClient


pytestmark = pytest.mark.integration


class TestHealthEndpoint:

    def test_health_reports_database(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["database"]["status"] == "healthy"


class TestMetricsEndpoint:

    def test_metrics_exposes_workflow_counters(self, admin_client: TestClient, submitted_application):
        admin_client.post(
            f"/api/applications/{submitted_application.id}/update-status",
            json={"status": "Documents Verified", "note": "ok"},
        )

        response = admin_client.get("/metrics")

        assert response.status_code == 200
        assert "status_transitions_total" in response.text


class TestRequestID:

    def test_request_id_is_generated(self, client: TestClient):
        response = client.get("/api/statuses")

        assert response.headers.get("X-Request-ID")

    def test_incoming_request_id_is_echoed(self, client: TestClient):
        response = client.get("/api/statuses", headers={"X-Request-ID": "req-12345"})

        assert response.headers["X-Request-ID"] == "req-12345"
