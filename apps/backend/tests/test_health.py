"""Tests for health check endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient


class TestHealthCheck:
    """Tests for basic health check endpoint."""

    def test_health_check_returns_success(self, client: TestClient) -> None:
        """Test basic health check returns healthy status."""
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"]["status"] == "healthy"
        assert "Manuscript Assist" in data["data"]["message"]
        assert data["message"] == "Health check successful"

    def test_health_check_response_structure(self, client: TestClient) -> None:
        """Test health check response matches ApiResponse schema."""
        response = client.get("/api/v1/health")

        data = response.json()
        assert "success" in data
        assert "data" in data
        assert "message" in data
        assert isinstance(data["data"], dict)
        assert "status" in data["data"]

    def test_health_check_carries_correlation_id(self, client: TestClient) -> None:
        response = client.get(
            "/api/v1/health", headers={"X-Correlation-ID": "probe-1"}
        )

        assert response.headers["X-Correlation-ID"] == "probe-1"
