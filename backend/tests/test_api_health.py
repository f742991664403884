"""Tests for root and health check endpoints."""

from app.config import settings


def test_health_check(client):
    """Health endpoint reports ok with the configured app name."""
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "app_name": settings.app_name}


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == settings.app_name
    assert data["status"] == "running"
