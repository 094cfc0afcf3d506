"""Tests for the application shell: banner, health check and error rendering."""
from unittest.mock import AsyncMock

from booktracker import main


def test_root_banner(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "API is running..."}


def test_health_reports_database(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "connected"
    assert data["redis"] == "not configured"


def test_docs_served_under_api_prefix(client):
    assert client.get("/api/openapi.json").status_code == 200


def test_domain_errors_are_structured(client):
    response = client.get("/api/books/999")
    assert response.status_code == 404
    assert response.json() == {"detail": "Book not found", "code": "NotFound"}


def test_malformed_body_keeps_framework_validation(client):
    response = client.post("/api/auth/verify-otp", json={"userId": "not-a-number"})
    assert response.status_code == 422


def test_rate_limit_rejects_after_limit(client, monkeypatch):
    fake_redis = AsyncMock()
    fake_redis.incr.return_value = main.settings.RATE_LIMIT_PER_MINUTE + 1
    monkeypatch.setattr(main, "redis", fake_redis)

    response = client.get("/")
    assert response.status_code == 429
    assert response.json()["code"] == "RateLimited"


def test_rate_limit_allows_under_limit(client, monkeypatch):
    fake_redis = AsyncMock()
    fake_redis.incr.return_value = 1
    monkeypatch.setattr(main, "redis", fake_redis)

    assert client.get("/").status_code == 200
    fake_redis.expire.assert_awaited_once()
