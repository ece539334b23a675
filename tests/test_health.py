"""Тесты для health check endpoint и служебных middleware"""

from fastapi.testclient import TestClient

from habits_api.main import create_app
from habits_api.security import RateLimitMiddleware


def test_health_check(test_client):
    """Health check endpoint должен возвращать статус OK"""
    response = test_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "OK"
    assert data["service"] == "Habit Tracker API"
    assert "timestamp" in data


def test_health_check_no_auth_required(test_client):
    """Health check не требует авторизации"""
    assert "Authorization" not in test_client.headers

    response = test_client.get("/health")

    assert response.status_code == 200


def test_security_headers_and_correlation_id(test_client):
    response = test_client.get("/health", headers={"X-Correlation-ID": "abc-123"})

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Correlation-ID"] == "abc-123"


def test_metrics_endpoint(test_client):
    test_client.get("/health")

    response = test_client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_rate_limit(settings):
    settings.rate_limit_enabled = True
    settings.rate_limit_per_minute = 3
    application = create_app(settings)
    application.state.database.create_all()
    client = TestClient(application)

    statuses = [client.get("/api/tags").status_code for _ in range(4)]

    assert statuses[:3] == [200, 200, 200]
    assert statuses[3] == 429
    blocked = client.get("/api/tags")
    assert blocked.json()["title"] == "Rate Limit Exceeded"
    assert blocked.headers["Retry-After"] == "60"
    assert client.get("/health").status_code == 200


def test_rate_limiter_forgets_idle_clients():
    now = [1000.0]
    limiter = RateLimitMiddleware(None, requests_per_minute=5, clock=lambda: now[0])

    for i in range(3):
        limiter._register_hit(f"10.0.0.{i}", 5)
    assert len(limiter._hits) == 3

    now[0] += 61
    assert limiter._register_hit("10.0.0.99", 5) == 4

    assert set(limiter._hits) == {"10.0.0.99"}
