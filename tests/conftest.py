import os
import sys
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# ВАЖНО: Установить переменные окружения ДО импорта модулей приложения
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUDIT_LOG_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-with-at-least-32-characters"

ROOT = Path(__file__).resolve().parents[1]  # корень репозитория
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from habits_api.config import Settings  # noqa: E402
from habits_api.main import create_app  # noqa: E402

TEST_SECRET = os.environ["JWT_SECRET"]


@pytest.fixture
def settings():
    """Настройки тестового приложения: in-memory SQLite, без rate limit"""
    return Settings(
        environment="test",
        database_url="sqlite://",
        jwt_secret=TEST_SECRET,
        rate_limit_enabled=False,
        audit_log_enabled=False,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    application = create_app(settings)
    application.state.database.create_all()
    yield application
    application.state.database.drop_all()
    application.state.database.dispose()


@pytest.fixture
def test_client(app):
    """Тестовый клиент FastAPI"""
    return TestClient(app)


@pytest.fixture
def db_session(app):
    session = app.state.database.session()
    yield session
    session.close()


def make_credentials(prefix: str = "user") -> dict:
    suffix = uuid.uuid4().hex[:10]
    return {
        "email": f"{prefix}_{suffix}@example.com",
        "username": f"{prefix}_{suffix}",
        "password": "TestPassword123!",
    }


@pytest.fixture
def test_user_credentials():
    """Уникальные учетные данные пользователя"""
    return make_credentials()


@pytest.fixture
def register_user(test_client):
    """Фабрика: зарегистрировать пользователя и вернуть (тело ответа, заголовки авторизации)"""

    def _register(prefix: str = "user"):
        credentials = make_credentials(prefix)
        response = test_client.post("/api/auth/register", json=credentials)
        assert response.status_code == 201, response.json()
        body = response.json()
        return body, {"Authorization": f"Bearer {body['token']}"}

    return _register


@pytest.fixture
def auth_headers(register_user):
    _, headers = register_user("alice")
    return headers


@pytest.fixture
def authenticated_client(test_client, auth_headers):
    """Клиент с JWT токеном в заголовках"""
    test_client.headers.update(auth_headers)
    yield test_client
    test_client.headers.pop("Authorization", None)


@pytest.fixture
def create_tag(test_client, auth_headers):
    def _create(name: str = None, color: str = None):
        payload = {"name": name or f"tag-{uuid.uuid4().hex[:8]}"}
        if color:
            payload["color"] = color
        response = test_client.post("/api/tags", json=payload, headers=auth_headers)
        assert response.status_code == 201, response.json()
        return response.json()["tag"]

    return _create


@pytest.fixture
def create_habit(authenticated_client):
    def _create(name: str = "Exercise", **fields):
        payload = {"name": name, "frequency": "daily", **fields}
        response = authenticated_client.post("/api/habits", json=payload)
        assert response.status_code == 201, response.json()
        return response.json()["habit"]

    return _create
