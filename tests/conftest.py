import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from repario.db.engine import create_db_engine, get_engine
from repario.db.schema import metadata
from repario.main import app
from repario.models.invoices import NotificationResult
from repario.services.notifications import get_notifier


class RecordingNotifier:
    def __init__(self, success: bool = True):
        self.success = success
        self.sent = []

    def send(self, phone, message):
        self.sent.append((phone, message))
        return NotificationResult(success=self.success, details="recorded")


@pytest.fixture()
def engine():
    engine = create_db_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def client(engine, notifier):
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register(client, email="owner@example.com", password="secret-pass", full_name="Owner"):
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "fullName": full_name},
    )
    assert response.status_code == 201, response.text
    return response.json()


def auth_headers(client, email="owner@example.com"):
    body = register(client, email=email)
    return {"Authorization": f"Bearer {body['accessToken']}"}


@pytest.fixture()
def headers(client):
    return auth_headers(client)


@pytest.fixture()
def other_headers(client):
    return auth_headers(client, email="other@example.com")
