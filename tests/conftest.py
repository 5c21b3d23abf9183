from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from mytodos.config import Settings
from mytodos.core.deps import get_model_client
from mytodos.core.errors import UpstreamError
from mytodos.core.security import hash_password
from mytodos.database import create_db_engine, init_db
from mytodos.main import create_app
from mytodos.models.user import User


class FakeModelClient:
    """Stands in for ChatModelClient; records every prompt pair it receives."""

    def __init__(self, reply="Start with the high priority todo.", model="fake-model"):
        self.reply = reply
        self.model = model
        self.calls = []

    def complete(self, system_prompt, user_prompt, max_tokens=1000, temperature=0.7):
        self.calls.append((system_prompt, user_prompt))
        return self.reply


class FailingModelClient(FakeModelClient):
    def complete(self, system_prompt, user_prompt, max_tokens=1000, temperature=0.7):
        self.calls.append((system_prompt, user_prompt))
        raise UpstreamError("fake", "connection refused")


@pytest.fixture
def settings():
    return Settings(
        ENVIRONMENT="test",
        JWT_SECRET="test-secret",
        DATABASE_URL="sqlite://",
        DEEPSEEK_API_KEY="",
    )


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def user(session):
    user = User(username="alice", password_hash=hash_password("pw123"))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def other_user(session):
    user = User(username="bob", password_hash=hash_password("pw456"))
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def model_client():
    return FakeModelClient()


@pytest.fixture
def app(settings, engine, model_client):
    app = create_app(settings, engine)
    app.dependency_overrides[get_model_client] = lambda: model_client
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def register(client, username="alice", password="pw123"):
    response = client.post(
        "/api/auth/register", json={"username": username, "password": password}
    )
    assert response.status_code == 201, response.text
    return response.json()


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice_headers(client):
    return auth_headers(register(client)["token"])


@pytest.fixture
def bob_headers(client):
    return auth_headers(register(client, "bob", "pw456")["token"])


@pytest.fixture
def todo_snapshot():
    return [
        {
            "id": 1,
            "title": "Buy milk",
            "completed": False,
            "priority": 1,
            "due_date": (date.today() + timedelta(days=1)).isoformat(),
        }
    ]
