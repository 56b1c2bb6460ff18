"""Shared fixtures: a fresh SQLite file per test and an in-memory mail outbox."""
import pytest
from fastapi.testclient import TestClient

from budgetflow.adapters.console import ConsoleMailAdapter
from budgetflow.config import settings
from budgetflow.main import app, get_mailer
from budgetflow.services.membership import GroupService
from budgetflow.storage.database import configure_db
from budgetflow.utils.security import hash_password


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    """Cheap bcrypt rounds keep registration tests quick."""
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)


@pytest.fixture
def db(tmp_path):
    """Database in a temporary file, installed as the app's global database."""
    return configure_db(str(tmp_path / "budgetflow_test.db"))


@pytest.fixture
def mailer():
    return ConsoleMailAdapter()


@pytest.fixture
def groups(db, mailer):
    return GroupService(db, mailer)


@pytest.fixture
def make_user(db):
    """Create a user directly in storage and return its id."""
    def _make(name: str, email: str) -> str:
        return db.users.create_user(name, email, hash_password("secret123")).id
    return _make


@pytest.fixture
def client(db, mailer):
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    """Register and log in through the API; returns (user_id, auth headers)."""
    def _signup(name: str, email: str, password: str = "secret123"):
        response = client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        data = response.json()
        return data["user"]["id"], {"Authorization": f"Bearer {data['token']}"}
    return _signup
