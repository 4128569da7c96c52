# tests/conftest.py
"""
Pytest fixtures for the API.

Every test runs against a fresh in-memory SQLite schema with the admin user
and default settings seeded. Env vars are set before ``main`` is imported so
config picks them up instead of a local .env.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "admin-pass"

import pytest
from fastapi.testclient import TestClient

from app.utils import security

# hashing cost is irrelevant here
security.PBKDF2_ITERATIONS = 1000

from main import app  # noqa: E402
from app.utils.database import Base, engine, SessionLocal  # noqa: E402
from app.initial_data import init_seed  # noqa: E402


# =============================================================================
# Database
# =============================================================================

@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    init_seed()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# =============================================================================
# Clients
# =============================================================================

@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def login(client, username, password):
    resp = client.post("/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def admin_headers(client):
    return login(client, "admin", "admin-pass")


@pytest.fixture
def login_as(client):
    def _login(username, password="secret123"):
        return login(client, username, password)
    return _login


@pytest.fixture
def make_user(client, admin_headers):
    def _make(username, password="secret123", role="BUYER", **extra):
        payload = {"username": username, "password": password, "role": role, **extra}
        resp = client.post("/users", json=payload, headers=admin_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make


@pytest.fixture
def make_project(client, admin_headers):
    def _make(name="Tower A", **extra):
        resp = client.post("/projects", json={"name": name, **extra}, headers=admin_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _make


@pytest.fixture
def add_member(client, admin_headers):
    def _add(project_id, user_id, unit_number, area):
        resp = client.post(
            f"/finance/projects/{project_id}/users",
            json={"user_id": user_id, "unit_number": unit_number, "area": area},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _add


@pytest.fixture
def add_definition(client, admin_headers):
    def _add(project_id, title, due_date, amount):
        resp = client.post(
            f"/finance/projects/{project_id}/installment-definitions",
            json={"title": title, "due_date": due_date, "amount": amount},
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _add


@pytest.fixture
def installments_of(client, admin_headers):
    def _get(project_id, user_id):
        resp = client.get(
            f"/finance/projects/{project_id}/installments",
            params={"user_id": user_id},
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text
        return resp.json()
    return _get


@pytest.fixture
def funded_project(make_user, make_project, add_member, add_definition):
    """
    Two buyers (areas 60 / 40) and two installments:
    "Down payment" 1000 due 2020-01-01 and "Final" 2000 due 2099-01-01.
    """
    project = make_project("Tower A")
    alice = make_user("alice")
    bob = make_user("bob")
    add_member(project["project_id"], alice["user_id"], "A-1", 60)
    add_member(project["project_id"], bob["user_id"], "A-2", 40)
    down = add_definition(project["project_id"], "Down payment", "2020-01-01", 1000)
    final = add_definition(project["project_id"], "Final", "2099-01-01", 2000)
    return {"project": project, "alice": alice, "bob": bob, "down": down, "final": final}
