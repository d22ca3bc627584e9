import os

# Point the module-level app at a throwaway database before anything imports it.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from courses_api.config import Settings
from courses_api.database import create_db_and_tables, create_db_engine
from courses_api.main import create_app
from courses_api.services import AuthService


@pytest.fixture
def settings():
    return Settings(JWT_SECRET="test-secret", DATABASE_URL="sqlite://")


@pytest.fixture
def engine():
    """A fresh in-memory SQLite database per test."""
    eng = create_db_engine("sqlite://")
    create_db_and_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def app(settings, engine):
    return create_app(settings=settings, engine=engine)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def admin(engine):
    with Session(engine) as s:
        user = AuthService(s).create_user("admin", "secret")
        return {"id": user.id, "username": user.username, "password": "secret"}
