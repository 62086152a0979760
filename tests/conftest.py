# tests/conftest.py
import os

# Must be set before account_service is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from account_service import services
from account_service.db import Base, get_db
from account_service.main import app
from account_service.schemas import UserCreatePayload

TEST_PASSWORD = "password123"


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database per test, shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    """TestClient whose requests use the test database."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def alice(db):
    """Registers 'alice' through the service and returns the public view."""
    return services.create_user(
        db, UserCreatePayload(username="alice", email="alice@example.com", password=TEST_PASSWORD)
    )


@pytest.fixture
def bob(db):
    return services.create_user(
        db, UserCreatePayload(username="bob", email="bob@example.com", password=TEST_PASSWORD)
    )


# Authorization header helper
def auth_headers(token: str) -> dict:
    return {"Authorization": f"Token {token}"}
