"""
Shared fixtures: an in-memory SQLite database, a signed API client and users.
"""
import os
import sys

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("INTERNAL_AUTH_SECRET", "test-internal-auth-secret")

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from fintrack.database import Base, SessionLocal, engine  # noqa: E402
from fintrack.models import User  # noqa: E402
from internal_auth import build_internal_auth_headers  # noqa: E402

TEST_USER_ID = "user-test-1"
OTHER_USER_ID = "user-test-2"


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _make_user(db, user_id: str, email: str) -> User:
    user = User(id=user_id, email=email, first_name="Test")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def user(db) -> User:
    return _make_user(db, TEST_USER_ID, "test@example.com")


@pytest.fixture
def other_user(db) -> User:
    return _make_user(db, OTHER_USER_ID, "other@example.com")


class SignedClient:
    """TestClient wrapper that signs every request for one user."""

    def __init__(self, client: TestClient, user_id: str):
        self.client = client
        self.user_id = user_id

    def request(self, method: str, path: str, **kwargs):
        headers = build_internal_auth_headers(method, path, self.user_id)
        headers.update(kwargs.pop("headers", {}))
        return self.client.request(method, path, headers=headers, **kwargs)

    def get(self, path: str, **kwargs):
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs):
        return self.request("POST", path, **kwargs)

    def patch(self, path: str, **kwargs):
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs):
        return self.request("DELETE", path, **kwargs)


@pytest.fixture
def raw_client():
    from fintrack.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def api(raw_client, user) -> SignedClient:
    return SignedClient(raw_client, user.id)


@pytest.fixture
def client_for(raw_client):
    """Factory signing requests as an arbitrary user id."""
    return lambda user_id: SignedClient(raw_client, user_id)
