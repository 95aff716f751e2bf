"""
Pytest configuration and fixtures for the Magic Stream API tests.

Every test gets its own in-memory SQLite database and a clock it can move.
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from api import create_app
from models import DBStorage, RefreshTokenStore
from models.user import User
from utils.security import hash_password
from utils.token_service import TokenService

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"
ACCESS_TTL = timedelta(minutes=15)
REFRESH_TTL = timedelta(hours=168)
PASSWORD = "password123"


class FakeClock:
    def __init__(self, start=None):
        self.current = start or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    db = DBStorage("sqlite://")
    db.reload()
    yield db
    db.dispose()


@pytest.fixture
def store(storage):
    return RefreshTokenStore(storage)


@pytest.fixture
def token_service(store, clock):
    return TokenService(
        store,
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        access_ttl=ACCESS_TTL,
        refresh_ttl=REFRESH_TTL,
        clock=clock,
    )


@pytest.fixture
def make_user(storage):
    def _make_user(user_id=None, email=None, roles=None, password=PASSWORD):
        kwargs = {}
        if user_id:
            kwargs["id"] = user_id
        user = User(
            first_name="John",
            last_name="Doe",
            email=email or f"{uuid.uuid4().hex}@example.com",
            password_hash=hash_password(password),
            roles=roles or ["user"],
            **kwargs,
        )
        storage.new(user)
        storage.save()
        return user

    return _make_user


@pytest.fixture
def app(storage, clock):
    application = create_app("testing", storage=storage, clock=clock)
    yield application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def register(client):
    def _register(email="john.doe@example.com", password=PASSWORD, first_name="John", last_name="Doe"):
        return client.post(
            "/api/v1/auth/register",
            json={
                "first_name": first_name,
                "last_name": last_name,
                "email": email,
                "password": password,
            },
        )

    return _register


@pytest.fixture
def admin_tokens(register):
    # admin@example.com is listed in TestingConfig.ADMIN_EMAILS
    resp = register(email="admin@example.com")
    assert resp.status_code == 201
    return resp.get_json()["tokens"]
