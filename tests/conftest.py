"""Shared fixtures: an in-memory database and an app wired to it per test."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SERVICE_NAME", "syspay-test")
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from syspay.common.db import Base, build_engine, build_session_factory  # noqa: E402
from syspay.main import create_app  # noqa: E402
from syspay.services.auth.schemas import SignInRequest, SignUpRequest  # noqa: E402
import syspay.services.charges.models  # noqa: E402,F401

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-secret"


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def app(session_factory):
    return create_app(session_factory=session_factory)


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def auth_service(app):
    return app.state.auth_service


@pytest.fixture()
def charge_service(app):
    return app.state.charge_service


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_user(auth_service):
    """Register a `user` account and return `(user_id, headers)`."""

    counter = {"n": 0}

    def _make(name: str = "Regular User"):
        counter["n"] += 1
        n = counter["n"]
        session = auth_service.sign_up(
            SignUpRequest(
                name=name,
                email=f"user{n}@example.com",
                password="user-secret",
                phone_number=f"+551199999{n:04d}",
                document=f"doc-{n:05d}",
            )
        )
        return session.user_id, _bearer(session.token)

    return _make


@pytest.fixture()
def user(make_user):
    return make_user()


@pytest.fixture()
def admin(auth_service):
    """Bootstrap admin account; returns `(user_id, headers)`."""

    auth_service.ensure_admin(ADMIN_EMAIL, ADMIN_PASSWORD, "Admin")
    session = auth_service.sign_in(SignInRequest(email=ADMIN_EMAIL, password=ADMIN_PASSWORD))
    return session.user_id, _bearer(session.token)


@pytest.fixture()
def pix_payload():
    """Factory for a valid PIX charge body."""

    def _payload(user_id: str, **overrides) -> dict:
        payload = {
            "amount": 100.50,
            "currency": "BRL",
            "paymentMethod": "PIX",
            "userId": user_id,
            "description": "order #1",
            "pixData": {"pixKey": "payer@example.com", "expiresAt": "2030-01-01T12:00:00Z"},
        }
        payload.update(overrides)
        return payload

    return _payload