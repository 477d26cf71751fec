"""
Shared pytest fixtures for the SurveyHub test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - admin / surveyor / client_user: Pre-created users
    - auth_headers: builds a Bearer header for a user
"""

import pytest

from surveyhub import create_app
from surveyhub.models import db as _db
from surveyhub.models.user import ROLE_ADMIN, ROLE_CLIENT, ROLE_SURVEYOR, User
from surveyhub.services.identity_service import generate_access_token


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Users & tokens ───────────────────────────────────────────────────────


def make_user(email: str, role: str) -> User:
    user = User(email=email, name=email.split("@")[0], role=role)
    _db.session.add(user)
    _db.session.commit()
    return user


def bearer(user: User) -> dict:
    token = generate_access_token(user.email, roles=[user.role])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin():
    return make_user("admin@surveyhub.test", ROLE_ADMIN)


@pytest.fixture()
def surveyor():
    return make_user("surveyor@surveyhub.test", ROLE_SURVEYOR)


@pytest.fixture()
def client_user():
    return make_user("client@surveyhub.test", ROLE_CLIENT)


@pytest.fixture()
def auth_headers():
    """Callable: auth_headers(user) → {"Authorization": "Bearer ..."}."""
    return bearer
