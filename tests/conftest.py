"""
Shared pytest fixtures for the Knowledge Base Editor test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client authenticated as an org admin
    - anon_client: Flask test client without an API key
    - org / admin_user / member_user: Pre-created organization and members
"""

import pytest

from kb_editor import create_app
from kb_editor.models import db as _db
from kb_editor.models.auth import ROLE_ADMIN, ROLE_USER, Organization, OrgMembership, User

ADMIN_KEY = "test-admin-key"
MEMBER_KEY = "test-member-key"
OUTSIDER_KEY = "test-outsider-key"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


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
    app.config["API_AUTH_ENABLED"] = "true"
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


def _client_with_key(app, api_key):
    client = app.test_client()
    if api_key:
        client.environ_base["HTTP_X_API_KEY"] = api_key
    return client


@pytest.fixture()
def client(app, admin_user):
    """Flask test client sending the org admin's API key."""
    return _client_with_key(app, ADMIN_KEY)


@pytest.fixture()
def member_client(app, member_user):
    """Flask test client sending a read-only member's API key."""
    return _client_with_key(app, MEMBER_KEY)


@pytest.fixture()
def outsider_client(app, outsider_user):
    """Flask test client for a user with no membership in ``org``."""
    return _client_with_key(app, OUTSIDER_KEY)


@pytest.fixture()
def anon_client(app):
    return _client_with_key(app, None)


# ── Organization fixtures ────────────────────────────────────────────────


@pytest.fixture()
def org():
    o = Organization(name="Acme Support", slug="acme")
    _db.session.add(o)
    _db.session.commit()
    return o


@pytest.fixture()
def other_org():
    o = Organization(name="Globex", slug="globex")
    _db.session.add(o)
    _db.session.commit()
    return o


def _make_user(org, email, api_key, role=None):
    user = User(email=email, full_name=email.split("@")[0].title(), api_key=api_key)
    _db.session.add(user)
    _db.session.flush()
    if role is not None:
        _db.session.add(OrgMembership(org_id=org.id, user_id=user.id, role=role))
    _db.session.commit()
    return user


@pytest.fixture()
def admin_user(org):
    return _make_user(org, "admin@acme.test", ADMIN_KEY, ROLE_ADMIN)


@pytest.fixture()
def member_user(org):
    return _make_user(org, "member@acme.test", MEMBER_KEY, ROLE_USER)


@pytest.fixture()
def outsider_user(org):
    return _make_user(org, "outsider@globex.test", OUTSIDER_KEY)


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def section(client):
    """Create and return a section via the API."""
    res = client.post("/api/v1/orgs/acme/sections", json={"name": "Billing"})
    assert res.status_code == 201
    return res.get_json()
