"""
Tests — API key authentication and organization authorization.

Covers:
    - 401 without / with an unknown API key
    - 404 for an unknown organization, 403 for non-members
    - Members read, only admins write
    - Health endpoints bypass auth
    - API_AUTH_ENABLED=false treats every caller as admin
    - Content-Type enforcement on writes
"""

import pytest

from kb_editor.models import db as _db
from kb_editor.models.auth import ROLE_ADMIN, OrgMembership, User

BASE = "/api/v1/orgs/acme"


@pytest.mark.integration
def test_missing_api_key_is_401(anon_client, org):
    res = anon_client.get(f"{BASE}/sections")
    assert res.status_code == 401


@pytest.mark.integration
def test_unknown_api_key_is_401(app, org):
    client = app.test_client()
    res = client.get(f"{BASE}/sections", headers={"X-API-Key": "nope"})
    assert res.status_code == 401
    assert res.get_json()["error"] == "Invalid API key"


@pytest.mark.integration
def test_api_key_query_param_is_accepted(anon_client, admin_user):
    res = anon_client.get(f"{BASE}/sections?api_key=test-admin-key")
    assert res.status_code == 200


@pytest.mark.integration
def test_unknown_org_is_404(client):
    res = client.get("/api/v1/orgs/nowhere/sections")
    assert res.status_code == 404
    assert res.get_json()["error"] == "Organization not found"


@pytest.mark.integration
def test_non_member_is_403(outsider_client):
    res = outsider_client.get(f"{BASE}/faqs")
    assert res.status_code == 403


@pytest.mark.integration
def test_member_reads_but_cannot_write(member_client):
    assert member_client.get(f"{BASE}/sections").status_code == 200
    res = member_client.post(f"{BASE}/sections", json={"name": "Nope"})
    assert res.status_code == 403
    assert res.get_json()["error"] == "Insufficient permissions"


@pytest.mark.integration
def test_admin_can_write(client):
    assert client.post(f"{BASE}/sections", json={"name": "Yes"}).status_code == 201


@pytest.mark.integration
def test_other_orgs_admin_cannot_touch_this_org(app, other_org, admin_user):
    stranger = User(email="boss@globex.test", api_key="globex-key")
    _db.session.add(stranger)
    _db.session.flush()
    _db.session.add(OrgMembership(org_id=other_org.id, user_id=stranger.id, role=ROLE_ADMIN))
    _db.session.commit()

    client = app.test_client()
    res = client.post(f"{BASE}/sections", json={"name": "Hijack"}, headers={"X-API-Key": "globex-key"})
    assert res.status_code == 403


@pytest.mark.integration
def test_health_needs_no_key(anon_client):
    assert anon_client.get("/api/v1/health/ready").status_code == 200


@pytest.mark.integration
def test_auth_disabled_treats_caller_as_admin(app, anon_client, org, monkeypatch):
    monkeypatch.delenv("API_AUTH_ENABLED", raising=False)
    app.config["API_AUTH_ENABLED"] = "false"

    res = anon_client.post(f"{BASE}/sections", json={"name": "Dev"})
    assert res.status_code == 201
    assert anon_client.get("/api/v1/orgs").get_json()["items"][0]["role"] == "admin"


@pytest.mark.integration
def test_write_requires_json_content_type(client, org):
    res = client.post(f"{BASE}/sections", data="name=x", content_type="application/x-www-form-urlencoded")
    assert res.status_code == 415
