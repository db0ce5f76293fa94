"""
Tests — Organizations API, org provisioning service and CLI commands.
"""

import pytest

from kb_editor.core.exceptions import ConflictError, ValidationError
from kb_editor.models import db as _db
from kb_editor.models.auth import Organization, OrgMembership, User
from kb_editor.services import org_service


# ═════════════════════════════════════════════════════════════════════════════
# API
# ═════════════════════════════════════════════════════════════════════════════


def test_list_orgs_only_shows_memberships(client, other_org):
    body = client.get("/api/v1/orgs").get_json()
    assert [(o["slug"], o["role"]) for o in body["items"]] == [("acme", "admin")]
    assert body["lastOrgId"] is None


def test_get_org_records_last_org(client, admin_user, org):
    res = client.get("/api/v1/orgs/acme")
    assert res.status_code == 200
    assert res.get_json()["role"] == "admin"

    _db.session.refresh(admin_user)
    assert admin_user.last_org_id == org.id
    assert client.get("/api/v1/orgs").get_json()["lastOrgId"] == org.id


def test_member_sees_user_role(member_client):
    assert member_client.get("/api/v1/orgs/acme").get_json()["role"] == "user"


def test_outsider_gets_empty_list(outsider_client):
    assert outsider_client.get("/api/v1/orgs").get_json()["items"] == []


# ═════════════════════════════════════════════════════════════════════════════
# SERVICE
# ═════════════════════════════════════════════════════════════════════════════


def test_slugify():
    assert org_service.slugify("  Acme Support & Co. ") == "acme-support-co"


def test_create_org_derives_slug():
    org = org_service.create_org("Initech Help Desk")
    assert org.slug == "initech-help-desk"


def test_create_org_duplicate_slug_conflicts(org):
    with pytest.raises(ConflictError):
        org_service.create_org("Another Acme", slug="acme")


def test_create_org_rejects_bad_slug():
    with pytest.raises(ValidationError):
        org_service.create_org("X", slug="Not A Slug")


def test_add_member_creates_user_then_updates_role(org):
    user, created = org_service.add_member("acme", "New.Person@Acme.test", "user")
    assert created
    assert user.email == "new.person@acme.test"
    assert user.api_key

    same, created_again = org_service.add_member("acme", "new.person@acme.test", "admin")
    assert not created_again
    assert same.id == user.id
    assert org_service.get_role(org.id, user.id) == "admin"
    assert OrgMembership.query.filter_by(user_id=user.id).count() == 1


def test_add_member_rejects_unknown_role(org):
    with pytest.raises(ValidationError):
        org_service.add_member("acme", "x@acme.test", "owner")


# ═════════════════════════════════════════════════════════════════════════════
# CLI
# ═════════════════════════════════════════════════════════════════════════════


def test_cli_create_org_and_add_member(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["create-org", "Umbrella Support", "--slug", "umbrella"])
    assert result.exit_code == 0, result.output
    assert Organization.query.filter_by(slug="umbrella").count() == 1

    result = runner.invoke(args=["add-member", "umbrella", "ops@umbrella.test", "--role", "admin"])
    assert result.exit_code == 0, result.output
    assert "API key:" in result.output
    assert User.query.filter_by(email="ops@umbrella.test").count() == 1
