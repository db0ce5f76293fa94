"""
Organization, user and membership service.

Only what editing and authorization need: resolving the organization from a
URL slug, the caller's membership role, and the user's last visited
organization. Provisioning (``create_org``, ``add_member``) is used by the
``flask create-org`` / ``flask add-member`` CLI commands.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy import func

from kb_editor.core.exceptions import ConflictError, NotFoundError, ValidationError
from kb_editor.models import db
from kb_editor.models.auth import ROLE_ADMIN, ROLES, Organization, OrgMembership, User

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")
    return slug[:100]


# ── Lookups ──────────────────────────────────────────────────────────────────


def get_org_by_slug(slug: str) -> Organization:
    org = Organization.query.filter_by(slug=slug).first()
    if org is None:
        raise NotFoundError(resource="Organization", resource_id=slug)
    return org


def find_user_by_api_key(api_key: str | None) -> User | None:
    if not api_key:
        return None
    return User.query.filter_by(api_key=api_key).first()


def get_role(org_id: int, user_id: int) -> str | None:
    membership = OrgMembership.query.filter_by(org_id=org_id, user_id=user_id).first()
    return membership.role if membership else None


def list_orgs_for_user(user: User | None) -> list[dict]:
    """Organizations the user belongs to, with their role.

    ``user`` is None only when authentication is disabled; every
    organization is then listed with the admin role.
    """
    if user is None:
        return [o.to_dict(role=ROLE_ADMIN) for o in Organization.query.order_by(Organization.name).all()]

    rows = (
        db.session.query(Organization, OrgMembership.role)
        .join(OrgMembership, OrgMembership.org_id == Organization.id)
        .filter(OrgMembership.user_id == user.id)
        .order_by(Organization.name)
        .all()
    )
    return [org.to_dict(role=role) for org, role in rows]


def record_last_org(user: User | None, org: Organization) -> None:
    if user is None or user.last_org_id == org.id:
        return
    user.last_org_id = org.id
    db.session.commit()


# ── Provisioning ─────────────────────────────────────────────────────────────


def create_org(name: str, slug: str | None = None) -> Organization:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    slug = (slug or slugify(name)).strip().lower()
    if not _SLUG_RE.match(slug):
        raise ValidationError(f"Invalid slug: {slug!r}", details={"slug": "invalid"})
    if Organization.query.filter_by(slug=slug).first() is not None:
        raise ConflictError(resource="Organization", field="slug", value=slug)

    org = Organization(name=name, slug=slug)
    db.session.add(org)
    db.session.commit()
    logger.info("Organization created", extra={"org_id": org.id, "slug": slug})
    return org


def add_member(org_slug: str, email: str, role: str, full_name: str | None = None) -> tuple[User, bool]:
    """Add ``email`` to the organization, creating the user when needed.

    Returns:
        (user, created) where ``created`` is True for a brand-new user.
    """
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(sorted(ROLES))}")
    email = (email or "").strip().lower()
    if "@" not in email:
        raise ValidationError("A valid email is required", details={"email": "invalid"})

    org = get_org_by_slug(org_slug)
    user = User.query.filter(func.lower(User.email) == email).first()
    created = user is None
    if created:
        user = User(email=email, full_name=full_name, api_key=User.generate_api_key())
        db.session.add(user)
        db.session.flush()

    membership = OrgMembership.query.filter_by(org_id=org.id, user_id=user.id).first()
    if membership is None:
        db.session.add(OrgMembership(org_id=org.id, user_id=user.id, role=role))
    else:
        membership.role = role
    db.session.commit()
    logger.info("Member added", extra={"org_id": org.id, "user_id": user.id, "role": role})
    return user, created
