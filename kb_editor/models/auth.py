"""
Auth Models — organizations, users, memberships.

An organization is the tenant boundary: every section, FAQ, variable, custom
rules row and export preset belongs to exactly one organization. Users reach
an organization through an OrgMembership carrying the role used by the
authorization decorators (``admin`` may write, ``user`` may only read).
"""

import secrets
from datetime import datetime, timezone

from kb_editor.models import db

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = frozenset([ROLE_ADMIN, ROLE_USER])


# ═══════════════════════════════════════════════════════════════
# 1. ORGANIZATIONS
# ═══════════════════════════════════════════════════════════════
class Organization(db.Model):
    __tablename__ = "organizations"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    memberships = db.relationship(
        "OrgMembership", back_populates="organization", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self, role=None):
        d = {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
        }
        if role is not None:
            d["role"] = role
        return d


# ═══════════════════════════════════════════════════════════════
# 2. USERS
# ═══════════════════════════════════════════════════════════════
class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    full_name = db.Column(db.String(200))
    api_key = db.Column(db.String(128), unique=True, nullable=False, index=True)
    last_org_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(
        db.DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    memberships = db.relationship(
        "OrgMembership", back_populates="user", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    @staticmethod
    def generate_api_key() -> str:
        return secrets.token_urlsafe(32)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "last_org_id": self.last_org_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# ═══════════════════════════════════════════════════════════════
# 3. MEMBERSHIPS (Junction table)
# ═══════════════════════════════════════════════════════════════
class OrgMembership(db.Model):
    __tablename__ = "org_memberships"

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(
        db.Integer, db.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role = db.Column(db.String(20), nullable=False, default=ROLE_USER)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint("org_id", "user_id", name="uq_membership_org_user"),
    )

    organization = db.relationship("Organization", back_populates="memberships")
    user = db.relationship("User", back_populates="memberships")

    def to_dict(self):
        return {
            "id": self.id,
            "org_id": self.org_id,
            "user_id": self.user_id,
            "role": self.role,
        }
