"""
OrgScopedModel — Abstract base class for organization-scoped models.

All content tables (sections, FAQs, variables, ...) inherit from
OrgScopedModel instead of db.Model directly. This adds:
  - org_id FK column with index
  - query_for_org(org_id) classmethod
  - get_for_org(org_id, pk) scoped primary-key lookup
"""

import uuid

from kb_editor.models import db


def new_uuid() -> str:
    """Text UUID used for client-visible identifiers."""
    return str(uuid.uuid4())


class OrgScopedModel(db.Model):
    """Abstract base for organization-scoped tables."""
    __abstract__ = True

    org_id = db.Column(
        db.Integer,
        db.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    @classmethod
    def query_for_org(cls, org_id):
        """Return a query filtered by org_id."""
        return cls.query.filter_by(org_id=org_id)

    @classmethod
    def get_for_org(cls, org_id, pk):
        """Fetch a row by primary key, or None if it belongs to another org."""
        obj = db.session.get(cls, pk)
        if obj is None or obj.org_id != org_id:
            return None
        return obj
