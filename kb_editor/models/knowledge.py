"""
Knowledge-base content models.

    PhaseGroup ─┐ (optional tab-strip grouping)
                └── Section ──── Faq
    Variable, CustomRules, CustomRulesHistory, ExportConfig

Identifiers are text UUIDs so that FAQ rows can be created client-side in the
draft engine and upserted with the same id. API payloads use camelCase keys
(``sectionId``, ``createdAt``) because the FAQ batch contract is expressed
that way.
"""

from datetime import datetime, timezone

from kb_editor.models import db
from kb_editor.models.base import OrgScopedModel, new_uuid


def _now():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ═══════════════════════════════════════════════════════════════
# PHASE GROUPS & SECTIONS
# ═══════════════════════════════════════════════════════════════
class PhaseGroup(OrgScopedModel):
    __tablename__ = "phase_groups"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    name = db.Column(db.String(255), nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "order": self.order,
            "createdAt": _iso(self.created_at),
        }


class Section(OrgScopedModel):
    __tablename__ = "sections"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    name = db.Column(db.String(255), nullable=False)
    order = db.Column(db.Integer, nullable=False, default=0)
    phase_group_id = db.Column(
        db.String(36),
        db.ForeignKey("phase_groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    phase_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=_now)

    faqs = db.relationship(
        "Faq", back_populates="section", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "order": self.order,
            "phaseGroupId": self.phase_group_id,
            "phaseOrder": self.phase_order,
            "createdAt": _iso(self.created_at),
        }


# ═══════════════════════════════════════════════════════════════
# FAQS
# ═══════════════════════════════════════════════════════════════
class Faq(OrgScopedModel):
    __tablename__ = "faqs"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    section_id = db.Column(
        db.String(36),
        db.ForeignKey("sections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    question = db.Column(db.Text, nullable=False)
    answer = db.Column(db.Text, nullable=False)
    notes = db.Column(db.Text, nullable=False, default="")
    order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=_now, onupdate=_now)

    section = db.relationship("Section", back_populates="faqs")

    def to_dict(self):
        return {
            "id": self.id,
            "sectionId": self.section_id,
            "question": self.question,
            "answer": self.answer,
            "notes": self.notes or "",
            "order": self.order,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


# ═══════════════════════════════════════════════════════════════
# VARIABLES & CUSTOM RULES
# ═══════════════════════════════════════════════════════════════
class Variable(OrgScopedModel):
    __tablename__ = "variables"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    key = db.Column(db.String(255), nullable=False)
    value = db.Column(db.Text, nullable=False, default="")

    def to_dict(self):
        return {"id": self.id, "key": self.key, "value": self.value or ""}


class CustomRules(OrgScopedModel):
    __tablename__ = "custom_rules"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    content = db.Column(db.Text, nullable=False, default="")
    created_at = db.Column(db.DateTime, nullable=False, default=_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=_now, onupdate=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "content": self.content or "",
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class CustomRulesHistory(OrgScopedModel):
    """Prior custom-rules content, written before each overwrite."""
    __tablename__ = "custom_rules_history"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    content = db.Column(db.Text, nullable=False)
    created_by = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = db.Column(db.DateTime, nullable=False, default=_now, index=True)

    author = db.relationship("User")

    def to_dict(self):
        return {
            "id": self.id,
            "content": self.content,
            "createdAt": _iso(self.created_at),
            "createdBy": self.created_by,
            "authorName": self.author.full_name if self.author else None,
        }


# ═══════════════════════════════════════════════════════════════
# EXPORT PRESETS
# ═══════════════════════════════════════════════════════════════
class ExportConfig(OrgScopedModel):
    __tablename__ = "export_configs"

    id = db.Column(db.String(36), primary_key=True, default=new_uuid)
    name = db.Column(db.String(255), nullable=False)
    config = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, nullable=False, default=_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=_now, onupdate=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "config": self.config or {},
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
