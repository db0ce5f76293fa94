"""
Section & phase-group service.

Sections are the top-level containers for FAQs. A section may belong to one
phase group, which renders its sections as tabs ordered by ``phase_order``.

Ordering rules:
  - A new section gets ``order`` = number of existing sections.
  - A section added to a group gets ``phase_order`` = max in group + 1.
  - Reorder payloads may be stale: ids that no longer exist are dropped and
    existing ids missing from the payload are appended in their current order.

Deleting a section deletes its FAQs. Deleting a phase group turns its
sections into standalone sections (``phase_group_id`` = None, ``phase_order``
= 0); their FAQs are untouched.
"""

from __future__ import annotations

import logging

from kb_editor.core.exceptions import ValidationError
from kb_editor.drafts.ordering import reindex
from kb_editor.models import db
from kb_editor.models.knowledge import Faq, PhaseGroup, Section
from kb_editor.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)


def _clean_name(name: str | None, label: str = "name") -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError(f"{label} is required", details={label: "required"})
    if len(name) > 255:
        raise ValidationError(f"{label} must be at most 255 characters", details={label: "too_long"})
    return name


def _apply_order(model, org_id: int, ordered_ids: list[str], column: str = "order", query=None) -> list[str]:
    """Write contiguous positions to ``column``; returns the final id order."""
    query = query if query is not None else model.query_for_org(org_id)
    rows = query.order_by(getattr(model, column), model.id).all()
    by_id = {row.id: row for row in rows}

    final = []
    for row_id, position in reindex(ordered_ids, [row.id for row in rows]):
        setattr(by_id[row_id], column, position)
        final.append(row_id)
    db.session.commit()
    return final


# ═════════════════════════════════════════════════════════════════════════════
# Sections
# ═════════════════════════════════════════════════════════════════════════════


def list_sections(org_id: int) -> list[dict]:
    rows = Section.query_for_org(org_id).order_by(Section.order, Section.created_at).all()
    return [s.to_dict() for s in rows]


def create_section(org_id: int, name: str) -> dict:
    section = Section(
        org_id=org_id,
        name=_clean_name(name),
        order=Section.query_for_org(org_id).count(),
    )
    db.session.add(section)
    db.session.commit()
    logger.info("Section created", extra={"org_id": org_id, "section_id": section.id})
    return section.to_dict()


def update_section(org_id: int, section_id: str, name: str) -> dict:
    section = get_scoped(Section, section_id, org_id=org_id)
    section.name = _clean_name(name)
    db.session.commit()
    return section.to_dict()


def delete_section(org_id: int, section_id: str) -> None:
    section = get_scoped(Section, section_id, org_id=org_id)
    faq_count = Faq.query_for_org(org_id).filter_by(section_id=section.id).delete(synchronize_session=False)
    db.session.delete(section)
    db.session.commit()
    logger.info(
        "Section deleted",
        extra={"org_id": org_id, "section_id": section_id, "faqs_deleted": faq_count},
    )


def reorder_sections(org_id: int, ordered_ids: list[str]) -> list[str]:
    if not ordered_ids:
        return []
    return _apply_order(Section, org_id, ordered_ids)


# ═════════════════════════════════════════════════════════════════════════════
# Phase groups
# ═════════════════════════════════════════════════════════════════════════════


def list_phase_groups(org_id: int) -> list[dict]:
    rows = PhaseGroup.query_for_org(org_id).order_by(PhaseGroup.order, PhaseGroup.created_at).all()
    return [g.to_dict() for g in rows]


def create_phase_group(org_id: int, name: str) -> dict:
    group = PhaseGroup(
        org_id=org_id,
        name=_clean_name(name),
        order=PhaseGroup.query_for_org(org_id).count(),
    )
    db.session.add(group)
    db.session.commit()
    logger.info("Phase group created", extra={"org_id": org_id, "group_id": group.id})
    return group.to_dict()


def update_phase_group(org_id: int, group_id: str, name: str) -> dict:
    group = get_scoped(PhaseGroup, group_id, org_id=org_id)
    group.name = _clean_name(name)
    db.session.commit()
    return group.to_dict()


def delete_phase_group(org_id: int, group_id: str) -> None:
    group = get_scoped(PhaseGroup, group_id, org_id=org_id)
    released = (
        Section.query_for_org(org_id)
        .filter_by(phase_group_id=group.id)
        .update({"phase_group_id": None, "phase_order": 0}, synchronize_session=False)
    )
    db.session.delete(group)
    db.session.commit()
    logger.info(
        "Phase group deleted",
        extra={"org_id": org_id, "group_id": group_id, "sections_released": released},
    )


def reorder_phase_groups(org_id: int, ordered_ids: list[str]) -> list[str]:
    if not ordered_ids:
        return []
    return _apply_order(PhaseGroup, org_id, ordered_ids)


def _next_phase_order(org_id: int, group_id: str) -> int:
    orders = [
        s.phase_order or 0
        for s in Section.query_for_org(org_id).filter_by(phase_group_id=group_id).all()
    ]
    return max(orders, default=-1) + 1


def create_section_in_group(org_id: int, group_id: str, name: str) -> dict:
    group = get_scoped(PhaseGroup, group_id, org_id=org_id)
    section = Section(
        org_id=org_id,
        name=_clean_name(name),
        order=Section.query_for_org(org_id).count(),
        phase_group_id=group.id,
        phase_order=_next_phase_order(org_id, group.id),
    )
    db.session.add(section)
    db.session.commit()
    return section.to_dict()


def add_section_to_group(org_id: int, section_id: str, group_id: str) -> dict:
    group = get_scoped(PhaseGroup, group_id, org_id=org_id)
    section = get_scoped(Section, section_id, org_id=org_id)
    if section.phase_group_id == group.id:
        return section.to_dict()

    section.phase_order = _next_phase_order(org_id, group.id)
    section.phase_group_id = group.id
    db.session.commit()
    return section.to_dict()


def remove_section_from_group(org_id: int, section_id: str) -> dict:
    section = get_scoped(Section, section_id, org_id=org_id)
    section.phase_group_id = None
    section.phase_order = 0
    db.session.commit()
    return section.to_dict()


def reorder_sections_in_group(org_id: int, group_id: str, ordered_ids: list[str]) -> list[str]:
    group = get_scoped(PhaseGroup, group_id, org_id=org_id)
    if not ordered_ids:
        return []
    query = Section.query_for_org(org_id).filter_by(phase_group_id=group.id)
    return _apply_order(Section, org_id, ordered_ids, column="phase_order", query=query)
