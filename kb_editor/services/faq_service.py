"""
FAQ service — reads and the atomic batch write.

Individual FAQ create/update/delete endpoints do not exist: the editor sends
every pending change in one ``apply_faq_batch`` call. The batch either
commits entirely or not at all.

Batch rules:
  - Upsert is keyed by id: a new id inserts, an existing id is fully
    overwritten (section, question, answer, notes, order).
  - Every referenced section must belong to the organization, otherwise the
    whole batch is rejected with ValidationError.
  - An upsert id that exists under another organization is rejected the same
    way; ids are global so this cannot be an insert.
  - Deletes silently skip ids that do not exist in the organization.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError

from kb_editor.core.exceptions import ValidationError
from kb_editor.drafts.records import FaqUpsert
from kb_editor.models import db
from kb_editor.models.knowledge import Faq, Section
from kb_editor.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)


def list_faqs(org_id: int) -> list[dict]:
    """All FAQs of the organization ordered by section, order, created_at."""
    rows = (
        Faq.query_for_org(org_id)
        .join(Section, Section.id == Faq.section_id)
        .order_by(Section.order, Faq.section_id, Faq.order, Faq.created_at, Faq.id)
        .all()
    )
    return [f.to_dict() for f in rows]


def list_faqs_by_section(org_id: int, section_id: str) -> list[dict]:
    section = get_scoped(Section, section_id, org_id=org_id)
    rows = (
        Faq.query_for_org(org_id)
        .filter_by(section_id=section.id)
        .order_by(Faq.order, Faq.created_at, Faq.id)
        .all()
    )
    return [f.to_dict() for f in rows]


def parse_batch_payload(data: dict) -> tuple[list[FaqUpsert], list[str]]:
    """Validate the shape of a ``{upserts, deletes}`` request body.

    Raises:
        ValidationError: On a missing or mistyped field.
    """
    raw_upserts = data.get("upserts") or []
    raw_deletes = data.get("deletes") or []
    if not isinstance(raw_upserts, list) or not isinstance(raw_deletes, list):
        raise ValidationError("upserts and deletes must be lists")

    upserts = []
    for index, item in enumerate(raw_upserts):
        if not isinstance(item, dict) or not item.get("id") or not item.get("sectionId"):
            raise ValidationError(
                "Each upsert needs an id and a sectionId",
                details={"index": index},
            )
        try:
            upserts.append(FaqUpsert.from_payload(item))
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid upsert: {exc}", details={"index": index}) from exc

    deletes = [str(faq_id) for faq_id in raw_deletes if faq_id]
    return upserts, deletes


def _validate_sections(org_id: int, upserts: Iterable[FaqUpsert]) -> None:
    section_ids = {u.section_id for u in upserts if u.section_id}
    if not section_ids:
        return
    found = {
        row.id
        for row in Section.query_for_org(org_id).filter(Section.id.in_(section_ids)).all()
    }
    missing = sorted(section_ids - found)
    if missing:
        raise ValidationError("Invalid section", details={"sectionIds": missing})


def apply_faq_batch(org_id: int, upserts: list[FaqUpsert], deletes: list[str]) -> dict:
    """Upsert and delete FAQ rows in one transaction.

    Returns:
        ``{"upserted": n, "deleted": m}`` where the counts echo the request.

    Raises:
        ValidationError: If any upsert references a foreign or unknown section
            or reuses an id owned by another organization.
    """
    if not upserts and not deletes:
        return {"upserted": 0, "deleted": 0}

    _validate_sections(org_id, upserts)

    ids = [u.id for u in upserts]
    existing = {f.id: f for f in Faq.query.filter(Faq.id.in_(ids)).all()} if ids else {}
    foreign = sorted(faq_id for faq_id, faq in existing.items() if faq.org_id != org_id)
    if foreign:
        raise ValidationError("Invalid FAQ id", details={"ids": foreign})

    try:
        for upsert in upserts:
            faq = existing.get(upsert.id)
            if faq is None:
                faq = Faq(id=upsert.id, org_id=org_id)
                db.session.add(faq)
                existing[upsert.id] = faq
            faq.section_id = upsert.section_id
            faq.question = upsert.question
            faq.answer = upsert.answer
            faq.notes = upsert.notes
            faq.order = upsert.order

        if deletes:
            Faq.query_for_org(org_id).filter(Faq.id.in_(deletes)).delete(synchronize_session=False)

        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("FAQ batch failed", extra={"org_id": org_id})
        raise

    logger.info(
        "FAQ batch applied",
        extra={"org_id": org_id, "upserted": len(upserts), "deleted": len(deletes)},
    )
    return {"upserted": len(upserts), "deleted": len(deletes)}
