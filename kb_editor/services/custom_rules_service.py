"""
Custom rules service.

One ``CustomRules`` row per organization. Before every overwrite the prior
content is copied into ``CustomRulesHistory`` (only when it is non-empty), so
restoring a version is just another save and is itself undoable.
"""

from __future__ import annotations

import logging

from kb_editor.models import db
from kb_editor.models.knowledge import CustomRules, CustomRulesHistory
from kb_editor.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)


def get_custom_rules(org_id: int) -> dict | None:
    rules = CustomRules.query_for_org(org_id).first()
    return rules.to_dict() if rules else None


def save_custom_rules(org_id: int, content: str, user_id: int | None = None) -> dict:
    content = content or ""
    rules = CustomRules.query_for_org(org_id).first()

    if rules is not None and rules.content:
        db.session.add(CustomRulesHistory(org_id=org_id, content=rules.content, created_by=user_id))

    if rules is None:
        rules = CustomRules(org_id=org_id, content=content)
        db.session.add(rules)
    else:
        rules.content = content
    db.session.commit()

    logger.info("Custom rules saved", extra={"org_id": org_id, "user_id": user_id, "chars": len(content)})
    return rules.to_dict()


def list_history(org_id: int) -> list[dict]:
    rows = (
        CustomRulesHistory.query_for_org(org_id)
        .order_by(CustomRulesHistory.created_at.desc())
        .all()
    )
    return [h.to_dict() for h in rows]


def restore_version(org_id: int, history_id: str, user_id: int | None = None) -> dict:
    """Save the content of a history row as the current rules."""
    entry = get_scoped(CustomRulesHistory, history_id, org_id=org_id)
    return save_custom_rules(org_id, entry.content, user_id=user_id)
