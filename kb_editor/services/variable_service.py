"""Variable service — key/value pairs exported as a Markdown table."""

import logging

from kb_editor.core.exceptions import ValidationError
from kb_editor.models import db
from kb_editor.models.knowledge import Variable
from kb_editor.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)


def _clean_key(key):
    key = (key or "").strip()
    if not key:
        raise ValidationError("key is required", details={"key": "required"})
    if len(key) > 255:
        raise ValidationError("key must be at most 255 characters", details={"key": "too_long"})
    return key


def list_variables(org_id: int) -> list[dict]:
    return [v.to_dict() for v in Variable.query_for_org(org_id).order_by(Variable.key).all()]


def create_variable(org_id: int, key: str, value: str = "") -> dict:
    variable = Variable(org_id=org_id, key=_clean_key(key), value=value or "")
    db.session.add(variable)
    db.session.commit()
    logger.info("Variable created", extra={"org_id": org_id, "variable_id": variable.id})
    return variable.to_dict()


def update_variable(org_id: int, variable_id: str, key: str, value: str = "") -> dict:
    variable = get_scoped(Variable, variable_id, org_id=org_id)
    variable.key = _clean_key(key)
    variable.value = value or ""
    db.session.commit()
    return variable.to_dict()


def delete_variable(org_id: int, variable_id: str) -> None:
    variable = get_scoped(Variable, variable_id, org_id=org_id)
    db.session.delete(variable)
    db.session.commit()
