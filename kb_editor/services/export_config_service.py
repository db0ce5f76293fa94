"""Export preset service — named, reusable Markdown export selections."""

import logging

from kb_editor.core.exceptions import ValidationError
from kb_editor.models import db
from kb_editor.models.knowledge import ExportConfig
from kb_editor.services.helpers.scoped_queries import get_scoped

logger = logging.getLogger(__name__)

_LIST_KEYS = ("sectionIds", "phaseGroupIds")
_BOOL_KEYS = ("includeVariables", "includeCustomRules")


def normalize_config(config) -> dict:
    """Validate a preset payload and return it with every key present.

    Raises:
        ValidationError: If a key has the wrong type.
    """
    if not isinstance(config, dict):
        raise ValidationError("config must be an object")

    out = {}
    for key in _BOOL_KEYS:
        value = config.get(key, True)
        if not isinstance(value, bool):
            raise ValidationError(f"{key} must be a boolean", details={key: "invalid"})
        out[key] = value
    for key in _LIST_KEYS:
        value = config.get(key) or []
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValidationError(f"{key} must be a list of ids", details={key: "invalid"})
        out[key] = value
    return out


def _clean_name(name):
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    return name


def list_export_configs(org_id: int) -> list[dict]:
    return [c.to_dict() for c in ExportConfig.query_for_org(org_id).order_by(ExportConfig.name).all()]


def create_export_config(org_id: int, name: str, config: dict) -> dict:
    preset = ExportConfig(org_id=org_id, name=_clean_name(name), config=normalize_config(config))
    db.session.add(preset)
    db.session.commit()
    logger.info("Export preset created", extra={"org_id": org_id, "config_id": preset.id})
    return preset.to_dict()


def update_export_config(org_id: int, config_id: str, name: str, config: dict) -> dict:
    preset = get_scoped(ExportConfig, config_id, org_id=org_id)
    preset.name = _clean_name(name)
    preset.config = normalize_config(config)
    db.session.commit()
    return preset.to_dict()


def delete_export_config(org_id: int, config_id: str) -> None:
    preset = get_scoped(ExportConfig, config_id, org_id=org_id)
    db.session.delete(preset)
    db.session.commit()
