"""Custom rules blueprint.

URL prefix: /api/v1/orgs/<slug>

Routes:
    GET  /custom-rules                          — current content ("" when never saved)
    PUT  /custom-rules                          — save {content}; prior content goes to history
    GET  /custom-rules/history                  — prior versions, newest first
    POST /custom-rules/history/<id>/restore     — save a prior version as current
"""

from flask import Blueprint, g, jsonify

from kb_editor.auth import current_user, require_org
from kb_editor.blueprints import ORG_PREFIX
from kb_editor.models.auth import ROLE_ADMIN
from kb_editor.services import custom_rules_service
from kb_editor.utils.errors import E, api_error
from kb_editor.utils.helpers import json_body

custom_rules_bp = Blueprint("custom_rules", __name__, url_prefix=ORG_PREFIX)


def _user_id():
    user = current_user()
    return user.id if user is not None else None


@custom_rules_bp.route("/custom-rules", methods=["GET"])
@require_org()
def get_custom_rules(slug):
    rules = custom_rules_service.get_custom_rules(g.org_id)
    return jsonify(rules or {"content": ""}), 200


@custom_rules_bp.route("/custom-rules", methods=["PUT"])
@require_org(ROLE_ADMIN)
def save_custom_rules(slug):
    data, err = json_body()
    if err:
        return err
    content = data.get("content")
    if not isinstance(content, str):
        return api_error(E.VALIDATION_REQUIRED, "content is required")
    result = custom_rules_service.save_custom_rules(g.org_id, content, user_id=_user_id())
    return jsonify(result), 200


@custom_rules_bp.route("/custom-rules/history", methods=["GET"])
@require_org()
def list_history(slug):
    return jsonify(custom_rules_service.list_history(g.org_id)), 200


@custom_rules_bp.route("/custom-rules/history/<history_id>/restore", methods=["POST"])
@require_org(ROLE_ADMIN)
def restore_version(slug, history_id):
    result = custom_rules_service.restore_version(g.org_id, history_id, user_id=_user_id())
    return jsonify(result), 200
