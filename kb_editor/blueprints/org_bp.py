"""Organization blueprint.

Routes:
    GET /api/v1/orgs          — organizations of the current user, with role
    GET /api/v1/orgs/<slug>   — one organization; records it as the user's last org
"""

import logging

from flask import Blueprint, g, jsonify

from kb_editor.auth import current_user, require_org
from kb_editor.blueprints import API_PREFIX
from kb_editor.services import org_service

logger = logging.getLogger(__name__)

org_bp = Blueprint("orgs", __name__, url_prefix=f"{API_PREFIX}/orgs")


@org_bp.route("", methods=["GET"])
def list_orgs():
    user = current_user()
    orgs = org_service.list_orgs_for_user(user)
    return jsonify({
        "items": orgs,
        "lastOrgId": user.last_org_id if user is not None else None,
    }), 200


@org_bp.route("/<slug>", methods=["GET"])
@require_org()
def get_org(slug):
    org_service.record_last_org(current_user(), g.org)
    return jsonify(g.org.to_dict(role=g.org_role)), 200
