"""Variables blueprint.

URL prefix: /api/v1/orgs/<slug>

Routes:
    GET    /variables          — list, ordered by key
    POST   /variables          — create {key, value}
    PUT    /variables/<id>     — update {key, value}
    DELETE /variables/<id>     — delete
"""

from flask import Blueprint, g, jsonify

from kb_editor.auth import require_org
from kb_editor.blueprints import ORG_PREFIX
from kb_editor.models.auth import ROLE_ADMIN
from kb_editor.services import variable_service
from kb_editor.utils.helpers import json_body

variable_bp = Blueprint("variables", __name__, url_prefix=ORG_PREFIX)


@variable_bp.route("/variables", methods=["GET"])
@require_org()
def list_variables(slug):
    return jsonify(variable_service.list_variables(g.org_id)), 200


@variable_bp.route("/variables", methods=["POST"])
@require_org(ROLE_ADMIN)
def create_variable(slug):
    data, err = json_body()
    if err:
        return err
    result = variable_service.create_variable(g.org_id, data.get("key"), data.get("value", ""))
    return jsonify(result), 201


@variable_bp.route("/variables/<variable_id>", methods=["PUT"])
@require_org(ROLE_ADMIN)
def update_variable(slug, variable_id):
    data, err = json_body()
    if err:
        return err
    result = variable_service.update_variable(
        g.org_id, variable_id, data.get("key"), data.get("value", "")
    )
    return jsonify(result), 200


@variable_bp.route("/variables/<variable_id>", methods=["DELETE"])
@require_org(ROLE_ADMIN)
def delete_variable(slug, variable_id):
    variable_service.delete_variable(g.org_id, variable_id)
    return "", 204
