"""
Export presets and Markdown export endpoints.

URL prefix: /api/v1/orgs/<slug>

Presets:
    GET    /export-configs          — list, ordered by name
    POST   /export-configs          — create {name, config}
    PUT    /export-configs/<id>     — update {name, config}
    DELETE /export-configs/<id>     — delete

Markdown:
    GET /export/markdown
        configId: preset id (optional; its selection is the starting point)
        includeVariables: 1 | 0 (default: preset value, else 1)
        includeCustomRules: 1 | 0 (default: preset value, else 1)
        sectionIds: comma-separated section ids (optional)
        phaseGroupIds: comma-separated phase group ids (optional)

    With no preset and no selection every section is exported. Content is
    returned in-memory as a text/markdown attachment.
"""

import logging
from datetime import datetime, timezone

from flask import Blueprint, Response, g, jsonify, request

from kb_editor.auth import require_org
from kb_editor.blueprints import ORG_PREFIX
from kb_editor.models.auth import ROLE_ADMIN
from kb_editor.services import export_config_service, markdown_export
from kb_editor.utils.helpers import json_body, parse_bool, parse_id_list

logger = logging.getLogger(__name__)

export_bp = Blueprint("export", __name__, url_prefix=ORG_PREFIX)


# ═════════════════════════════════════════════════════════════════════════
# Presets
# ═════════════════════════════════════════════════════════════════════════


@export_bp.route("/export-configs", methods=["GET"])
@require_org()
def list_export_configs(slug):
    return jsonify(export_config_service.list_export_configs(g.org_id)), 200


@export_bp.route("/export-configs", methods=["POST"])
@require_org(ROLE_ADMIN)
def create_export_config(slug):
    data, err = json_body()
    if err:
        return err
    result = export_config_service.create_export_config(
        g.org_id, data.get("name"), data.get("config") or {}
    )
    return jsonify(result), 201


@export_bp.route("/export-configs/<config_id>", methods=["PUT"])
@require_org(ROLE_ADMIN)
def update_export_config(slug, config_id):
    data, err = json_body()
    if err:
        return err
    result = export_config_service.update_export_config(
        g.org_id, config_id, data.get("name"), data.get("config") or {}
    )
    return jsonify(result), 200


@export_bp.route("/export-configs/<config_id>", methods=["DELETE"])
@require_org(ROLE_ADMIN)
def delete_export_config(slug, config_id):
    export_config_service.delete_export_config(g.org_id, config_id)
    return "", 204


# ═════════════════════════════════════════════════════════════════════════
# Markdown
# ═════════════════════════════════════════════════════════════════════════


@export_bp.route("/export/markdown", methods=["GET"])
@require_org()
def export_markdown(slug):
    """Download the knowledge base as Markdown."""
    overrides = {
        "includeVariables": parse_bool(request.args.get("includeVariables")),
        "includeCustomRules": parse_bool(request.args.get("includeCustomRules")),
        "sectionIds": parse_id_list("sectionIds"),
        "phaseGroupIds": parse_id_list("phaseGroupIds"),
    }
    options = markdown_export.options_for_org(
        g.org_id, config_id=request.args.get("configId"), overrides=overrides
    )
    content = markdown_export.export_org_markdown(g.org_id, options)

    date_str = datetime.now(timezone.utc).strftime("%Y%m%d")
    filename = f"{g.org.slug}-knowledge-base-{date_str}.md"
    return Response(
        content,
        mimetype="text/markdown",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
