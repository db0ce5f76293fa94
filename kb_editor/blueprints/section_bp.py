"""Sections & phase groups blueprint.

URL prefix: /api/v1/orgs/<slug>

Routes:
    GET    /sections                                — list, ordered
    POST   /sections                                — create {name}
    PUT    /sections/<id>                           — rename {name}
    DELETE /sections/<id>                           — delete with its FAQs
    POST   /sections/reorder                        — {orderedIds}

    GET    /phase-groups                            — list, ordered
    POST   /phase-groups                            — create {name}
    PUT    /phase-groups/<id>                       — rename {name}
    DELETE /phase-groups/<id>                       — delete; sections become standalone
    POST   /phase-groups/reorder                    — {orderedIds}
    POST   /phase-groups/<id>/sections              — add existing section {sectionId}
    POST   /phase-groups/<id>/sections/new          — create section inside group {name}
    POST   /phase-groups/<id>/sections/reorder      — {orderedSectionIds}
    DELETE /phase-groups/sections/<section_id>      — make section standalone

Reads need membership; writes need the admin role. Service exceptions are
rendered by the app-level error handlers.
"""

import logging

from flask import Blueprint, g, jsonify

from kb_editor.auth import require_org
from kb_editor.blueprints import ORG_PREFIX
from kb_editor.models.auth import ROLE_ADMIN
from kb_editor.services import section_service
from kb_editor.utils.errors import E, api_error
from kb_editor.utils.helpers import json_body

logger = logging.getLogger(__name__)

section_bp = Blueprint("sections", __name__, url_prefix=ORG_PREFIX)


def _ordered_ids(data, key):
    ids = data.get(key)
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        return None, api_error(E.VALIDATION_INVALID, f"{key} must be a list of ids")
    return ids, None


# ═════════════════════════════════════════════════════════════════════════
# Sections
# ═════════════════════════════════════════════════════════════════════════


@section_bp.route("/sections", methods=["GET"])
@require_org()
def list_sections(slug):
    return jsonify(section_service.list_sections(g.org_id)), 200


@section_bp.route("/sections", methods=["POST"])
@require_org(ROLE_ADMIN)
def create_section(slug):
    data, err = json_body()
    if err:
        return err
    return jsonify(section_service.create_section(g.org_id, data.get("name"))), 201


@section_bp.route("/sections/<section_id>", methods=["PUT"])
@require_org(ROLE_ADMIN)
def update_section(slug, section_id):
    data, err = json_body()
    if err:
        return err
    return jsonify(section_service.update_section(g.org_id, section_id, data.get("name"))), 200


@section_bp.route("/sections/<section_id>", methods=["DELETE"])
@require_org(ROLE_ADMIN)
def delete_section(slug, section_id):
    section_service.delete_section(g.org_id, section_id)
    return "", 204


@section_bp.route("/sections/reorder", methods=["POST"])
@require_org(ROLE_ADMIN)
def reorder_sections(slug):
    data, err = json_body()
    if err:
        return err
    ids, err = _ordered_ids(data, "orderedIds")
    if err:
        return err
    return jsonify({"orderedIds": section_service.reorder_sections(g.org_id, ids)}), 200


# ═════════════════════════════════════════════════════════════════════════
# Phase groups
# ═════════════════════════════════════════════════════════════════════════


@section_bp.route("/phase-groups", methods=["GET"])
@require_org()
def list_phase_groups(slug):
    return jsonify(section_service.list_phase_groups(g.org_id)), 200


@section_bp.route("/phase-groups", methods=["POST"])
@require_org(ROLE_ADMIN)
def create_phase_group(slug):
    data, err = json_body()
    if err:
        return err
    return jsonify(section_service.create_phase_group(g.org_id, data.get("name"))), 201


@section_bp.route("/phase-groups/<group_id>", methods=["PUT"])
@require_org(ROLE_ADMIN)
def update_phase_group(slug, group_id):
    data, err = json_body()
    if err:
        return err
    return jsonify(section_service.update_phase_group(g.org_id, group_id, data.get("name"))), 200


@section_bp.route("/phase-groups/<group_id>", methods=["DELETE"])
@require_org(ROLE_ADMIN)
def delete_phase_group(slug, group_id):
    section_service.delete_phase_group(g.org_id, group_id)
    return "", 204


@section_bp.route("/phase-groups/reorder", methods=["POST"])
@require_org(ROLE_ADMIN)
def reorder_phase_groups(slug):
    data, err = json_body()
    if err:
        return err
    ids, err = _ordered_ids(data, "orderedIds")
    if err:
        return err
    return jsonify({"orderedIds": section_service.reorder_phase_groups(g.org_id, ids)}), 200


@section_bp.route("/phase-groups/<group_id>/sections", methods=["POST"])
@require_org(ROLE_ADMIN)
def add_section_to_group(slug, group_id):
    data, err = json_body()
    if err:
        return err
    section_id = data.get("sectionId")
    if not section_id:
        return api_error(E.VALIDATION_REQUIRED, "sectionId is required")
    return jsonify(section_service.add_section_to_group(g.org_id, section_id, group_id)), 200


@section_bp.route("/phase-groups/<group_id>/sections/new", methods=["POST"])
@require_org(ROLE_ADMIN)
def create_section_in_group(slug, group_id):
    data, err = json_body()
    if err:
        return err
    return jsonify(section_service.create_section_in_group(g.org_id, group_id, data.get("name"))), 201


@section_bp.route("/phase-groups/<group_id>/sections/reorder", methods=["POST"])
@require_org(ROLE_ADMIN)
def reorder_sections_in_group(slug, group_id):
    data, err = json_body()
    if err:
        return err
    ids, err = _ordered_ids(data, "orderedSectionIds")
    if err:
        return err
    ordered = section_service.reorder_sections_in_group(g.org_id, group_id, ids)
    return jsonify({"orderedSectionIds": ordered}), 200


@section_bp.route("/phase-groups/sections/<section_id>", methods=["DELETE"])
@require_org(ROLE_ADMIN)
def remove_section_from_group(slug, section_id):
    return jsonify(section_service.remove_section_from_group(g.org_id, section_id)), 200
