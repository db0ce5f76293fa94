"""FAQ blueprint.

URL prefix: /api/v1/orgs/<slug>

Routes:
    GET  /faqs[?sectionId=]   — ordered by section, order, createdAt
    POST /faqs/batch          — {upserts: [...], deletes: [...]} → {upserted, deleted}

There are no per-row write endpoints: the editor saves every pending change
through the batch, which commits atomically.
"""

import logging

from flask import Blueprint, g, jsonify, request

from kb_editor import limiter
from kb_editor.auth import require_org
from kb_editor.blueprints import ORG_PREFIX
from kb_editor.middleware.rate_limiter import BATCH_LIMIT, rate_limit_key
from kb_editor.models.auth import ROLE_ADMIN
from kb_editor.services import faq_service
from kb_editor.utils.helpers import json_body

logger = logging.getLogger(__name__)

faq_bp = Blueprint("faqs", __name__, url_prefix=ORG_PREFIX)


@faq_bp.route("/faqs", methods=["GET"])
@require_org()
def list_faqs(slug):
    section_id = request.args.get("sectionId")
    if section_id:
        return jsonify(faq_service.list_faqs_by_section(g.org_id, section_id)), 200
    return jsonify(faq_service.list_faqs(g.org_id)), 200


@faq_bp.route("/faqs/batch", methods=["POST"])
@limiter.limit(BATCH_LIMIT, key_func=rate_limit_key)
@require_org(ROLE_ADMIN)
def apply_batch(slug):
    """Atomically upsert and delete FAQ rows.

    Body:
        upserts — [{id, sectionId, question, answer, notes, order}]
        deletes — [id]

    A sectionId outside the organization rejects the whole batch (422).
    """
    data, err = json_body()
    if err:
        return err
    upserts, deletes = faq_service.parse_batch_payload(data)
    result = faq_service.apply_faq_batch(g.org_id, upserts, deletes)
    return jsonify(result), 200
