"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in kb_editor/__init__.py with no default
limits; this module applies granular limits per route category. The FAQ
batch endpoint carries its own tighter limit (see faq_bp).

Usage:
    from kb_editor.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

BATCH_LIMIT = "30/minute"
WRITE_LIMIT = "120/minute"
EXPORT_LIMIT = "30/minute"


def rate_limit_key():
    """Key by authenticated user when known, else remote IP."""
    user = getattr(g, "current_user", None)
    if user is not None:
        return f"user:{user.id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per user, or per remote IP when auth is disabled):
        - Content blueprints: 120/minute
        - Markdown export:    30/minute
        - Health check:       exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in ("sections", "variables", "custom_rules", "orgs"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT, key_func=rate_limit_key)(bp)

    bp = app.blueprints.get("export")
    if bp:
        limiter.limit(EXPORT_LIMIT, key_func=rate_limit_key)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — content: %s, export: %s, faq batch: %s",
        WRITE_LIMIT, EXPORT_LIMIT, BATCH_LIMIT,
    )
