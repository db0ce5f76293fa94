"""
Authentication & authorization middleware.

Provides:
    - API key authentication via X-API-Key header (or ?api_key= query param)
      resolved to a ``User`` row
    - ``require_org(min_role)`` decorator: resolves ``<slug>`` to an
      organization, checks membership and role
    - Content-Type enforcement for state-changing requests (CSRF mitigation)

Security model:
    - All /api/v1/* endpoints require a known API key, except /api/v1/health/*
    - Reads need membership in the organization; writes need the admin role
    - Unknown organization -> 404, non-member -> 403, missing key -> 401

Configuration:
    API_AUTH_ENABLED  — set to "false" to disable auth (development only);
                        every caller is then treated as an admin of every org
"""

import functools
import logging
import os
from typing import Optional

from flask import current_app, g, request

from kb_editor.core.exceptions import NotFoundError
from kb_editor.models.auth import ROLE_ADMIN, ROLE_USER
from kb_editor.services import org_service
from kb_editor.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Role hierarchy: admin > user
ROLE_HIERARCHY = {
    ROLE_ADMIN: {ROLE_ADMIN, ROLE_USER},
    ROLE_USER: {ROLE_USER},
}


def _is_auth_enabled() -> bool:
    """Check whether authentication is enabled (env var or app config)."""
    env_val = os.getenv("API_AUTH_ENABLED", "")
    if env_val:
        return env_val.lower() not in ("false", "0", "no", "off")
    try:
        return str(current_app.config.get("API_AUTH_ENABLED", "true")).lower() not in ("false", "0", "no", "off")
    except RuntimeError:
        # Outside app context
        return True


def _get_api_key_from_request() -> Optional[str]:
    """Extract API key from request header or query parameter."""
    key = request.headers.get("X-API-Key", "").strip()
    if key:
        return key
    return request.args.get("api_key", "").strip() or None


def current_user():
    """The authenticated ``User``, or None when auth is disabled."""
    return getattr(g, "current_user", None)


# ── Organization decorator ───────────────────────────────────────────────────

def require_org(min_role: str = ROLE_USER):
    """
    Decorator: resolve the ``slug`` URL argument and enforce membership.

    Sets g.org, g.org_id and g.org_role for the view.

    Usage:
        @bp.route("/orgs/<slug>/sections", methods=["POST"])
        @require_org(ROLE_ADMIN)
        def create_section(slug): ...
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            try:
                org = org_service.get_org_by_slug(kwargs.get("slug"))
            except NotFoundError:
                return api_error(E.NOT_FOUND, "Organization not found")

            user = current_user()
            if getattr(g, "auth_disabled", False):
                role = ROLE_ADMIN
            elif user is None:
                return api_error(E.UNAUTHORIZED, "Authentication required")
            else:
                role = org_service.get_role(org.id, user.id)
                if role is None:
                    logger.warning(
                        "Access denied: user %s is not a member of org %s", user.id, org.slug,
                    )
                    return api_error(E.FORBIDDEN, "Not a member of this organization")

            if min_role not in ROLE_HIERARCHY.get(role, set()):
                logger.warning(
                    "Access denied: role '%s' tried to access '%s'-level endpoint %s",
                    role, min_role, request.path,
                )
                return api_error(E.FORBIDDEN, "Insufficient permissions")

            g.org = org
            g.org_id = org.id
            g.org_role = role
            return f(*args, **kwargs)
        return decorated
    return decorator


# ── CSRF protection for API ──────────────────────────────────────────────────

def _check_content_type():
    """
    For state-changing requests with a body, require
    Content-Type: application/json. HTML forms cannot send it.
    """
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        ct = request.content_type or ""
        if "application/json" not in ct and request.content_length and request.content_length > 0:
            return api_error(
                E.VALIDATION_INVALID,
                "Content-Type must be application/json for state-changing requests",
                status=415,
            )
    return None


# ── App-level before_request hook installer ──────────────────────────────────

def init_auth(app):
    """
    Install authentication middleware on the Flask app.

    Resolves the API key to g.current_user for every /api/v1/* request
    except health checks and CORS pre-flight.
    """
    @app.before_request
    def _before_request_auth():
        if not request.path.startswith("/api/v1/"):
            return None
        if request.path.startswith("/api/v1/health"):
            return None
        if request.method == "OPTIONS":
            return None

        csrf_error = _check_content_type()
        if csrf_error:
            return csrf_error

        if not _is_auth_enabled():
            g.auth_disabled = True
            g.current_user = None
            return None

        api_key = _get_api_key_from_request()
        if not api_key:
            return api_error(E.UNAUTHORIZED, "Authentication required. Provide X-API-Key header.")

        user = org_service.find_user_by_api_key(api_key)
        if user is None:
            logger.warning("Invalid API key attempt: %s...", api_key[:8])
            return api_error(E.UNAUTHORIZED, "Invalid API key")

        g.auth_disabled = False
        g.current_user = user
        return None

    logger.info("Auth middleware installed (enabled=%s)", _is_auth_enabled())
