"""
Knowledge Base Editor
Flask Application Factory.

Usage:
    from kb_editor import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy.exc import SQLAlchemyError

from kb_editor.auth import init_auth
from kb_editor.config import config
from kb_editor.core.exceptions import ConflictError, NotFoundError, ValidationError
from kb_editor.middleware.logging_config import configure_logging
from kb_editor.middleware.rate_limiter import init_rate_limits
from kb_editor.middleware.timing import init_request_timing
from kb_editor.models import db
from kb_editor.utils.errors import E, api_error

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit — apply per-blueprint
    storage_uri=os.getenv("REDIS_URL") or "memory://",  # Redis in production, memory for dev
)


def _register_error_handlers(app):
    """JSON error bodies for service exceptions and HTTP errors under /api/."""

    @app.errorhandler(NotFoundError)
    def _not_found_error(e):
        logger.debug("NotFoundError: %s", e)
        return api_error(E.NOT_FOUND, f"{e.resource} not found")

    @app.errorhandler(ValidationError)
    def _validation_error(e):
        return api_error(E.VALIDATION_CONSTRAINT, e.message, status=422, details=e.details)

    @app.errorhandler(ConflictError)
    def _conflict_error(e):
        return api_error(E.CONFLICT_DUPLICATE, str(e), details={"field": e.field})

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    @app.errorhandler(SQLAlchemyError)
    def _database_error(e):
        db.session.rollback()
        logger.error("Database error: %s", e, exc_info=True)
        return api_error(E.DATABASE, "Database error")


def _register_cli(app):
    @app.cli.command("create-org")
    @click.argument("name")
    @click.option("--slug", default=None, help="URL slug (derived from NAME when omitted).")
    def create_org_cmd(name, slug):
        """Create an organization."""
        from kb_editor.services import org_service

        org = org_service.create_org(name, slug)
        click.echo(f"Created organization {org.name!r} (slug={org.slug})")

    @app.cli.command("add-member")
    @click.argument("org_slug")
    @click.argument("email")
    @click.option("--role", type=click.Choice(["admin", "user"]), default="user")
    @click.option("--name", "full_name", default=None)
    def add_member_cmd(org_slug, email, role, full_name):
        """Add a user to an organization; prints the API key of new users."""
        from kb_editor.services import org_service

        user, created = org_service.add_member(org_slug, email, role, full_name=full_name)
        click.echo(f"{email} is now {role} of {org_slug}")
        if created:
            click.echo(f"API key: {user.api_key}")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Authentication & CSRF middleware ──────────────────────────────────
    init_auth(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from kb_editor.models import auth as _auth_models            # noqa: F401
    from kb_editor.models import knowledge as _knowledge_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and ":memory:" not in app.config["SQLALCHEMY_DATABASE_URI"]:
        os.makedirs(app.instance_path, exist_ok=True)
    with app.app_context():
        db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from kb_editor.blueprints.custom_rules_bp import custom_rules_bp
    from kb_editor.blueprints.export_bp import export_bp
    from kb_editor.blueprints.faq_bp import faq_bp
    from kb_editor.blueprints.health_bp import health_bp
    from kb_editor.blueprints.org_bp import org_bp
    from kb_editor.blueprints.section_bp import section_bp
    from kb_editor.blueprints.variable_bp import variable_bp

    app.register_blueprint(org_bp)
    app.register_blueprint(section_bp)
    app.register_blueprint(faq_bp)
    app.register_blueprint(variable_bp)
    app.register_blueprint(custom_rules_bp)
    app.register_blueprint(export_bp)
    app.register_blueprint(health_bp)

    _register_error_handlers(app)
    _register_cli(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
