"""
Manufacturing Operations Backend
Flask Application Factory.

Usage:
    from mfgops import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine, event as _sa_event
from sqlalchemy.exc import SQLAlchemyError

from mfgops.config import config
from mfgops.core.exceptions import MfgOpsError
from mfgops.middleware.jwt_auth import init_jwt_middleware
from mfgops.middleware.logging_config import configure_logging
from mfgops.middleware.rate_limiter import init_rate_limits
from mfgops.middleware.timing import init_request_timing
from mfgops.models import db
from mfgops.utils.errors import E, api_error

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
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("REDIS_URL", "memory://"),  # Redis in production, memory for dev
)


def _register_error_handlers(app):
    @app.errorhandler(MfgOpsError)
    def handle_core_error(exc):
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.code, exc.message, extra={"status": exc.status_code})
        return api_error(exc.code, exc.message, status=exc.status_code, details=exc.details)

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(exc):
        db.session.rollback()
        logger.error("Unhandled database error: %s", exc, exc_info=True)
        return api_error(E.DATABASE, str(exc))

    @app.errorhandler(401)
    def unauthorized(e):
        return api_error(E.UNAUTHORIZED, "Authentication required")

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found")

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"retry_after": e.description})

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")


def _register_cli(app):
    @app.cli.command("seed-company")
    @click.argument("name")
    @click.option("--code", default=None, help="Short company code.")
    @click.option("--admin-email", default=None, help="Create a company admin user.")
    def seed_company_cmd(name, code, admin_email):
        """Create a company (and optionally its admin) and print an admin token."""
        from mfgops.services import access_service
        from mfgops.services.helpers.scoped_queries import COMPANY_ADMIN_ROLE, Scope
        from mfgops.services.jwt_service import token_response

        company = access_service.create_company({"name": name, "code": code})
        actor_id = 0
        if admin_email:
            scope = Scope(actor_id=None, company_id=company.id, is_company_admin=True)
            actor_id = access_service.create_user({"email": admin_email}, scope).id
        tokens = token_response(actor_id, company.id, [COMPANY_ADMIN_ROLE])
        logger.info("Seeded company id=%s name=%s", company.id, company.name)
        click.echo(f"company_id={company.id}")
        click.echo(f"access_token={tokens['access_token']}")


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
    app.config.from_object(config[config_name]())

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

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── JWT auth middleware (sets g.scope) ───────────────────────────────
    init_jwt_middleware(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from mfgops.models import access as _access_models          # noqa: F401
    from mfgops.models import catalog as _catalog_models        # noqa: F401
    from mfgops.models import production as _production_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and ":memory:" not in app.config["SQLALCHEMY_DATABASE_URI"]:
            os.makedirs(app.instance_path, exist_ok=True)
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except SQLAlchemyError as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from mfgops.blueprints.access_bp import access_bp
    from mfgops.blueprints.catalog_bp import catalog_bp
    from mfgops.blueprints.health_bp import health_bp
    from mfgops.blueprints.production_bp import production_bp
    from mfgops.blueprints.quality_bp import quality_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(access_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(production_bp)
    app.register_blueprint(quality_bp)

    # ── Error handlers & CLI ─────────────────────────────────────────────
    _register_error_handlers(app)
    _register_cli(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
