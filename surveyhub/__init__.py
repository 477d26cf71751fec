"""
SurveyHub
Flask Application Factory.

Usage:
    from surveyhub import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event
from sqlalchemy.exc import SQLAlchemyError

from surveyhub.config import config
from surveyhub.middleware.auth import init_auth_middleware
from surveyhub.middleware.logging_config import configure_logging
from surveyhub.middleware.rate_limiter import init_rate_limits
from surveyhub.middleware.timing import init_request_timing
from surveyhub.models import db
from surveyhub.utils.errors import E, api_error

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
    default_limits=[],                     # no global limit, applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),  # Redis in production, memory for dev
)


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
    # Instantiated so ProductionConfig can refuse to start without its env vars
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

    # ── Request timing, then identity (sets g.identity) ─────────────────
    init_request_timing(app)
    init_auth_middleware(app)

    app.config.setdefault("MAX_CONTENT_LENGTH", 2 * 1024 * 1024)  # 2 MB

    # ── Models (register tables on db.metadata) ─────────────────────────
    from surveyhub.models import fee_quote as _fee_quote_models              # noqa: F401
    from surveyhub.models import instruction_log as _instruction_log_models  # noqa: F401
    from surveyhub.models import programme_event as _programme_event_models  # noqa: F401
    from surveyhub.models import project as _project_models                  # noqa: F401
    from surveyhub.models import quote as _quote_models                      # noqa: F401
    from surveyhub.models import surveyor_feedback as _feedback_models       # noqa: F401
    from surveyhub.models import surveyor_organisation as _directory_models  # noqa: F401
    from surveyhub.models import user as _user_models                        # noqa: F401

    if not app.config.get("TESTING"):
        with app.app_context():
            try:
                db.create_all()
                app.logger.info("db.create_all() completed successfully")
            except SQLAlchemyError as e:
                app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from surveyhub.blueprints.client_bp import client_bp
    from surveyhub.blueprints.fee_quote_bp import fee_quote_bp
    from surveyhub.blueprints.health_bp import health_bp
    from surveyhub.blueprints.instruction_log_bp import instruction_log_bp
    from surveyhub.blueprints.programme_event_bp import programme_event_bp
    from surveyhub.blueprints.project_bp import project_bp
    from surveyhub.blueprints.quote_bp import quote_bp
    from surveyhub.blueprints.surveyor_directory_bp import surveyor_directory_bp
    from surveyhub.blueprints.surveyor_feedback_bp import surveyor_feedback_bp
    from surveyhub.blueprints.user_bp import user_bp

    app.register_blueprint(project_bp)
    app.register_blueprint(quote_bp)
    app.register_blueprint(instruction_log_bp)
    app.register_blueprint(surveyor_feedback_bp)
    app.register_blueprint(programme_event_bp)
    app.register_blueprint(client_bp)
    app.register_blueprint(surveyor_directory_bp)
    app.register_blueprint(fee_quote_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(health_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(
            E.VALIDATION_INVALID, "Too many requests",
            status=429, details={"retry_after": e.description},
        )

    @app.errorhandler(SQLAlchemyError)
    def database_error(e):
        db.session.rollback()
        logger.exception("Unhandled database error on %s", request.path)
        return api_error(E.DATABASE, "Database error")

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
