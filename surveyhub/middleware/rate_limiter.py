"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in surveyhub/__init__.py with no default
limits; this module applies limits per HTTP method on each API blueprint.

Usage:
    from surveyhub.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"

WRITE_METHODS = ["POST", "PUT", "PATCH", "DELETE"]
READ_METHODS = ["GET"]

API_BLUEPRINTS = (
    "project",
    "quote",
    "instruction_log",
    "surveyor_feedback",
    "programme_event",
    "client",
    "surveyor_directory",
    "fee_quote",
    "user",
)


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP, per blueprint):
        - POST/PUT/PATCH/DELETE:  60/minute
        - GET:                    200/minute (summaries are polled by the SPA)
        - Health check:           exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in API_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT, methods=WRITE_METHODS)(bp)
            limiter.limit(READ_LIMIT, methods=READ_METHODS)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured (write %s, read %s)", WRITE_LIMIT, READ_LIMIT)
