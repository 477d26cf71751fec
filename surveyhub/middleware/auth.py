"""
Auth Middleware — parses the Bearer token, sets g.identity.

Every /api/v1/ route except the skip list requires a valid token; requests
without one are answered with 401 here, before reaching a blueprint.
Role checks are per-route (see ``require_role``).

g.identity is a RequestIdentity (user_id, email, role) for this request only.
"""

import functools
import logging

import jwt as pyjwt
from flask import g, request

from surveyhub.services.identity_service import decode_identity_token, resolve_identity
from surveyhub.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip auth entirely
AUTH_SKIP_PREFIXES = (
    "/api/v1/health",
)


def init_auth_middleware(app):
    """Register auth middleware as a before_request hook."""

    @app.before_request
    def _authenticate():
        g.identity = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return None
        if request.method == "OPTIONS":
            return None
        for prefix in AUTH_SKIP_PREFIXES:
            if path.startswith(prefix):
                return None

        auth_header = request.headers.get("Authorization", "")
        parts = auth_header.split(" ")
        if len(parts) != 2 or parts[0] != "Bearer":
            return api_error(E.UNAUTHENTICATED, "Missing or invalid Authorization header")

        try:
            payload = decode_identity_token(parts[1])
        except pyjwt.ExpiredSignatureError:
            return api_error(E.UNAUTHENTICATED, "Token expired")
        except pyjwt.InvalidTokenError as exc:
            logger.info("Rejected token: %s", exc)
            return api_error(E.UNAUTHENTICATED, "Invalid token")

        identity = resolve_identity(payload)
        if identity is None:
            return api_error(E.UNAUTHENTICATED, "Token missing email claim")
        g.identity = identity
        return None


def require_role(*roles: str):
    """
    Decorator: require the caller to hold one of ``roles``.

    Usage:
        @bp.route("/projects", methods=["POST"])
        @require_role("admin")
        def create_project():
            ...
    """
    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            identity = getattr(g, "identity", None)
            if identity is None:
                return api_error(E.UNAUTHENTICATED, "Authentication required")
            if identity.role not in roles:
                logger.warning(
                    "User %s denied: role '%s' not in %s on %s",
                    identity.user_id, identity.role, roles, f.__name__,
                )
                return api_error(
                    E.FORBIDDEN,
                    f"User role '{identity.role}' is not authorized to access this route",
                )
            return f(*args, **kwargs)
        return decorated
    return decorator
