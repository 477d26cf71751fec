"""
Identity Service — verifies identity-provider tokens and resolves the caller.

Verification:
    AUTH_JWKS_URL set   → RS256, key fetched from the provider's JWKS,
                          issuer / audience checked when configured
    otherwise           → HS256 with JWT_SECRET_KEY (falls back to SECRET_KEY)

Token claims used:
{
    "email": "someone@example.com",   # or "sub" when no email claim
    "name": "Someone",                # optional
    "roles": ["surveyor"],            # claim name configurable (AUTH_ROLES_CLAIM)
    "exp": <expires_at>
}

The resolved caller is returned as an immutable RequestIdentity and kept
in ``flask.g`` for the lifetime of a single request only.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from surveyhub.models import db
from surveyhub.models.user import ROLE_ADMIN, ROLE_CLIENT, ROLE_SURVEYOR, User

logger = logging.getLogger(__name__)

DEFAULT_ACCESS_EXPIRES = 900       # 15 minutes
HS_ALGORITHM = "HS256"
RS_ALGORITHM = "RS256"


@dataclass(frozen=True)
class RequestIdentity:
    user_id: str
    email: str
    role: str


def _get_secret():
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def _jwks_client():
    """PyJWKClient for the configured JWKS URL, created once per app."""
    url = current_app.config.get("AUTH_JWKS_URL")
    if not url:
        return None
    client = current_app.extensions.get("surveyhub_jwks")
    if client is None:
        client = jwt.PyJWKClient(url)
        current_app.extensions["surveyhub_jwks"] = client
    return client


# ═══════════════════════════════════════════════════════════════
# Token Verification
# ═══════════════════════════════════════════════════════════════
def decode_identity_token(token: str) -> dict:
    """
    Decode and verify an identity token.

    Returns the payload dict on success.
    Raises jwt.exceptions on failure (ExpiredSignatureError, InvalidTokenError, etc.)
    """
    issuer = current_app.config.get("AUTH_ISSUER")
    audience = current_app.config.get("AUTH_AUDIENCE")
    options = {"verify_aud": bool(audience)}

    jwks = _jwks_client()
    if jwks is not None:
        signing_key = jwks.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=[RS_ALGORITHM],
            issuer=issuer,
            audience=audience,
            options=options,
        )

    return jwt.decode(
        token,
        _get_secret(),
        algorithms=[HS_ALGORITHM],
        issuer=issuer,
        audience=audience,
        options=options,
    )


def generate_access_token(email: str, roles: list[str] | None = None,
                          name: str | None = None, expires_in: int | None = None) -> str:
    """Mint an HS256 token in the provider's claim shape (local development and tests)."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": email,
        "email": email,
        current_app.config.get("AUTH_ROLES_CLAIM", "roles"): roles or [],
        "iat": now,
        "exp": now + timedelta(seconds=expires_in or DEFAULT_ACCESS_EXPIRES),
        "jti": str(uuid.uuid4()),
    }
    if name:
        payload["name"] = name
    issuer = current_app.config.get("AUTH_ISSUER")
    if issuer:
        payload["iss"] = issuer
    audience = current_app.config.get("AUTH_AUDIENCE")
    if audience:
        payload["aud"] = audience
    return jwt.encode(payload, _get_secret(), algorithm=HS_ALGORITHM)


# ═══════════════════════════════════════════════════════════════
# Caller resolution
# ═══════════════════════════════════════════════════════════════
def role_from_claims(payload: dict) -> str:
    """Role for a first-time user: token roles claim, then ADMIN_EMAILS, else surveyor."""
    claim = current_app.config.get("AUTH_ROLES_CLAIM", "roles")
    roles = payload.get(claim) or payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    if ROLE_ADMIN in roles:
        return ROLE_ADMIN
    if ROLE_CLIENT in roles:
        return ROLE_CLIENT
    if ROLE_SURVEYOR in roles:
        return ROLE_SURVEYOR

    email = (payload.get("email") or "").lower()
    if email and email in current_app.config.get("ADMIN_EMAILS", []):
        return ROLE_ADMIN
    return ROLE_SURVEYOR


def resolve_identity(payload: dict) -> RequestIdentity | None:
    """Find or create the User behind a verified token.

    Returns None when the token carries neither an email nor a subject.
    A concurrent first request for the same email may win the insert; the
    loser's IntegrityError is absorbed by re-reading the winner's row.
    """
    email = (payload.get("email") or payload.get("sub") or "").strip().lower()
    if not email:
        return None

    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, name=payload.get("name"), role=role_from_claims(payload))
        db.session.add(user)
        try:
            db.session.commit()
            logger.info("Created user %s with role %s", email, user.role,
                        extra={"user_id": user.id, "role": user.role})
        except IntegrityError:
            db.session.rollback()
            user = User.query.filter_by(email=email).one()

    return RequestIdentity(user_id=user.id, email=user.email, role=user.role)
