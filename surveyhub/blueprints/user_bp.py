"""
User Blueprint.

Endpoints:
    GET /api/v1/users/me          — the caller's own profile
    GET /api/v1/users/surveyors   — surveyor accounts (admin)
    GET /api/v1/users/clients     — client accounts (admin)
"""

from flask import Blueprint, jsonify

from surveyhub.blueprints import current_identity, register_error_handlers
from surveyhub.middleware.auth import require_role
from surveyhub.models.user import ROLE_ADMIN, ROLE_CLIENT, ROLE_SURVEYOR
from surveyhub.services import user_service

user_bp = Blueprint("user", __name__, url_prefix="/api/v1/users")
register_error_handlers(user_bp)


@user_bp.route("/me", methods=["GET"])
def me():
    return jsonify(user_service.get_current_user(current_identity()).to_dict()), 200


@user_bp.route("/surveyors", methods=["GET"])
@require_role(ROLE_ADMIN)
def list_surveyors():
    users = user_service.list_users_by_role(ROLE_SURVEYOR)
    return jsonify([{"id": u.id, "email": u.email, "name": u.name} for u in users]), 200


@user_bp.route("/clients", methods=["GET"])
@require_role(ROLE_ADMIN)
def list_clients():
    users = user_service.list_users_by_role(ROLE_CLIENT)
    return jsonify([{"id": u.id, "email": u.email, "name": u.name} for u in users]), 200
