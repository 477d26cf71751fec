"""
Client Organisation Blueprint.

Endpoints:
    GET  /api/v1/client-organisations   — admin
    POST /api/v1/client-organisations   — admin
    PUT  /api/v1/client-organisations/<id> — admin
"""

from flask import Blueprint, jsonify

from surveyhub.blueprints import json_body, register_error_handlers
from surveyhub.middleware.auth import require_role
from surveyhub.models.user import ROLE_ADMIN
from surveyhub.services import client_service

client_bp = Blueprint("client", __name__, url_prefix="/api/v1")
register_error_handlers(client_bp)


@client_bp.route("/client-organisations", methods=["GET"])
@require_role(ROLE_ADMIN)
def list_organisations():
    return jsonify([o.to_dict() for o in client_service.list_organisations()]), 200


@client_bp.route("/client-organisations", methods=["POST"])
@require_role(ROLE_ADMIN)
def create_organisation():
    """Body: {organisation_name, contacts?: [{contact_name, email, phone_number}]}"""
    org = client_service.create_organisation(json_body())
    return jsonify(org.to_dict()), 201


@client_bp.route("/client-organisations/<org_id>", methods=["PUT"])
@require_role(ROLE_ADMIN)
def update_organisation(org_id):
    """Body: {organisation_name?, contacts?}"""
    org = client_service.update_organisation(org_id, json_body())
    return jsonify(org.to_dict()), 200
