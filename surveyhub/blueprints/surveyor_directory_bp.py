"""
Surveyor Directory Blueprint.

Endpoints:
    GET    /api/v1/surveyor-organisations          — with review averages
    POST   /api/v1/surveyor-organisations          — admin
    PUT    /api/v1/surveyor-organisations/<id>     — admin
    DELETE /api/v1/surveyor-organisations/<id>     — admin
    GET    /api/v1/pending-surveyors               — admin, open entries only
    POST   /api/v1/pending-surveyors/approve       — admin, body {pending_id}
    POST   /api/v1/pending-surveyors/merge         — admin, body {pending_id, target_id}
    DELETE /api/v1/pending-surveyors/<id>          — admin, marks rejected
"""

from flask import Blueprint, jsonify

from surveyhub.blueprints import json_body, register_error_handlers
from surveyhub.middleware.auth import require_role
from surveyhub.models.user import ROLE_ADMIN
from surveyhub.services import surveyor_directory_service as directory

surveyor_directory_bp = Blueprint("surveyor_directory", __name__, url_prefix="/api/v1")
register_error_handlers(surveyor_directory_bp)


def _org_response(org, status: int = 200):
    return jsonify(directory.with_ratings([org])[0]), status


@surveyor_directory_bp.route("/surveyor-organisations", methods=["GET"])
def list_organisations():
    return jsonify(directory.with_ratings(directory.list_organisations())), 200


@surveyor_directory_bp.route("/surveyor-organisations", methods=["POST"])
@require_role(ROLE_ADMIN)
def create_organisation():
    """Body: {organisation, discipline, contacts?: [{contact_name, email, phone_number}]}"""
    return _org_response(directory.create_organisation(json_body()), 201)


@surveyor_directory_bp.route("/surveyor-organisations/<org_id>", methods=["PUT"])
@require_role(ROLE_ADMIN)
def update_organisation(org_id):
    return _org_response(directory.update_organisation(org_id, json_body()))


@surveyor_directory_bp.route("/surveyor-organisations/<org_id>", methods=["DELETE"])
@require_role(ROLE_ADMIN)
def delete_organisation(org_id):
    directory.delete_organisation(org_id)
    return "", 204


@surveyor_directory_bp.route("/pending-surveyors", methods=["GET"])
@require_role(ROLE_ADMIN)
def list_pending():
    return jsonify([p.to_dict() for p in directory.list_pending()]), 200


@surveyor_directory_bp.route("/pending-surveyors/approve", methods=["POST"])
@require_role(ROLE_ADMIN)
def approve_pending():
    return _org_response(directory.approve_pending(json_body().get("pending_id")), 201)


@surveyor_directory_bp.route("/pending-surveyors/merge", methods=["POST"])
@require_role(ROLE_ADMIN)
def merge_pending():
    data = json_body()
    return _org_response(directory.merge_pending(data.get("pending_id"), data.get("target_id")))


@surveyor_directory_bp.route("/pending-surveyors/<pending_id>", methods=["DELETE"])
@require_role(ROLE_ADMIN)
def reject_pending(pending_id):
    return jsonify(directory.reject_pending(pending_id).to_dict()), 200
