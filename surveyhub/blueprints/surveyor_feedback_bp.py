"""
Surveyor Feedback Blueprint.

Endpoints:
    GET    /api/v1/surveyor-feedback?project_id=...   (or ?quote_id=...)
    PUT    /api/v1/surveyor-feedback/<quote_id>       — create or update (admin)
    DELETE /api/v1/surveyor-feedback/<quote_id>       — admin
"""

from flask import Blueprint, jsonify, request

from surveyhub.blueprints import current_identity, json_body, register_error_handlers
from surveyhub.middleware.auth import require_role
from surveyhub.models.user import ROLE_ADMIN
from surveyhub.services import surveyor_feedback_service

surveyor_feedback_bp = Blueprint("surveyor_feedback", __name__, url_prefix="/api/v1")
register_error_handlers(surveyor_feedback_bp)


@surveyor_feedback_bp.route("/surveyor-feedback", methods=["GET"])
def list_feedback():
    items = surveyor_feedback_service.list_feedback(
        current_identity(),
        project_id=request.args.get("project_id") or None,
        quote_id=request.args.get("quote_id") or None,
    )
    return jsonify([f.to_dict() for f in items]), 200


@surveyor_feedback_bp.route("/surveyor-feedback/<quote_id>", methods=["PUT"])
@require_role(ROLE_ADMIN)
def upsert_feedback(quote_id):
    """
    Body (JSON):
        overall_review (1-5, required on first write), quality (1-5),
        responsiveness (1-5), delivered_on_time (0-5), notes, review_date
    """
    feedback = surveyor_feedback_service.upsert_feedback(quote_id, json_body())
    return jsonify(feedback.to_dict()), 200


@surveyor_feedback_bp.route("/surveyor-feedback/<quote_id>", methods=["DELETE"])
@require_role(ROLE_ADMIN)
def delete_feedback(quote_id):
    surveyor_feedback_service.delete_feedback(quote_id)
    return jsonify({"deleted": True, "quote_id": quote_id}), 200
