"""
Fee Quote Blueprint.

Fee quote tracking is an admin workflow; every endpoint is admin-only.

Endpoints:
    GET    /api/v1/fee-quote-requests?project_id=   — newest first
    POST   /api/v1/fee-quote-requests
    GET    /api/v1/fee-quote-logs?project_id=       — newest first
    POST   /api/v1/fee-quote-logs
    GET    /api/v1/fee-quote-logs/<log_id>
    DELETE /api/v1/fee-quote-logs/<log_id>
"""

from flask import Blueprint, jsonify, request

from surveyhub.blueprints import current_identity, json_body, register_error_handlers
from surveyhub.middleware.auth import require_role
from surveyhub.models.user import ROLE_ADMIN
from surveyhub.services import fee_quote_service

fee_quote_bp = Blueprint("fee_quote", __name__, url_prefix="/api/v1")
register_error_handlers(fee_quote_bp)


@fee_quote_bp.route("/fee-quote-requests", methods=["GET"])
@require_role(ROLE_ADMIN)
def list_requests():
    requests = fee_quote_service.list_requests(request.args.get("project_id"), current_identity())
    return jsonify([r.to_dict() for r in requests]), 200


@fee_quote_bp.route("/fee-quote-requests", methods=["POST"])
@require_role(ROLE_ADMIN)
def create_request():
    """Body: {project_id, discipline, organisation, contact_name, email, phone_number?, request_sent_date?}"""
    fee_request = fee_quote_service.create_request(json_body())
    return jsonify(fee_request.to_dict()), 201


@fee_quote_bp.route("/fee-quote-logs", methods=["GET"])
@require_role(ROLE_ADMIN)
def list_logs():
    logs = fee_quote_service.list_logs(request.args.get("project_id"), current_identity())
    return jsonify([log.to_dict() for log in logs]), 200


@fee_quote_bp.route("/fee-quote-logs", methods=["POST"])
@require_role(ROLE_ADMIN)
def create_log():
    """Body: {project_id, emails: [...], sent_date?}"""
    log = fee_quote_service.create_log(json_body())
    return jsonify(log.to_dict()), 201


@fee_quote_bp.route("/fee-quote-logs/<log_id>", methods=["GET"])
@require_role(ROLE_ADMIN)
def get_log(log_id):
    return jsonify(fee_quote_service.get_log(log_id).to_dict()), 200


@fee_quote_bp.route("/fee-quote-logs/<log_id>", methods=["DELETE"])
@require_role(ROLE_ADMIN)
def delete_log(log_id):
    fee_quote_service.delete_log(log_id)
    return "", 204
