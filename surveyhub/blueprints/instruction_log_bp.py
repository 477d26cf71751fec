"""
Instruction Log Blueprint.

Endpoints:
    GET /api/v1/instruction-logs?project_id=...   (or ?quote_id=...)
    PUT /api/v1/instruction-logs/<quote_id>       — create or update (admin, surveyor)
"""

from flask import Blueprint, jsonify, request

from surveyhub.blueprints import current_identity, json_body, register_error_handlers
from surveyhub.middleware.auth import require_role
from surveyhub.models.user import ROLE_ADMIN, ROLE_SURVEYOR
from surveyhub.services import instruction_log_service

instruction_log_bp = Blueprint("instruction_log", __name__, url_prefix="/api/v1")
register_error_handlers(instruction_log_bp)


@instruction_log_bp.route("/instruction-logs", methods=["GET"])
def list_logs():
    logs = instruction_log_service.list_logs(
        current_identity(),
        project_id=request.args.get("project_id") or None,
        quote_id=request.args.get("quote_id") or None,
    )
    return jsonify([log.to_dict() for log in logs]), 200


@instruction_log_bp.route("/instruction-logs/<quote_id>", methods=["PUT"])
@require_role(ROLE_ADMIN, ROLE_SURVEYOR)
def upsert_log(quote_id):
    log = instruction_log_service.upsert_log(quote_id, json_body(), current_identity())
    return jsonify(log.to_dict()), 200
