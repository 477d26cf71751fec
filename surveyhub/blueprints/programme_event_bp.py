"""
Programme Event Blueprint.

Endpoints:
    GET    /api/v1/programme-events/project/<project_id>   — by date, oldest first
    POST   /api/v1/programme-events                        — admin
    PUT    /api/v1/programme-events/<event_id>             — admin
    DELETE /api/v1/programme-events/<event_id>             — admin
"""

from flask import Blueprint, jsonify

from surveyhub.blueprints import current_identity, json_body, register_error_handlers
from surveyhub.middleware.auth import require_role
from surveyhub.models.user import ROLE_ADMIN
from surveyhub.services import programme_event_service

programme_event_bp = Blueprint("programme_event", __name__, url_prefix="/api/v1/programme-events")
register_error_handlers(programme_event_bp)


@programme_event_bp.route("/project/<project_id>", methods=["GET"])
def list_events(project_id):
    events = programme_event_service.list_events(project_id, current_identity())
    return jsonify([e.to_dict() for e in events]), 200


@programme_event_bp.route("", methods=["POST"])
@require_role(ROLE_ADMIN)
def create_event():
    """Body: {project_id, title, date, color?}"""
    event = programme_event_service.create_event(json_body())
    return jsonify(event.to_dict()), 201


@programme_event_bp.route("/<event_id>", methods=["PUT"])
@require_role(ROLE_ADMIN)
def update_event(event_id):
    event = programme_event_service.update_event(event_id, json_body())
    return jsonify(event.to_dict()), 200


@programme_event_bp.route("/<event_id>", methods=["DELETE"])
@require_role(ROLE_ADMIN)
def delete_event(event_id):
    programme_event_service.delete_event(event_id)
    return "", 204
