"""
Project Blueprint.

Endpoints:
    GET    /api/v1/projects                          — summaries visible to the caller
    POST   /api/v1/projects                          — create (admin)
    GET    /api/v1/projects/<id>                     — project detail
    GET    /api/v1/projects/<id>/summary             — one project summary
    PUT    /api/v1/projects/<id>                     — update (admin)
    DELETE /api/v1/projects/<id>                     — delete with dependents (admin)
    POST   /api/v1/projects/<id>/authorize-surveyors — set authorized surveyors (admin)
    POST   /api/v1/projects/<id>/authorize-clients   — set authorized clients (admin)

Layer contract:
    - No ORM calls here; services own queries and commits.
"""

import logging

from flask import Blueprint, jsonify

from surveyhub.blueprints import current_identity, json_body, register_error_handlers
from surveyhub.middleware.auth import require_role
from surveyhub.models.user import ROLE_ADMIN, ROLE_CLIENT, ROLE_SURVEYOR
from surveyhub.services import project_service
from surveyhub.services.project_summary_service import (
    ProjectFilter,
    summarize_project,
    summarize_projects,
)

logger = logging.getLogger(__name__)

project_bp = Blueprint("project", __name__, url_prefix="/api/v1")
register_error_handlers(project_bp)


@project_bp.route("/projects", methods=["GET"])
def list_projects():
    """Summaries of every project the caller may see, newest first."""
    summaries = summarize_projects(ProjectFilter.for_identity(current_identity()))
    return jsonify(summaries), 200


@project_bp.route("/projects", methods=["POST"])
@require_role(ROLE_ADMIN)
def create_project():
    project = project_service.create_project(json_body())
    return jsonify(project.to_dict()), 201


@project_bp.route("/projects/<project_id>", methods=["GET"])
def get_project(project_id):
    project = project_service.get_project(project_id, current_identity())
    return jsonify(project.to_dict()), 200


@project_bp.route("/projects/<project_id>/summary", methods=["GET"])
def get_project_summary(project_id):
    """Summary for one project. Projects outside the caller's scope are 404."""
    summary = summarize_project(project_id, ProjectFilter.for_identity(current_identity()))
    return jsonify(summary), 200


@project_bp.route("/projects/<project_id>", methods=["PUT"])
@require_role(ROLE_ADMIN)
def update_project(project_id):
    project = project_service.update_project(project_id, json_body())
    return jsonify(project.to_dict()), 200


@project_bp.route("/projects/<project_id>", methods=["DELETE"])
@require_role(ROLE_ADMIN)
def delete_project(project_id):
    project_service.delete_project(project_id)
    return jsonify({"deleted": True, "id": project_id}), 200


@project_bp.route("/projects/<project_id>/authorize-surveyors", methods=["POST"])
@require_role(ROLE_ADMIN)
def authorize_surveyors(project_id):
    """Body: {"emails": ["a@example.com", ...]}"""
    project = project_service.authorize_users(
        project_id, json_body().get("emails"), ROLE_SURVEYOR,
    )
    return jsonify(project.to_dict()), 200


@project_bp.route("/projects/<project_id>/authorize-clients", methods=["POST"])
@require_role(ROLE_ADMIN)
def authorize_clients(project_id):
    """Body: {"emails": ["a@example.com", ...]}"""
    project = project_service.authorize_users(
        project_id, json_body().get("emails"), ROLE_CLIENT,
    )
    return jsonify(project.to_dict()), 200
