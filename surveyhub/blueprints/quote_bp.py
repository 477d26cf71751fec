"""
Quote Blueprint.

Endpoints:
    GET    /api/v1/quotes?project_id=   — quotes visible to the caller
    POST   /api/v1/quotes               — submit a quote (admin, surveyor)
    GET    /api/v1/quotes/<id>
    PUT    /api/v1/quotes/<id>          — admin, or the submitting surveyor
    DELETE /api/v1/quotes/<id>          — also removes the quote's log and feedback
"""

import logging

from flask import Blueprint, jsonify, request

from surveyhub.blueprints import current_identity, json_body, register_error_handlers
from surveyhub.middleware.auth import require_role
from surveyhub.models.user import ROLE_ADMIN, ROLE_SURVEYOR
from surveyhub.services import quote_service

logger = logging.getLogger(__name__)

quote_bp = Blueprint("quote", __name__, url_prefix="/api/v1")
register_error_handlers(quote_bp)


@quote_bp.route("/quotes", methods=["GET"])
def list_quotes():
    quotes = quote_service.list_quotes(
        current_identity(), project_id=request.args.get("project_id") or None,
    )
    return jsonify([q.to_dict() for q in quotes]), 200


@quote_bp.route("/quotes", methods=["POST"])
@require_role(ROLE_ADMIN, ROLE_SURVEYOR)
def create_quote():
    """
    Body (JSON):
        project_id, discipline, organisation, contact_name (required)
        email, line_items [{item, description, cost}], instruction_status,
        partially_instructed_total, additional_notes, quote_date
    """
    quote = quote_service.create_quote(json_body(), current_identity())
    return jsonify(quote.to_dict()), 201


@quote_bp.route("/quotes/<quote_id>", methods=["GET"])
def get_quote(quote_id):
    quote = quote_service.get_quote(quote_id, current_identity())
    return jsonify(quote.to_dict()), 200


@quote_bp.route("/quotes/<quote_id>", methods=["PUT"])
@require_role(ROLE_ADMIN, ROLE_SURVEYOR)
def update_quote(quote_id):
    quote = quote_service.update_quote(quote_id, json_body(), current_identity())
    return jsonify(quote.to_dict()), 200


@quote_bp.route("/quotes/<quote_id>", methods=["DELETE"])
@require_role(ROLE_ADMIN, ROLE_SURVEYOR)
def delete_quote(quote_id):
    quote_service.delete_quote(quote_id, current_identity())
    return jsonify({"deleted": True, "id": quote_id}), 200
