"""
SurveyHub
Blueprint registry and shared error handlers.
"""

import logging

from flask import g, request

from surveyhub.core.exceptions import (
    AggregationError,
    AuthError,
    ConflictError,
    InvalidIdentifierError,
    NotFoundError,
    ValidationError,
)
from surveyhub.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def current_identity():
    """RequestIdentity set by the auth middleware for this request."""
    return g.identity


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def register_error_handlers(bp):
    """Map service exceptions to the standard JSON error body on ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        logger.info("%s", error)
        return api_error(E.NOT_FOUND, f"{error.resource} not found")

    @bp.errorhandler(InvalidIdentifierError)
    def _handle_invalid_id(error: InvalidIdentifierError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(
            E.VALIDATION_CONSTRAINT, str(error),
            status=error.status_code, details=error.details,
        )

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @bp.errorhandler(AuthError)
    def _handle_auth(error: AuthError):
        code = E.FORBIDDEN if error.status_code == 403 else E.UNAUTHENTICATED
        return api_error(code, str(error), status=error.status_code)

    @bp.errorhandler(AggregationError)
    def _handle_aggregation(error: AggregationError):
        return api_error(E.AGGREGATION, "Failed to aggregate project data")

    return bp
