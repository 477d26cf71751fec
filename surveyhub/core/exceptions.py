"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
(see ``surveyhub.blueprints.register_error_handlers``) and get consistent
HTTP status codes everywhere.

Usage:
    from surveyhub.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=project_id)
    raise ValidationError("name is required", details={"name": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist or is not visible to the caller.

    Maps to HTTP 404.

    Args:
        resource: Human-readable entity name (e.g. "Project", "Quote").
        resource_id: The id that was looked up. Included in logs, not in HTTP response.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    The data was well-formed but violated a rule (missing required field,
    rating out of range, partially instructed quote without a partial total).

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    status_code = 422

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class InvalidIdentifierError(ValidationError):
    """Raised when an identifier is not id-shaped. Checked before any query runs.

    Maps to HTTP 400.
    """

    status_code = 400

    def __init__(self, field: str, value) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field} format", details={field: "must be a UUID"})


class ConflictError(Exception):
    """Raised when a write collides with a unique constraint.

    Maps to HTTP 409. The caller may retry.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class AggregationError(Exception):
    """Raised when a project summary batch cannot be computed.

    The batch fails as a whole; no partial result is returned.
    The underlying store exception is kept in ``cause`` and chained.

    Maps to HTTP 500.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class AuthError(Exception):
    """Raised when the caller is unauthenticated (401) or not permitted (403)."""

    def __init__(self, message: str, status_code: int = 401) -> None:
        self.status_code = status_code
        super().__init__(message)
