"""
Project service — CRUD, access checks and cascade delete.

Visibility:
    admin     → every project
    surveyor  → projects listing them in authorized_surveyors
    client    → projects listing them in authorized_clients

Deleting a project removes, in order: surveyor feedback, instruction logs,
quotes, programme events and fee quote records, then the project itself,
in one transaction. Pending surveyors queued from its quotes keep their
entry but lose the quote reference.
The database FKs cascade as well; the explicit deletes keep the order
deterministic on stores without FK enforcement.
"""

import logging

from surveyhub.core.exceptions import AuthError, NotFoundError, ValidationError
from surveyhub.models import db
from surveyhub.models.fee_quote import FeeQuoteLog, FeeQuoteRequest
from surveyhub.models.instruction_log import InstructionLog
from surveyhub.models.programme_event import ProgrammeEvent
from surveyhub.models.project import VALID_PROJECT_TYPES, Project
from surveyhub.models.quote import Quote
from surveyhub.models.surveyor_feedback import SurveyorFeedback
from surveyhub.models.surveyor_organisation import PendingSurveyor
from surveyhub.models.user import ROLE_ADMIN, ROLE_CLIENT, ROLE_SURVEYOR, User
from surveyhub.utils.helpers import clean_str, commit_or_raise, pick_fields, require_id

logger = logging.getLogger(__name__)


# ── Access ───────────────────────────────────────────────────────────────────


def can_access(project: Project, identity) -> bool:
    if identity.role == ROLE_ADMIN:
        return True
    if identity.role == ROLE_SURVEYOR:
        return any(u.id == identity.user_id for u in project.authorized_surveyors)
    if identity.role == ROLE_CLIENT:
        return any(u.id == identity.user_id for u in project.authorized_clients)
    return False


def get_project(project_id: str, identity=None) -> Project:
    """Load a project, optionally checking the caller may see it.

    Raises:
        InvalidIdentifierError: malformed id.
        NotFoundError: no such project.
        AuthError(403): project exists but the caller is not authorized.
    """
    require_id(project_id, "project_id")
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project", project_id)
    if identity is not None and not can_access(project, identity):
        logger.warning("User %s denied project %s", identity.user_id, project_id,
                       extra={"user_id": identity.user_id, "project_id": project_id})
        raise AuthError("Not authorized for this project", status_code=403)
    return project


def list_projects(identity) -> list[Project]:
    query = Project.query
    if identity.role == ROLE_SURVEYOR:
        query = query.filter(Project.authorized_surveyors.any(User.id == identity.user_id))
    elif identity.role == ROLE_CLIENT:
        query = query.filter(Project.authorized_clients.any(User.id == identity.user_id))
    elif identity.role != ROLE_ADMIN:
        return []
    return query.order_by(Project.created_at.desc(), Project.id).all()


# ── Writes ───────────────────────────────────────────────────────────────────


def _validate_fields(fields: dict) -> dict:
    errors = {}
    if "name" in fields:
        fields["name"] = clean_str(fields["name"])
        if not fields["name"]:
            errors["name"] = "required"
    if fields.get("client_id"):
        require_id(fields["client_id"], "client_id")
    project_type = fields.get("project_type")
    if project_type and project_type not in VALID_PROJECT_TYPES:
        errors["project_type"] = f"must be one of {sorted(VALID_PROJECT_TYPES)}"
    if "team_members" in fields:
        members = fields["team_members"] or []
        if not isinstance(members, list):
            errors["team_members"] = "must be a list"
        else:
            fields["team_members"] = [clean_str(m) for m in members if clean_str(m)]
    if fields.get("area") not in (None, ""):
        try:
            fields["area"] = float(fields["area"])
        except (TypeError, ValueError):
            errors["area"] = "must be a number"
    elif "area" in fields:
        fields["area"] = None
    if errors:
        raise ValidationError("Invalid project data", details=errors)
    return fields


def create_project(data: dict) -> Project:
    fields = _validate_fields(pick_fields(data, Project.EDITABLE_FIELDS))
    if not fields.get("name"):
        raise ValidationError("name is required", details={"name": "required"})

    project = Project(**fields)
    db.session.add(project)
    commit_or_raise("Project")
    logger.info("Created project %s", project.id, extra={"project_id": project.id})
    return project


def update_project(project_id: str, data: dict) -> Project:
    project = get_project(project_id)
    fields = _validate_fields(pick_fields(data, Project.EDITABLE_FIELDS))
    for key, value in fields.items():
        setattr(project, key, value)
    commit_or_raise("Project", value=project_id)
    return project


def delete_project(project_id: str) -> None:
    """Delete a project and everything hanging off it, atomically."""
    project = get_project(project_id)

    SurveyorFeedback.query.filter_by(project_id=project_id).delete(synchronize_session=False)
    InstructionLog.query.filter_by(project_id=project_id).delete(synchronize_session=False)
    quote_ids = db.select(Quote.id).where(Quote.project_id == project_id)
    PendingSurveyor.query.filter(PendingSurveyor.source_quote_id.in_(quote_ids)).update(
        {"source_quote_id": None}, synchronize_session=False,
    )
    Quote.query.filter_by(project_id=project_id).delete(synchronize_session=False)
    ProgrammeEvent.query.filter_by(project_id=project_id).delete(synchronize_session=False)
    FeeQuoteRequest.query.filter_by(project_id=project_id).delete(synchronize_session=False)
    FeeQuoteLog.query.filter_by(project_id=project_id).delete(synchronize_session=False)
    db.session.delete(project)

    commit_or_raise("Project", value=project_id)
    logger.info("Deleted project %s with dependents", project_id, extra={"project_id": project_id})


def authorize_users(project_id: str, emails, role: str) -> Project:
    """Replace a project's authorized surveyors or clients with the users behind ``emails``.

    Unknown emails are rejected as a whole; nothing is changed.
    """
    if role not in (ROLE_SURVEYOR, ROLE_CLIENT):
        raise ValidationError(f"Cannot authorize role '{role}'", details={"role": "invalid"})
    if not isinstance(emails, list):
        raise ValidationError("emails must be a list", details={"emails": "must be a list"})

    project = get_project(project_id)
    wanted = sorted({clean_str(e).lower() for e in emails if clean_str(e)})
    users = User.query.filter(User.email.in_(wanted)).all() if wanted else []
    found = {u.email for u in users}
    missing = [e for e in wanted if e not in found]
    if missing:
        raise ValidationError(
            "Unknown users",
            details={"emails": {e: "no such user" for e in missing}},
        )

    if role == ROLE_SURVEYOR:
        project.authorized_surveyors = users
    else:
        project.authorized_clients = users
    commit_or_raise("Project", value=project_id)
    logger.info("Authorized %d %s users on project %s", len(users), role, project_id,
                extra={"project_id": project_id})
    return project
