"""Programme event CRUD. Events are listed oldest first."""

import logging
import re

from surveyhub.core.exceptions import NotFoundError, ValidationError
from surveyhub.models import db
from surveyhub.models.programme_event import DEFAULT_EVENT_COLOR, ProgrammeEvent
from surveyhub.services import project_service
from surveyhub.utils.helpers import clean_str, commit_or_raise, parse_date_input, require_id

logger = logging.getLogger(__name__)

_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{3}([0-9a-fA-F]{3})?$")


def _validate(data: dict, partial: bool = False) -> dict:
    fields = {}
    errors = {}
    if "title" in data or not partial:
        fields["title"] = clean_str(data.get("title"))
        if not fields["title"]:
            errors["title"] = "required"
    if "date" in data or not partial:
        fields["date"] = parse_date_input(data.get("date"), "date")
        if fields["date"] is None:
            errors["date"] = "required"
    if "color" in data or not partial:
        color = clean_str(data.get("color")) or DEFAULT_EVENT_COLOR
        if not _COLOR_RE.match(color):
            errors["color"] = "must be a hex colour like #007bff"
        fields["color"] = color
    if errors:
        raise ValidationError("Invalid programme event", details=errors)
    return fields


def list_events(project_id: str, identity) -> list[ProgrammeEvent]:
    project_service.get_project(project_id, identity)
    return (
        ProgrammeEvent.query
        .filter_by(project_id=project_id)
        .order_by(ProgrammeEvent.date, ProgrammeEvent.id)
        .all()
    )


def get_event(event_id: str) -> ProgrammeEvent:
    require_id(event_id, "event_id")
    event = db.session.get(ProgrammeEvent, event_id)
    if event is None:
        raise NotFoundError("ProgrammeEvent", event_id)
    return event


def create_event(data: dict) -> ProgrammeEvent:
    project_id = data.get("project_id")
    if not project_id:
        raise ValidationError("project_id is required", details={"project_id": "required"})
    project_service.get_project(project_id)

    event = ProgrammeEvent(project_id=project_id, **_validate(data))
    db.session.add(event)
    commit_or_raise("ProgrammeEvent")
    logger.info("Created programme event %s", event.id, extra={"project_id": project_id})
    return event


def update_event(event_id: str, data: dict) -> ProgrammeEvent:
    event = get_event(event_id)
    for key, value in _validate(data, partial=True).items():
        setattr(event, key, value)
    commit_or_raise("ProgrammeEvent", value=event_id)
    return event


def delete_event(event_id: str) -> None:
    event = get_event(event_id)
    project_id = event.project_id
    db.session.delete(event)
    commit_or_raise("ProgrammeEvent", value=event_id)
    logger.info("Deleted programme event %s", event_id, extra={"project_id": project_id})
