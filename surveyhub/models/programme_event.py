"""ProgrammeEvent model — a dated marker on a project's timeline."""

from surveyhub.models import _iso, _uuid, db

DEFAULT_EVENT_COLOR = "#007bff"


class ProgrammeEvent(db.Model):
    __tablename__ = "programme_events"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36),
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = db.Column(db.String(255), nullable=False)
    date = db.Column(db.Date, nullable=False)
    color = db.Column(db.String(20), nullable=False, default=DEFAULT_EVENT_COLOR)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "date": _iso(self.date),
            "color": self.color,
        }

    def __repr__(self):
        return f"<ProgrammeEvent {self.title} {self.date}>"
