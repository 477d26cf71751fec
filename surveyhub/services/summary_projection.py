"""
Project summary projection.

The summary pipeline builds an enriched per-project dict that also carries
its join scaffolding (raw quotes, instructed quotes, instruction logs).
Only the allow-listed fields below leave the service layer.
"""

SUMMARY_FIELDS = (
    "id",
    "name",
    "client",
    "project_lead",
    "project_manager",
    "instructed_count",
    "completed_count",
    "outstanding_count",
    "outstanding_surveys",
    "instructed_spend",
    "created_at",
    "programme_events",
    "authorized_surveyors",
    "authorized_clients",
)


def project_summary(enriched: dict) -> dict:
    """Project an enriched aggregate onto the public summary fields."""
    return {field: enriched.get(field) for field in SUMMARY_FIELDS}
