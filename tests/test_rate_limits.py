"""Tests: per-method rate limits on API blueprints."""

from flask import Flask

from surveyhub.blueprints.health_bp import health_bp
from surveyhub.blueprints.project_bp import project_bp
from surveyhub.middleware.rate_limiter import (
    READ_LIMIT,
    WRITE_LIMIT,
    init_rate_limits,
)


class _RecordingLimiter:
    def __init__(self):
        self.limits = []
        self.exempted = []

    def limit(self, value, methods=None):
        def apply(bp):
            self.limits.append((bp.name, value, tuple(methods or ())))
            return bp
        return apply

    def exempt(self, bp):
        self.exempted.append(bp.name)
        return bp


def _app(testing):
    app = Flask(__name__)
    app.config["TESTING"] = testing
    app.register_blueprint(project_bp)
    app.register_blueprint(health_bp)
    return app


def test_project_writes_get_the_write_limit():
    limiter = _RecordingLimiter()
    init_rate_limits(_app(testing=False), limiter)

    assert ("project", WRITE_LIMIT, ("POST", "PUT", "PATCH", "DELETE")) in limiter.limits
    assert ("project", READ_LIMIT, ("GET",)) in limiter.limits
    assert limiter.exempted == ["health"]


def test_disabled_when_testing():
    limiter = _RecordingLimiter()
    init_rate_limits(_app(testing=True), limiter)
    assert limiter.limits == []
