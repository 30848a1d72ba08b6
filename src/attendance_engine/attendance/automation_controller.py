from __future__ import annotations

from datetime import datetime

from flask import Flask

from ..common.http import json_body, ok
from ..container import Container
from ..core.exceptions import ValidationError


def _parse_moment(value, name: str):
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO date-time")


def register(app: Flask, container: Container) -> None:
    automation = container.automation

    @app.route("/api/automation/run", methods=["POST"], endpoint="automation_run")
    def run():
        body = json_body()
        summary = automation.run(_parse_moment(body.get("start"), "start"), _parse_moment(body.get("end"), "end"))
        return ok(summary)

    @app.route("/api/automation/status", methods=["GET"], endpoint="automation_status")
    def status():
        return ok(automation.state)
