from __future__ import annotations

from flask import Flask

from ..common.http import json_body, ok, parse_int
from ..container import Container


def register(app: Flask, container: Container) -> None:
    policy = container.policy_service

    @app.route("/api/settings", methods=["GET"], endpoint="settings_active")
    def active():
        return ok(policy.get_active())

    @app.route("/api/settings/history", methods=["GET"], endpoint="settings_history")
    def history():
        return ok({"versions": policy.history()})

    @app.route("/api/settings", methods=["POST"], endpoint="settings_create")
    def create():
        body = json_body()
        return ok(policy.create(body, created_by=parse_int(body.get("created_by"), "created_by")), 201)

    @app.route("/api/settings", methods=["PUT"], endpoint="settings_update")
    def update():
        body = json_body()
        return ok(policy.update(body, created_by=parse_int(body.get("created_by"), "created_by")))
