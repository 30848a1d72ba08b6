from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import parse_iso_date
from ..common.http import json_body, ok, parse_int, require_field
from ..container import Container


def register(app: Flask, container: Container) -> None:
    holidays = container.holiday_service

    @app.route("/api/holidays", methods=["GET"], endpoint="holidays_list")
    def list_holidays():
        return ok({"holidays": holidays.list()})

    @app.route("/api/holidays", methods=["POST"], endpoint="holidays_add")
    def add_holiday():
        body = json_body()
        change = holidays.add(
            parse_iso_date(require_field(body, "date")),
            require_field(body, "name"),
            description=body.get("description") or "",
            added_by=parse_int(body.get("added_by"), "added_by"),
        )
        return ok(change, 201)

    @app.route("/api/holidays/<day>", methods=["PUT"], endpoint="holidays_update")
    def update_holiday(day: str):
        body = json_body()
        return ok(holidays.update(parse_iso_date(day), name=body.get("name"), description=body.get("description")))

    @app.route("/api/holidays/<day>", methods=["DELETE"], endpoint="holidays_remove")
    def remove_holiday(day: str):
        return ok(holidays.remove(parse_iso_date(day)))
