from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_hhmm, parse_iso_date
from ..common.http import json_body, ok, parse_int, require_field
from ..common.validators import parse_bool
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance/manual", methods=["POST"], endpoint="attendance_manual")
    def manual_entry():
        body = json_body()
        created = service.record_manual_entry(
            parse_int(require_field(body, "user_id"), "user_id"),
            parse_iso_date(require_field(body, "date")),
            parse_hhmm(require_field(body, "check_in")),
            parse_hhmm(require_field(body, "check_out")),
            apply_rules=parse_bool(body.get("apply_rules"), default=True),
            worked_from_home=parse_bool(body.get("is_worked_from_home")),
            note=body.get("note"),
        )
        return ok({"records": created}, 201)

    @app.route("/api/attendance/additional", methods=["POST"], endpoint="attendance_additional")
    def additional_entry():
        body = json_body()
        created = service.add_additional_entry(
            parse_int(require_field(body, "user_id"), "user_id"),
            parse_iso_date(require_field(body, "date")),
            parse_hhmm(require_field(body, "check_in")),
            parse_hhmm(require_field(body, "check_out")),
            worked_from_home=parse_bool(body.get("is_worked_from_home")),
            note=body.get("note"),
        )
        return ok({"records": created}, 201)

    @app.route("/api/attendance/leave", methods=["POST"], endpoint="attendance_leave")
    def mark_leave():
        body = json_body()
        outcome = service.mark_leave(
            parse_int(require_field(body, "user_id"), "user_id"),
            parse_iso_date(require_field(body, "date")),
            require_field(body, "type"),
            note=body.get("note"),
        )
        return ok(outcome, 201)

    @app.route("/api/attendance/bulk-status", methods=["POST"], endpoint="attendance_bulk_status")
    def bulk_status():
        body = json_body()
        ids = body.get("ids") or []
        if not isinstance(ids, list):
            ids = [ids]
        result = service.bulk_update_status(
            [parse_int(i, "ids") for i in ids],
            require_field(body, "status"),
            note=body.get("note"),
        )
        return ok(result)

    @app.route("/api/attendance/month", methods=["GET"], endpoint="attendance_month")
    def list_month():
        records = service.list_for_month(
            month=parse_int(request.args.get("month"), "month"),
            year=parse_int(request.args.get("year"), "year"),
            user_id=parse_int(request.args.get("user_id"), "user_id"),
            team_id=parse_int(request.args.get("team_id"), "team_id"),
        )
        return ok({"records": records})

    @app.route("/api/attendance/user/<int:user_id>", methods=["GET"], endpoint="attendance_user")
    def list_user(user_id: int):
        records = service.list_for_user(
            user_id,
            parse_iso_date(require_field(request.args, "start")),
            parse_iso_date(require_field(request.args, "end")),
        )
        return ok({"records": records})

    @app.route("/api/attendance/<int:outcome_id>", methods=["GET"], endpoint="attendance_get")
    def get_outcome(outcome_id: int):
        return ok(service.get(outcome_id))

    @app.route("/api/attendance/<int:outcome_id>", methods=["PUT"], endpoint="attendance_update")
    def update_entry(outcome_id: int):
        body = json_body()
        records = service.update_entry(
            outcome_id,
            check_in=parse_hhmm(require_field(body, "check_in")),
            check_out=parse_hhmm(require_field(body, "check_out")),
            apply_rules=parse_bool(body.get("apply_rules"), default=True),
            worked_from_home=parse_bool(body.get("is_worked_from_home")),
            note=body.get("note"),
        )
        return ok({"records": records})

    @app.route("/api/attendance/<int:outcome_id>", methods=["DELETE"], endpoint="attendance_delete")
    def delete_entry(outcome_id: int):
        deleted = service.delete_entry(outcome_id)
        return ok({"deleted": deleted.outcome_id})

    @app.route("/api/attendance/<int:outcome_id>/status", methods=["PATCH"], endpoint="attendance_status")
    def update_status(outcome_id: int):
        body = json_body()
        return ok(service.update_approval_status(outcome_id, require_field(body, "status"), note=body.get("note")))

    @app.route("/api/attendance/<int:outcome_id>/adjust", methods=["PATCH"], endpoint="attendance_adjust")
    def adjust_hours(outcome_id: int):
        body = json_body()
        outcome = service.adjust_hours(
            outcome_id,
            deduction_minutes=body.get("deduction_minutes"),
            extra_minutes=body.get("extra_minutes"),
            reason=body.get("reason"),
            adjusted_by=parse_int(body.get("adjusted_by"), "adjusted_by"),
            is_half_day=parse_bool(body["is_half_day"]) if "is_half_day" in body else None,
        )
        return ok(outcome)

    @app.route("/api/attendance/<int:outcome_id>/ignore-deduction", methods=["PATCH"], endpoint="attendance_ignore")
    def ignore_deduction(outcome_id: int):
        body = json_body()
        return ok(service.toggle_ignore_deduction(outcome_id, parse_bool(body.get("ignore"), default=True)))

    @app.route("/api/attendance/<int:outcome_id>/description", methods=["PATCH"], endpoint="attendance_description")
    def update_description(outcome_id: int):
        body = json_body()
        outcome = service.update_description(
            outcome_id,
            parse_int(require_field(body, "user_id"), "user_id"),
            body.get("description") or "",
        )
        return ok(outcome)
