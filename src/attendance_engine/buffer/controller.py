from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.http import ok, parse_int
from ..container import Container


def register(app: Flask, container: Container) -> None:
    counter = container.buffer_counter

    @app.route("/api/buffer/report", methods=["GET"], endpoint="buffer_report")
    def monthly_report():
        today = now_local().date()
        records = counter.monthly_report(
            month=parse_int(request.args.get("month"), "month", today.month),
            year=parse_int(request.args.get("year"), "year", today.year),
        )
        return ok({"counters": records})

    @app.route("/api/buffer/rollover", methods=["POST"], endpoint="buffer_rollover")
    def rollover():
        user_ids = [e.user_id for e in container.users_repo.list_active()]
        return ok(counter.open_month(user_ids, now_local().date()))

    @app.route("/api/buffer/<int:user_id>", methods=["GET"], endpoint="buffer_current")
    def current(user_id: int):
        raw = request.args.get("date")
        on = parse_iso_date(raw) if raw else now_local().date()
        return ok(counter.get(user_id, on))

    @app.route("/api/buffer/<int:user_id>/history", methods=["GET"], endpoint="buffer_history")
    def history(user_id: int):
        limit = parse_int(request.args.get("limit"), "limit", 12)
        return ok({"counters": counter.history(user_id, limit=limit)})
