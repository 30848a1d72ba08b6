from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import ApprovalStatus, EntryType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    dump_json,
    fetchall,
    fetchone,
    load_json,
    normalize_mysql_date,
    normalize_mysql_time,
)
from ..policy.model import SettingsSnapshot
from .model import Adjustment, AttendanceOutcome, EntryDetails, RuleFlags
from .repository import OutcomeRepository

_COLUMNS = """
    outcome_id, user_id, team_id, work_date, check_in, check_out, office_start, office_end,
    total_work_minutes, deduction_minutes, extra_minutes, rule_flags, buffer_count_snapshot,
    buffer_incremented_this_day, settings_snapshot, is_weekend_work, is_holiday_work,
    holiday_bonus_minutes, approval_status, payout_multiplier, adjustment_history, entry_no,
    entry_type, note, description, ignore_deduction, is_half_day, is_absent, is_paid_leave,
    is_manual_entry, calculated_at
"""

_WRITE_COLUMNS = [c.strip() for c in _COLUMNS.split(",") if c.strip() != "outcome_id"]


def _snapshot_to_json(snapshot: Optional[SettingsSnapshot]) -> Optional[str]:
    if snapshot is None:
        return None
    data = asdict(snapshot)
    data["effective_from"] = snapshot.effective_from.isoformat() if snapshot.effective_from else None
    return dump_json(data)


def _snapshot_from_json(value) -> Optional[SettingsSnapshot]:
    data = load_json(value, None)
    if not data:
        return None
    effective_from = data.get("effective_from")
    return SettingsSnapshot(
        buffer_minutes=int(data["buffer_minutes"]),
        safe_zone_minutes=int(data["safe_zone_minutes"]),
        buffer_abuse_limit=int(data["buffer_abuse_limit"]),
        reduced_buffer_minutes=int(data["reduced_buffer_minutes"]),
        settings_version=int(data["settings_version"]),
        effective_from=datetime.fromisoformat(effective_from) if effective_from else None,
    )


def _history_to_json(history: Sequence[Adjustment]) -> str:
    return dump_json([{**asdict(a), "adjusted_at": a.adjusted_at.isoformat()} for a in history])


def _history_from_json(value) -> tuple[Adjustment, ...]:
    return tuple(
        Adjustment(
            reason=a["reason"],
            from_deduction=int(a["from_deduction"]),
            to_deduction=int(a["to_deduction"]),
            from_extra=int(a["from_extra"]),
            to_extra=int(a["to_extra"]),
            adjusted_by=a.get("adjusted_by"),
            adjusted_at=datetime.fromisoformat(a["adjusted_at"]),
        )
        for a in load_json(value, [])
    )


def _to_outcome(r: dict) -> AttendanceOutcome:
    entry = None
    if r.get("entry_no"):
        entry = EntryDetails(entry_no=int(r["entry_no"]), entry_type=EntryType(r["entry_type"]))

    return AttendanceOutcome(
        outcome_id=int(r["outcome_id"]),
        user_id=int(r["user_id"]),
        team_id=int(r["team_id"]),
        work_date=normalize_mysql_date(r["work_date"]),
        check_in=normalize_mysql_time(r.get("check_in")),
        check_out=normalize_mysql_time(r.get("check_out")),
        office_start=normalize_mysql_time(r.get("office_start")),
        office_end=normalize_mysql_time(r.get("office_end")),
        total_work_minutes=int(r["total_work_minutes"]),
        deduction_minutes=int(r["deduction_minutes"]),
        extra_minutes=int(r["extra_minutes"]),
        flags=RuleFlags(**load_json(r.get("rule_flags"), {})),
        buffer_count_snapshot=int(r["buffer_count_snapshot"]),
        buffer_incremented_this_day=bool(r["buffer_incremented_this_day"]),
        settings_snapshot=_snapshot_from_json(r.get("settings_snapshot")),
        is_weekend_work=bool(r["is_weekend_work"]),
        is_holiday_work=bool(r["is_holiday_work"]),
        holiday_bonus_minutes=int(r["holiday_bonus_minutes"]),
        approval_status=ApprovalStatus(r["approval_status"]),
        payout_multiplier=float(r["payout_multiplier"]),
        adjustment_history=_history_from_json(r.get("adjustment_history")),
        entry=entry,
        note=r.get("note"),
        description=r.get("description"),
        ignore_deduction=bool(r["ignore_deduction"]),
        is_half_day=bool(r["is_half_day"]),
        is_absent=bool(r["is_absent"]),
        is_paid_leave=bool(r["is_paid_leave"]),
        is_manual_entry=bool(r["is_manual_entry"]),
        calculated_at=r.get("calculated_at"),
    )


def _to_params(o: AttendanceOutcome) -> tuple:
    return (
        o.user_id,
        o.team_id,
        o.work_date,
        o.check_in,
        o.check_out,
        o.office_start,
        o.office_end,
        o.total_work_minutes,
        o.deduction_minutes,
        o.extra_minutes,
        dump_json(asdict(o.flags)),
        o.buffer_count_snapshot,
        int(o.buffer_incremented_this_day),
        _snapshot_to_json(o.settings_snapshot),
        int(o.is_weekend_work),
        int(o.is_holiday_work),
        o.holiday_bonus_minutes,
        o.approval_status.value,
        o.payout_multiplier,
        _history_to_json(o.adjustment_history),
        o.entry.entry_no if o.entry else None,
        o.entry.entry_type.value if o.entry else None,
        o.note,
        o.description,
        int(o.ignore_deduction),
        int(o.is_half_day),
        int(o.is_absent),
        int(o.is_paid_leave),
        int(o.is_manual_entry),
        o.calculated_at or datetime.now(),
    )


class MySQLOutcomeRepository(OutcomeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _select(self, where: str, params: tuple, order: str = "work_date, outcome_id") -> list[AttendanceOutcome]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_outcomes WHERE {where} ORDER BY {order}", params)
            return [_to_outcome(r) for r in fetchall(cur)]

    def exists_primary(self, user_id: int, work_date: date) -> bool:
        return self.get_primary(user_id, work_date) is not None

    def count_for_date(self, user_id: int, work_date: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM attendance_outcomes WHERE user_id=%s AND work_date=%s",
                (int(user_id), work_date),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def create(self, outcome: AttendanceOutcome) -> AttendanceOutcome:
        placeholders = ",".join(["%s"] * len(_WRITE_COLUMNS))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"INSERT INTO attendance_outcomes({', '.join(_WRITE_COLUMNS)}) VALUES({placeholders})",
                _to_params(outcome),
            )
            new_id = int(cur.lastrowid)
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_outcomes WHERE outcome_id=%s", (new_id,))
            return _to_outcome(fetchone(cur))

    def update(self, outcome: AttendanceOutcome) -> bool:
        assignments = ", ".join(f"{c}=%s" for c in _WRITE_COLUMNS)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE attendance_outcomes SET {assignments} WHERE outcome_id=%s",
                _to_params(outcome) + (int(outcome.outcome_id),),
            )
            return cur.rowcount > 0

    def get_by_id(self, outcome_id: int) -> Optional[AttendanceOutcome]:
        rows = self._select("outcome_id=%s", (int(outcome_id),))
        return rows[0] if rows else None

    def get_primary(self, user_id: int, work_date: date) -> Optional[AttendanceOutcome]:
        rows = self._select("user_id=%s AND work_date=%s AND entry_no IS NULL", (int(user_id), work_date))
        return rows[0] if rows else None

    def get_many(self, outcome_ids: Sequence[int]) -> Sequence[AttendanceOutcome]:
        ids = [int(i) for i in outcome_ids]
        if not ids:
            return []
        placeholders = ",".join(["%s"] * len(ids))
        return self._select(f"outcome_id IN ({placeholders})", tuple(ids))

    def list_for_user_between(self, user_id: int, start: date, end: date) -> Sequence[AttendanceOutcome]:
        return self._select("user_id=%s AND work_date BETWEEN %s AND %s", (int(user_id), start, end))

    def list_for_month(
        self,
        *,
        month: int,
        year: int,
        user_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> Sequence[AttendanceOutcome]:
        where = ["YEAR(work_date)=%s", "MONTH(work_date)=%s"]
        params: list = [int(year), int(month)]
        if user_id is not None:
            where.append("user_id=%s")
            params.append(int(user_id))
        if team_id is not None:
            where.append("team_id=%s")
            params.append(int(team_id))
        return self._select(" AND ".join(where), tuple(params))

    def list_for_date(self, work_date: date) -> Sequence[AttendanceOutcome]:
        return self._select("work_date=%s", (work_date,))

    def delete(self, outcome_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_outcomes WHERE outcome_id=%s", (int(outcome_id),))
            return cur.rowcount > 0
