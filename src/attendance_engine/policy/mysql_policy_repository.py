from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_date, normalize_mysql_time
from .model import Holiday, NewPolicy, PolicySettings
from .repository import PolicyRepository

_COLUMNS = """
    settings_id, version, buffer_minutes, reduced_buffer_minutes, safe_zone_minutes,
    buffer_abuse_limit, default_start, default_end, force_default_hours, is_active,
    effective_from, created_by, last_fetched_at
"""


class MySQLPolicyRepository(PolicyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _holidays(self, cur, settings_id: int) -> tuple[Holiday, ...]:
        cur.execute(
            """
            SELECT holiday_date, name, description, added_by, added_at, recalculated
            FROM policy_holidays
            WHERE settings_id=%s
            ORDER BY holiday_date
            """,
            (settings_id,),
        )
        return tuple(
            Holiday(
                day=normalize_mysql_date(r["holiday_date"]),
                name=r["name"],
                description=r.get("description") or "",
                added_by=r.get("added_by"),
                added_at=r.get("added_at"),
                recalculated=bool(r.get("recalculated")),
            )
            for r in fetchall(cur)
        )

    def _to_policy(self, cur, r: dict) -> PolicySettings:
        settings_id = int(r["settings_id"])
        return PolicySettings(
            settings_id=settings_id,
            version=int(r["version"]),
            buffer_minutes=int(r["buffer_minutes"]),
            reduced_buffer_minutes=int(r["reduced_buffer_minutes"]),
            safe_zone_minutes=int(r["safe_zone_minutes"]),
            buffer_abuse_limit=int(r["buffer_abuse_limit"]),
            default_start=normalize_mysql_time(r["default_start"]),
            default_end=normalize_mysql_time(r["default_end"]),
            force_default_hours=bool(r["force_default_hours"]),
            holidays=self._holidays(cur, settings_id),
            is_active=bool(r["is_active"]),
            effective_from=r.get("effective_from"),
            created_by=r.get("created_by"),
            last_fetched_at=r.get("last_fetched_at"),
        )

    def get_active(self) -> Optional[PolicySettings]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM policy_settings WHERE is_active=1 ORDER BY version DESC LIMIT 1")
            r = fetchone(cur)
            return self._to_policy(cur, r) if r else None

    def latest_version(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COALESCE(MAX(version), 0) AS v FROM policy_settings")
            r = fetchone(cur)
            return int(r["v"]) if r else 0

    def create(
        self,
        policy: NewPolicy,
        *,
        version: int,
        created_by: Optional[int],
        holidays: Sequence[Holiday] = (),
        last_fetched_at: Optional[datetime] = None,
    ) -> PolicySettings:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE policy_settings SET is_active=0 WHERE is_active=1")
            cur.execute(
                """
                INSERT INTO policy_settings(
                    version, buffer_minutes, reduced_buffer_minutes, safe_zone_minutes, buffer_abuse_limit,
                    default_start, default_end, force_default_hours, is_active, effective_from,
                    created_by, last_fetched_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,1,%s,%s,%s)
                """,
                (
                    int(version),
                    policy.buffer_minutes,
                    policy.reduced_buffer_minutes,
                    policy.safe_zone_minutes,
                    policy.buffer_abuse_limit,
                    policy.default_start,
                    policy.default_end,
                    int(policy.force_default_hours),
                    policy.effective_from or datetime.now(),
                    created_by,
                    last_fetched_at,
                ),
            )
            settings_id = int(cur.lastrowid)
            self._insert_holidays(cur, settings_id, holidays)
            cur.execute(f"SELECT {_COLUMNS} FROM policy_settings WHERE settings_id=%s", (settings_id,))
            return self._to_policy(cur, fetchone(cur))

    def history(self) -> Sequence[PolicySettings]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM policy_settings ORDER BY version DESC")
            rows = fetchall(cur)
            return [self._to_policy(cur, r) for r in rows]

    def replace_holidays(self, settings_id: int, holidays: Sequence[Holiday]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM policy_holidays WHERE settings_id=%s", (int(settings_id),))
            self._insert_holidays(cur, int(settings_id), holidays)

    def set_last_fetched(self, settings_id: int, at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE policy_settings SET last_fetched_at=%s WHERE settings_id=%s", (at, int(settings_id)))

    @staticmethod
    def _insert_holidays(cur, settings_id: int, holidays: Sequence[Holiday]) -> None:
        for h in holidays:
            cur.execute(
                """
                INSERT INTO policy_holidays(settings_id, holiday_date, name, description, added_by, added_at, recalculated)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (settings_id, h.day, h.name, h.description, h.added_by, h.added_at, int(h.recalculated)),
            )
