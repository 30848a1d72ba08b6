from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_time
from .model import Employee, Team
from .repository import UserDirectory

_EMPLOYEE_COLUMNS = "user_id, full_name, biometric_id, office_start, office_end, payout_multiplier, is_active"


def _to_employee(r: dict) -> Employee:
    return Employee(
        user_id=int(r["user_id"]),
        full_name=r["full_name"],
        biometric_id=r.get("biometric_id"),
        office_start=normalize_mysql_time(r.get("office_start")),
        office_end=normalize_mysql_time(r.get("office_end")),
        payout_multiplier=float(r.get("payout_multiplier") or 1),
        is_active=bool(r.get("is_active", 1)),
    )


class MySQLUserDirectory(UserDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_EMPLOYEE_COLUMNS} FROM employees WHERE user_id=%s", (int(user_id),))
            r = fetchone(cur)
            return _to_employee(r) if r else None

    def find_by_biometric_id(self, biometric_id: str) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_EMPLOYEE_COLUMNS} FROM employees WHERE biometric_id=%s AND is_active=1",
                (str(biometric_id),),
            )
            r = fetchone(cur)
            return _to_employee(r) if r else None

    def team_of(self, user_id: int) -> Optional[Team]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT t.team_id, t.team_name
                FROM teams t
                JOIN team_members m ON m.team_id = t.team_id
                WHERE m.user_id=%s
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Team(team_id=int(r["team_id"]), team_name=r["team_name"])

    def list_active(self) -> Sequence[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_EMPLOYEE_COLUMNS} FROM employees WHERE is_active=1 ORDER BY user_id")
            return [_to_employee(r) for r in fetchall(cur)]
