from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import BufferCounterRecord
from .repository import CounterRepository

_COLUMNS = "user_id, year, month, usage_count, abuse_reached, usage_dates"


def _to_record(r: dict) -> BufferCounterRecord:
    dates = load_json(r.get("usage_dates"), [])
    return BufferCounterRecord(
        user_id=int(r["user_id"]),
        year=int(r["year"]),
        month=int(r["month"]),
        usage_count=int(r["usage_count"]),
        abuse_reached=bool(r["abuse_reached"]),
        usage_dates=tuple(sorted(date.fromisoformat(d) for d in dates)),
    )


class MySQLCounterRepository(CounterRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, user_id: int, year: int, month: int) -> Optional[BufferCounterRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM buffer_counters WHERE user_id=%s AND year=%s AND month=%s",
                (int(user_id), int(year), int(month)),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create(self, record: BufferCounterRecord) -> BufferCounterRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            # INSERT IGNORE keeps the (user, year, month) key unique under concurrent first use
            cur.execute(
                """
                INSERT IGNORE INTO buffer_counters(user_id, year, month, usage_count, abuse_reached, usage_dates)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    record.user_id,
                    record.year,
                    record.month,
                    record.usage_count,
                    int(record.abuse_reached),
                    dump_json([d.isoformat() for d in record.usage_dates]),
                ),
            )
            cur.execute(
                f"SELECT {_COLUMNS} FROM buffer_counters WHERE user_id=%s AND year=%s AND month=%s",
                (record.user_id, record.year, record.month),
            )
            return _to_record(fetchone(cur))

    def save(self, record: BufferCounterRecord) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE buffer_counters
                SET usage_count=%s, abuse_reached=%s, usage_dates=%s
                WHERE user_id=%s AND year=%s AND month=%s
                """,
                (
                    record.usage_count,
                    int(record.abuse_reached),
                    dump_json([d.isoformat() for d in record.usage_dates]),
                    record.user_id,
                    record.year,
                    record.month,
                ),
            )

    def history(self, user_id: int, limit: int) -> Sequence[BufferCounterRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM buffer_counters
                WHERE user_id=%s
                ORDER BY year DESC, month DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_month(self, year: int, month: int) -> Sequence[BufferCounterRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM buffer_counters
                WHERE year=%s AND month=%s
                ORDER BY usage_count DESC
                """,
                (int(year), int(month)),
            )
            return [_to_record(r) for r in fetchall(cur)]
