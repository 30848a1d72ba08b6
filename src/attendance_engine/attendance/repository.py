from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceOutcome


class OutcomeRepository(Protocol):
    def exists_primary(self, user_id: int, work_date: date) -> bool:
        raise NotImplementedError

    def count_for_date(self, user_id: int, work_date: date) -> int:
        """All outcomes (primary and additional) of a user on a date."""

        raise NotImplementedError

    def create(self, outcome: AttendanceOutcome) -> AttendanceOutcome:
        """Insert and return the outcome with its new id."""

        raise NotImplementedError

    def update(self, outcome: AttendanceOutcome) -> bool:
        raise NotImplementedError

    def get_by_id(self, outcome_id: int) -> Optional[AttendanceOutcome]:
        raise NotImplementedError

    def get_primary(self, user_id: int, work_date: date) -> Optional[AttendanceOutcome]:
        raise NotImplementedError

    def get_many(self, outcome_ids: Sequence[int]) -> Sequence[AttendanceOutcome]:
        raise NotImplementedError

    def list_for_user_between(self, user_id: int, start: date, end: date) -> Sequence[AttendanceOutcome]:
        """Ascending by work date, both ends inclusive."""

        raise NotImplementedError

    def list_for_month(
        self,
        *,
        month: int,
        year: int,
        user_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> Sequence[AttendanceOutcome]:
        raise NotImplementedError

    def list_for_date(self, work_date: date) -> Sequence[AttendanceOutcome]:
        raise NotImplementedError

    def delete(self, outcome_id: int) -> bool:
        raise NotImplementedError
