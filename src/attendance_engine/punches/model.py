from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True, order=True)
class PunchEvent:
    """One raw biometric punch (device-local wall clock, no timezone)."""

    employee_id: str
    timestamp: datetime


@dataclass(frozen=True)
class PunchGroup:
    """All punches of one employee that belong to one work date, ascending."""

    employee_id: str
    work_date: date
    times: tuple[datetime, ...]

    @property
    def check_in(self) -> datetime:
        return self.times[0]

    @property
    def check_out(self) -> datetime:
        return self.times[-1]

    @property
    def starts_next_day(self) -> bool:
        return self.check_in.date() != self.work_date

    @property
    def ends_next_day(self) -> bool:
        return self.check_out.date() != self.work_date
