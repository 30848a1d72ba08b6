from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, time, timedelta
from typing import Optional

from ..common.datetime_utils import at, is_weekend, minutes_between
from ..core.constants import HOLIDAY_BONUS_MINUTES
from ..core.enums import DayKind
from ..attendance.model import AttendanceOutcome
from ..attendance.repository import OutcomeRepository
from ..policy.service import PolicyService

logger = logging.getLogger(__name__)


class HolidayCalculator:
    """Holiday lookup and the holiday bonus overlay on top of an engine result."""

    def __init__(self, policy: PolicyService, outcomes: OutcomeRepository):
        self._policy = policy
        self._outcomes = outcomes

    def is_holiday(self, day: date) -> bool:
        return self._policy.get_active().holiday_on(day) is not None

    def day_kind(self, day: date) -> DayKind:
        # weekend wins over holiday
        if is_weekend(day):
            return DayKind.WEEKEND
        if self.is_holiday(day):
            return DayKind.HOLIDAY
        return DayKind.NORMAL

    @staticmethod
    def bonus(day: date, office_end: time, check_in: time, check_out: time) -> int:
        """Core minutes (check-in up to the earlier of check-out and office end) plus the flat bonus."""

        start = at(day, check_in)
        end = at(day, check_out)
        if end < start:
            end += timedelta(days=1)
        capped = min(end, at(day, office_end))
        return max(0, minutes_between(start, capped)) + HOLIDAY_BONUS_MINUTES

    def overlay(
        self,
        day: date,
        office_end: Optional[time],
        check_in: Optional[time],
        check_out: Optional[time],
        *,
        is_weekend_work: bool,
    ) -> tuple[bool, int]:
        """(is_holiday_work, holiday_bonus_minutes) for a session on `day`."""

        if is_weekend_work or self.day_kind(day) is not DayKind.HOLIDAY:
            return False, 0
        if office_end is None or check_in is None or check_out is None:
            return False, 0
        return True, self.bonus(day, office_end, check_in, check_out)

    def apply_to(self, outcome: AttendanceOutcome) -> AttendanceOutcome:
        is_holiday_work, bonus = self.overlay(
            outcome.work_date,
            outcome.office_end,
            outcome.check_in,
            outcome.check_out,
            is_weekend_work=outcome.is_weekend_work,
        )
        return replace(outcome, is_holiday_work=is_holiday_work, holiday_bonus_minutes=bonus)

    def recalculate_for_date(self, day: date) -> int:
        """Recompute the overlay of every non-weekend outcome on `day`; returns how many changed."""

        updated = 0
        for outcome in self._outcomes.list_for_date(day):
            if outcome.is_weekend_work or outcome.check_in is None or outcome.check_out is None:
                continue
            changed = self.apply_to(outcome)
            if changed != outcome:
                self._outcomes.update(changed)
                updated += 1

        logger.info("Holiday overlay recalculated for %s: %s records updated", day, updated)
        return updated

    def clear_for_date(self, day: date) -> int:
        updated = 0
        for outcome in self._outcomes.list_for_date(day):
            if not outcome.is_holiday_work:
                continue
            self._outcomes.update(replace(outcome, is_holiday_work=False, holiday_bonus_minutes=0))
            updated += 1

        logger.info("Holiday overlay cleared for %s: %s records updated", day, updated)
        return updated
