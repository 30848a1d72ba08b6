from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.exceptions import ConflictError, NotFoundError
from ..policy.model import Holiday
from ..policy.repository import PolicyRepository
from ..policy.service import PolicyService
from .calculator import HolidayCalculator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HolidayChange:
    holiday: Holiday
    records_updated: int


class HolidayService:
    """Holiday calendar of the active policy version.

    Adding or removing a date re-walks the outcomes already stored for it.
    """

    def __init__(
        self,
        policy: PolicyService,
        policies: PolicyRepository,
        calculator: HolidayCalculator,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._policy = policy
        self._policies = policies
        self._calculator = calculator
        self._clock = clock

    def list(self) -> Sequence[Holiday]:
        return sorted(self._policy.get_active().holidays, key=lambda h: h.day)

    def add(self, day: date, name: str, *, description: str = "", added_by: Optional[int] = None) -> HolidayChange:
        active = self._policy.get_active()
        if active.holiday_on(day) is not None:
            raise ConflictError(f"A holiday already exists on {day.isoformat()}")

        holiday = Holiday(
            day=day,
            name=require_non_empty(name, "name"),
            description=description or "",
            added_by=added_by,
            added_at=self._clock(),
        )
        self._save(active.settings_id, active.holidays + (holiday,))
        logger.info("Holiday %s added on %s", holiday.name, day)

        updated = self._calculator.recalculate_for_date(day)
        holiday = replace(holiday, recalculated=True)
        self._save(active.settings_id, active.holidays + (holiday,))
        return HolidayChange(holiday=holiday, records_updated=updated)

    def update(self, day: date, *, name: Optional[str] = None, description: Optional[str] = None) -> Holiday:
        active = self._policy.get_active()
        existing = active.holiday_on(day)
        if existing is None:
            raise NotFoundError(f"No holiday on {day.isoformat()}")

        changed = replace(
            existing,
            name=require_non_empty(name, "name") if name is not None else existing.name,
            description=description if description is not None else existing.description,
        )
        self._save(active.settings_id, tuple(changed if h.day == day else h for h in active.holidays))
        return changed

    def remove(self, day: date) -> HolidayChange:
        active = self._policy.get_active()
        existing = active.holiday_on(day)
        if existing is None:
            raise NotFoundError(f"No holiday on {day.isoformat()}")

        self._save(active.settings_id, tuple(h for h in active.holidays if h.day != day))
        logger.info("Holiday %s removed from %s", existing.name, day)
        return HolidayChange(holiday=existing, records_updated=self._calculator.clear_for_date(day))

    def _save(self, settings_id: int, holidays) -> None:
        self._policies.replace_holidays(settings_id, tuple(sorted(holidays, key=lambda h: h.day)))
