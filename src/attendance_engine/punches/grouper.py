from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable

from ..core.constants import WORKDAY_ROLLOVER_HOUR
from .model import PunchEvent, PunchGroup

logger = logging.getLogger(__name__)


class PunchGrouper:
    """Groups raw punches per (employee, work date).

    A punch before the rollover hour belongs to the previous day's session, so a
    shift that ends after midnight stays in one group.
    """

    def __init__(self, rollover_hour: int = WORKDAY_ROLLOVER_HOUR):
        self._rollover_hour = int(rollover_hour)

    def work_date_of(self, event: PunchEvent) -> date:
        day = event.timestamp.date()
        if event.timestamp.hour < self._rollover_hour:
            return day - timedelta(days=1)
        return day

    def group(self, events: Iterable[PunchEvent]) -> list[PunchGroup]:
        """Groups with at least two distinct punches, ordered by work date then employee."""

        buckets: dict[tuple[str, date], set] = defaultdict(set)
        for event in events:
            if not event.employee_id:
                continue
            buckets[(event.employee_id, self.work_date_of(event))].add(event.timestamp)

        groups = []
        dropped = 0
        for (employee_id, work_date), stamps in buckets.items():
            if len(stamps) < 2:
                dropped += 1
                continue
            groups.append(PunchGroup(employee_id=employee_id, work_date=work_date, times=tuple(sorted(stamps))))

        groups.sort(key=lambda g: (g.work_date, g.employee_id))
        logger.debug("Grouped punches into %s sessions (%s single-punch groups dropped)", len(groups), dropped)
        return groups
