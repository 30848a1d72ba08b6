from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, time
from typing import Callable, Optional

from ..common.datetime_utils import first_day_of_previous_month, now_local
from ..core.exceptions import ConfigurationError, ConflictError, NotFoundError, UpstreamIOError, ValidationError
from ..policy.service import PolicyService
from ..punches.grouper import PunchGrouper
from ..punches.source import PunchSource
from .service import AttendanceService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunSummary:
    start: datetime
    end: datetime
    processed: int
    saved: int
    skipped: int


@dataclass(frozen=True)
class AutomationStats:
    total_processed: int = 0
    total_saved: int = 0
    total_skipped: int = 0
    last_run_time: Optional[datetime] = None


@dataclass
class AutomationState:
    is_running: bool = False
    last_fetch_time: Optional[datetime] = None
    last_error: Optional[str] = None
    stats: AutomationStats = field(default_factory=AutomationStats)


class AttendanceAutomation:
    """Batch run: fetch punches, group them, evaluate each group in date order.

    One run at a time per process. A failed fetch aborts the run and leaves the
    policy's fetch marker untouched, so the next run starts from the same point.
    """

    def __init__(
        self,
        source: PunchSource,
        attendance: AttendanceService,
        policy: PolicyService,
        *,
        grouper: PunchGrouper | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._source = source
        self._attendance = attendance
        self._policy = policy
        self._grouper = grouper or PunchGrouper()
        self._clock = clock
        self._lock = threading.Lock()
        self._state = AutomationState()

    @property
    def state(self) -> AutomationState:
        return replace(self._state)

    def default_window_start(self) -> datetime:
        last = self._policy.get_active().last_fetched_at
        if last is not None:
            return datetime.combine(last.date(), time(0, 0))
        return datetime.combine(first_day_of_previous_month(self._clock().date()), time(0, 0))

    def run(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> RunSummary:
        if not self._lock.acquire(blocking=False):
            raise ConflictError("Attendance automation is already running")

        try:
            self._state.is_running = True
            return self._run(start, end)
        finally:
            self._state.is_running = False
            self._lock.release()

    def _run(self, start: Optional[datetime], end: Optional[datetime]) -> RunSummary:
        end = end or self._clock()
        start = start or self.default_window_start()
        if start > end:
            raise ValidationError("start must not be after end")

        logger.info("Attendance automation started for %s .. %s", start, end)
        try:
            events = self._source.fetch(start, end)
        except UpstreamIOError as e:
            self._state.last_error = str(e)
            logger.error("Punch fetch failed, run aborted: %s", e)
            raise

        groups = self._grouper.group(events)
        saved = 0
        skipped = 0
        for group in groups:
            try:
                self._attendance.record_punch_group(group)
                saved += 1
            except (UpstreamIOError, ConfigurationError):
                raise
            except (NotFoundError, ConflictError, ValidationError) as e:
                skipped += 1
                logger.info("Skipped %s on %s: %s", group.employee_id, group.work_date, e)
            except Exception:
                skipped += 1
                logger.exception("Failed to record %s on %s", group.employee_id, group.work_date)

        self._policy.mark_fetched(end)
        stats = self._state.stats
        self._state.last_fetch_time = end
        self._state.last_error = None
        self._state.stats = AutomationStats(
            total_processed=stats.total_processed + len(events),
            total_saved=stats.total_saved + saved,
            total_skipped=stats.total_skipped + skipped,
            last_run_time=self._clock(),
        )

        logger.info(
            "Attendance automation finished: %s punches, %s sessions, %s saved, %s skipped",
            len(events),
            len(groups),
            saved,
            skipped,
        )
        return RunSummary(start=start, end=end, processed=len(events), saved=saved, skipped=skipped)
