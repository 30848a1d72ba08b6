from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import at, minutes_between
from ..core.enums import ApprovalStatus, BufferTransition
from ..policy.model import PolicySettings
from ..policy.service import PolicyService
from .model import AttendanceOutcome
from .repository import OutcomeRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileResult:
    examined: int = 0
    updated: int = 0
    failed: int = 0


class RetroactiveReconciler:
    """Re-walks one user's month after the buffer abuse flag changed.

    The only code path that rewrites outcomes other than the one being edited.
    Both directions are idempotent; a failing record is logged and the sweep goes on.
    """

    def __init__(self, outcomes: OutcomeRepository, policy: PolicyService):
        self._outcomes = outcomes
        self._policy = policy

    def handle(self, transition: BufferTransition, user_id: int, reference_date: date) -> ReconcileResult:
        if transition == BufferTransition.ABUSE_REACHED:
            return self.apply(user_id, reference_date)
        if transition == BufferTransition.ABUSE_CLEARED:
            return self.undo(user_id, reference_date)
        return ReconcileResult()

    def apply(self, user_id: int, reference_date: date) -> ReconcileResult:
        """Abuse reached: pending buffer days that did not consume a credit are judged by the reduced window."""

        policy = self._policy.get_active()
        candidates = [
            o
            for o in self._month_of(user_id, reference_date)
            if o.approval_status == ApprovalStatus.PENDING
            and not o.buffer_incremented_this_day
            and o.flags.is_buffer_used
        ]
        result = self._sweep(candidates, lambda o: self._escalate(o, policy))
        logger.info(
            "Buffer abuse reached for user %s in %04d-%02d: %s of %s records now late",
            user_id,
            reference_date.year,
            reference_date.month,
            result.updated,
            result.examined,
        )
        return result

    def undo(self, user_id: int, reference_date: date) -> ReconcileResult:
        """Abuse cleared: records computed under abuse are judged by the full window again."""

        policy = self._policy.get_active()
        candidates = [o for o in self._month_of(user_id, reference_date) if o.flags.is_buffer_abused]
        result = self._sweep(candidates, lambda o: self._relax(o, policy))
        logger.info(
            "Buffer abuse cleared for user %s in %04d-%02d: %s of %s records restored",
            user_id,
            reference_date.year,
            reference_date.month,
            result.updated,
            result.examined,
        )
        return result

    def _month_of(self, user_id: int, reference_date: date):
        return self._outcomes.list_for_month(month=reference_date.month, year=reference_date.year, user_id=user_id)

    def _sweep(
        self,
        candidates,
        recompute: Callable[[AttendanceOutcome], Optional[AttendanceOutcome]],
    ) -> ReconcileResult:
        updated = 0
        failed = 0
        for outcome in candidates:
            try:
                changed = recompute(outcome)
                if changed is None or changed == outcome:
                    continue
                self._outcomes.update(changed)
                updated += 1
                logger.debug(
                    "Reconciled outcome %s on %s: deduction %s -> %s, extra %s -> %s",
                    outcome.outcome_id,
                    outcome.work_date,
                    outcome.deduction_minutes,
                    changed.deduction_minutes,
                    outcome.extra_minutes,
                    changed.extra_minutes,
                )
            except Exception:
                failed += 1
                logger.exception("Failed to reconcile outcome %s", outcome.outcome_id)
        return ReconcileResult(examined=len(candidates), updated=updated, failed=failed)

    @staticmethod
    def _escalate(o: AttendanceOutcome, policy: PolicySettings) -> Optional[AttendanceOutcome]:
        if o.check_in is None or o.check_out is None or o.office_start is None or o.office_end is None:
            return None

        check_in = at(o.work_date, o.check_in)
        check_out = at(o.work_date, o.check_out)
        office_start = at(o.work_date, o.office_start)
        office_end = at(o.work_date, o.office_end)
        if check_in <= office_start + timedelta(minutes=policy.reduced_buffer_minutes):
            return None

        early_minutes = minutes_between(check_out, office_end) if o.flags.is_early_checkout else 0
        deduction = minutes_between(office_start, check_in) + early_minutes
        extra = max(0, minutes_between(office_end, check_out))
        return replace(
            o,
            deduction_minutes=deduction,
            extra_minutes=extra,
            flags=replace(
                o.flags,
                is_late=True,
                has_deduction=True,
                is_buffer_abused=True,
                has_extra_hours=extra > 0,
            ),
        )

    @staticmethod
    def _relax(o: AttendanceOutcome, policy: PolicySettings) -> Optional[AttendanceOutcome]:
        cleared = replace(o, flags=replace(o.flags, is_buffer_abused=False))
        if not o.flags.is_late or o.check_in is None or o.check_out is None or o.office_start is None or o.office_end is None:
            return cleared

        check_in = at(o.work_date, o.check_in)
        check_out = at(o.work_date, o.check_out)
        office_start = at(o.work_date, o.office_start)
        office_end = at(o.work_date, o.office_end)
        if check_in > office_start + timedelta(minutes=policy.buffer_minutes):
            return cleared

        early = o.flags.is_early_checkout
        deduction = minutes_between(check_out, office_end) if early else 0
        extra = 0
        if not early:
            extra = max(0, minutes_between(check_in, check_out) - minutes_between(office_start, office_end))
        return replace(
            o,
            deduction_minutes=deduction,
            extra_minutes=extra,
            flags=replace(
                o.flags,
                is_late=False,
                is_buffer_abused=False,
                is_buffer_used=True,
                is_safe_zone=False,
                has_deduction=deduction > 0,
                has_extra_hours=extra > 0,
            ),
        )
