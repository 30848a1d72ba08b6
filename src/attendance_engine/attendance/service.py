from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from typing import Callable, Optional, Sequence

from ..buffer.model import BufferCounterRecord, abuse_transition
from ..buffer.service import BufferCounter
from ..common.datetime_utils import is_weekend, month_key, now_local, to_wall_clock
from ..common.validators import require_non_negative
from ..core.constants import DAY_END, DAY_START, MAX_ENTRIES_PER_DAY
from ..core.enums import ApprovalStatus, BufferTransition, EntryType, LeaveType
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..holidays.calculator import HolidayCalculator
from ..policy.model import PolicySettings
from ..policy.service import PolicyService
from ..punches.model import PunchGroup
from ..users.model import Employee, Team
from ..users.repository import UserDirectory
from .engine import AttendanceRuleEngine, Calculation, Segment, SessionInput
from .model import Adjustment, AttendanceOutcome, EntryDetails, RuleFlags
from .reconciler import ReconcileResult, RetroactiveReconciler
from .repository import OutcomeRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BufferImpact:
    user_id: int
    usage_count: int
    abuse_reached: bool
    transition: BufferTransition
    reconciled: ReconcileResult


@dataclass(frozen=True)
class BulkStatusResult:
    processed: int
    weekend_skipped: int
    buffer_impact: tuple[BufferImpact, ...]


@dataclass(frozen=True)
class _Context:
    """Everything a calculation needs besides the session itself."""

    employee: Employee
    team: Team
    policy: PolicySettings
    office_start: time
    office_end: time


class AttendanceService:
    """Creates and maintains attendance outcomes.

    Every path that can move a buffer counter (create, edit, approval change, delete,
    leave marking) compares the abuse flag before and after and hands the transition
    to the reconciler before returning.
    """

    def __init__(
        self,
        outcomes: OutcomeRepository,
        users: UserDirectory,
        policy: PolicyService,
        buffer: BufferCounter,
        holidays: HolidayCalculator,
        reconciler: RetroactiveReconciler,
        *,
        engine: AttendanceRuleEngine | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._outcomes = outcomes
        self._users = users
        self._policy = policy
        self._buffer = buffer
        self._holidays = holidays
        self._reconciler = reconciler
        self._engine = engine or AttendanceRuleEngine()
        self._clock = clock

    # --- creation -----------------------------------------------------

    def record_manual_entry(
        self,
        user_id: int,
        work_date: date,
        check_in: time,
        check_out: time,
        *,
        apply_rules: bool = True,
        worked_from_home: bool = False,
        note: Optional[str] = None,
    ) -> list[AttendanceOutcome]:
        """Admin-entered session; a check-out earlier than the check-in ends on the next day."""

        employee, team = self._resolve_user(user_id)
        return self._create_session(
            self._context(employee, team),
            work_date,
            check_in,
            check_out,
            ends_next_day=check_out < check_in,
            apply_rules=apply_rules,
            worked_from_home=worked_from_home,
            entry_type=EntryType.MANUAL,
            note=note,
        )

    def record_punch_group(self, group: PunchGroup) -> list[AttendanceOutcome]:
        employee = self._users.find_by_biometric_id(group.employee_id)
        if employee is None:
            raise NotFoundError(f"No active employee with biometric id {group.employee_id}")
        if group.starts_next_day:
            raise ValidationError(
                f"Punches of {group.employee_id} for {group.work_date} all fall after midnight; no session to evaluate"
            )
        team = self._team_of(employee)

        return self._create_session(
            self._context(employee, team),
            group.work_date,
            to_wall_clock(group.check_in),
            to_wall_clock(group.check_out),
            ends_next_day=group.ends_next_day,
            apply_rules=True,
            worked_from_home=False,
            entry_type=EntryType.AUTOMATIC,
        )

    def add_additional_entry(
        self,
        user_id: int,
        work_date: date,
        check_in: time,
        check_out: time,
        *,
        worked_from_home: bool = False,
        note: Optional[str] = None,
    ) -> list[AttendanceOutcome]:
        """A 2nd/3rd session on a date: no rules, every minute counts as extra."""

        employee, team = self._resolve_user(user_id)
        ctx = self._context(employee, team)
        session = SessionInput.from_clock(
            work_date,
            check_in,
            check_out,
            office_start=ctx.office_start,
            office_end=ctx.office_end,
            apply_rules=False,
            worked_from_home=worked_from_home,
            team_name=team.team_name,
        )
        calc = self._engine.calculate(session, ctx.policy.snapshot(), payout_multiplier=employee.payout_multiplier)

        created = []
        for segment in calc.segments:
            entry = EntryDetails(entry_no=self._next_entry_no(employee.user_id, segment.work_date), entry_type=EntryType.MANUAL)
            outcome = self._build(ctx, segment, entry=entry, is_manual=True, note=note)
            created.append(self._outcomes.create(outcome))

        logger.info("Additional entry recorded for user %s on %s", employee.user_id, work_date)
        return created

    def update_entry(
        self,
        outcome_id: int,
        *,
        check_in: time,
        check_out: time,
        apply_rules: bool = True,
        worked_from_home: bool = False,
        note: Optional[str] = None,
    ) -> list[AttendanceOutcome]:
        """Re-evaluate a primary outcome with new times.

        An edit that now crosses midnight replaces the record with a split pair.
        """

        original = self._get_outcome(outcome_id)
        if not original.is_primary:
            raise ValidationError("Additional entries cannot be re-evaluated; delete and add them again")

        employee, team = self._resolve_user(original.user_id)
        ctx = self._context(employee, team)
        work_date = original.work_date
        calc, counter = self._calculate(
            ctx,
            work_date,
            check_in,
            check_out,
            ends_next_day=check_out < check_in,
            apply_rules=apply_rules,
            worked_from_home=worked_from_home,
            holds_credit=original.buffer_incremented_this_day,
        )

        transition = BufferTransition.NONE
        incremented = original.buffer_incremented_this_day
        if calc.increment_buffer and not original.buffer_incremented_this_day:
            counter, transition = self._increment(employee.user_id, work_date)
            incremented = True
        elif original.buffer_incremented_this_day and not calc.increment_buffer:
            counter, transition = self._decrement(employee.user_id, work_date)
            incremented = False

        count = counter.usage_count if counter else 0
        self._drop_continuation(original)
        if calc.is_overnight:
            self._outcomes.delete(original.outcome_id)
            results = self._persist(
                ctx,
                calc,
                entry_type=EntryType.MANUAL,
                is_manual=True,
                note=note if note is not None else original.note,
                incremented=incremented,
                count=count,
            )
            logger.info("Outcome %s now crosses midnight, replaced by split records", original.outcome_id)
        else:
            fresh = self._build(
                ctx,
                calc.primary,
                entry=None,
                is_manual=True,
                note=note if note is not None else original.note,
                incremented=incremented,
                count=count,
            )
            updated = replace(
                fresh,
                outcome_id=original.outcome_id,
                approval_status=original.approval_status,
                adjustment_history=original.adjustment_history,
                description=original.description,
                ignore_deduction=original.ignore_deduction,
                is_half_day=original.is_half_day,
            )
            self._outcomes.update(updated)
            results = [updated]

        self._reconciler.handle(transition, employee.user_id, work_date)
        return [self._outcomes.get_by_id(o.outcome_id) or o for o in results]

    # --- approval -----------------------------------------------------

    def update_approval_status(
        self,
        outcome_id: int,
        status: ApprovalStatus | str,
        *,
        note: Optional[str] = None,
    ) -> AttendanceOutcome:
        status = self._coerce_status(status)
        outcome = self._get_outcome(outcome_id)

        updated, transition = self._apply_status(outcome, status, note)
        self._outcomes.update(updated)
        self._reconciler.handle(transition, outcome.user_id, outcome.work_date)

        logger.info("Outcome %s: %s -> %s", outcome_id, outcome.approval_status.value, status.value)
        return self._outcomes.get_by_id(outcome_id) or updated

    def bulk_update_status(
        self,
        outcome_ids: Sequence[int],
        status: ApprovalStatus | str,
        *,
        note: Optional[str] = None,
    ) -> BulkStatusResult:
        """Same side effects as single updates, replayed per user in date order.

        Rejected as a whole when the records span more than one calendar month.
        """

        status = self._coerce_status(status)
        ids = [int(i) for i in outcome_ids]
        if not ids:
            raise ValidationError("No outcome ids given")

        records = list(self._outcomes.get_many(ids))
        missing = set(ids) - {r.outcome_id for r in records}
        if missing:
            raise NotFoundError(f"Outcomes not found: {sorted(missing)}")

        if len({month_key(r.work_date) for r in records}) > 1:
            raise ConflictError("Bulk update cannot span multiple months; buffer counters are tracked per month")

        records.sort(key=lambda r: (r.work_date, r.outcome_id))
        by_user: OrderedDict[int, list[AttendanceOutcome]] = OrderedDict()
        for r in records:
            by_user.setdefault(r.user_id, []).append(r)

        reference = records[0].work_date
        processed = 0
        weekend_skipped = 0
        impacts = []
        for user_id, user_records in by_user.items():
            touches_buffer = any(not r.is_weekend_work and r.flags.is_buffer_used for r in user_records)
            before = self._buffer.get(user_id, reference) if touches_buffer else None

            for r in user_records:
                if r.is_weekend_work:
                    weekend_skipped += 1
                updated, _ = self._apply_status(r, status, note)
                self._outcomes.update(updated)
                processed += 1

            if before is None:
                continue
            after = self._buffer.get(user_id, reference)
            transition = abuse_transition(before, after)
            reconciled = self._reconciler.handle(transition, user_id, reference)
            impacts.append(
                BufferImpact(
                    user_id=user_id,
                    usage_count=after.usage_count,
                    abuse_reached=after.abuse_reached,
                    transition=transition,
                    reconciled=reconciled,
                )
            )

        logger.info("Bulk status %s applied to %s outcomes (%s weekend)", status.value, processed, weekend_skipped)
        return BulkStatusResult(processed=processed, weekend_skipped=weekend_skipped, buffer_impact=tuple(impacts))

    # --- maintenance --------------------------------------------------

    def delete_entry(self, outcome_id: int) -> AttendanceOutcome:
        outcome = self._get_outcome(outcome_id)
        self._drop_continuation(outcome)
        self._outcomes.delete(outcome.outcome_id)

        if outcome.buffer_incremented_this_day and not outcome.is_weekend_work:
            _, transition = self._decrement(outcome.user_id, outcome.work_date)
            self._reconciler.handle(transition, outcome.user_id, outcome.work_date)

        logger.info("Outcome %s of user %s on %s deleted", outcome_id, outcome.user_id, outcome.work_date)
        return outcome

    def adjust_hours(
        self,
        outcome_id: int,
        *,
        deduction_minutes: Optional[int] = None,
        extra_minutes: Optional[int] = None,
        reason: Optional[str] = None,
        adjusted_by: Optional[int] = None,
        is_half_day: Optional[bool] = None,
    ) -> AttendanceOutcome:
        """Direct override of the computed minutes; every change is appended to the history."""

        outcome = self._get_outcome(outcome_id)
        deduction = outcome.deduction_minutes
        if deduction_minutes is not None:
            deduction = require_non_negative(deduction_minutes, "deduction_minutes")
        extra = outcome.extra_minutes
        if extra_minutes is not None:
            extra = require_non_negative(extra_minutes, "extra_minutes")

        adjustment = Adjustment(
            reason=(reason or "").strip() or "Manual adjustment",
            from_deduction=outcome.deduction_minutes,
            to_deduction=deduction,
            from_extra=outcome.extra_minutes,
            to_extra=extra,
            adjusted_by=adjusted_by,
            adjusted_at=self._clock(),
        )
        updated = replace(
            outcome,
            deduction_minutes=deduction,
            extra_minutes=extra,
            flags=replace(outcome.flags, has_deduction=deduction > 0, has_extra_hours=extra > 0),
            adjustment_history=outcome.adjustment_history + (adjustment,),
            is_half_day=outcome.is_half_day if is_half_day is None else bool(is_half_day),
        )
        self._outcomes.update(updated)
        return updated

    def mark_leave(
        self,
        user_id: int,
        work_date: date,
        leave_type: LeaveType | str,
        *,
        note: Optional[str] = None,
    ) -> AttendanceOutcome:
        """Zero-calculation record for a leave or absence; the engine is not involved."""

        try:
            leave_type = LeaveType(leave_type)
        except ValueError:
            raise ValidationError(f"Unknown leave type: {leave_type!r}")

        employee, team = self._resolve_user(user_id)
        cleared = dict(
            check_in=None,
            check_out=None,
            total_work_minutes=0,
            deduction_minutes=0,
            extra_minutes=0,
            flags=RuleFlags(no_rules_applied=True),
            buffer_incremented_this_day=False,
            is_holiday_work=False,
            holiday_bonus_minutes=0,
            is_absent=leave_type == LeaveType.ABSENT,
            is_paid_leave=leave_type == LeaveType.LEAVE,
            calculated_at=self._clock(),
        )

        existing = self._outcomes.get_primary(employee.user_id, work_date)
        if existing is not None:
            self._drop_continuation(existing)
            updated = replace(existing, note=note if note is not None else existing.note, **cleared)
            self._outcomes.update(updated)
            if existing.buffer_incremented_this_day and not existing.is_weekend_work:
                _, transition = self._decrement(employee.user_id, work_date)
                self._reconciler.handle(transition, employee.user_id, work_date)
            logger.info("Outcome %s marked as %s", existing.outcome_id, leave_type.value)
            return self._outcomes.get_by_id(existing.outcome_id) or updated

        created = self._outcomes.create(
            AttendanceOutcome(
                outcome_id=None,
                user_id=employee.user_id,
                team_id=team.team_id,
                work_date=work_date,
                office_start=employee.office_start,
                office_end=employee.office_end,
                approval_status=ApprovalStatus.NA,
                payout_multiplier=0,
                note=note,
                **cleared,
            )
        )
        logger.info("User %s marked as %s on %s", employee.user_id, leave_type.value, work_date)
        return created

    def toggle_ignore_deduction(self, outcome_id: int, ignore: bool) -> AttendanceOutcome:
        updated = replace(self._get_outcome(outcome_id), ignore_deduction=bool(ignore))
        self._outcomes.update(updated)
        return updated

    def update_description(self, outcome_id: int, user_id: int, description: str) -> AttendanceOutcome:
        """Only the owner of a record may describe it."""

        outcome = self._get_outcome(outcome_id)
        if outcome.user_id != int(user_id):
            raise ValidationError("Only the owner of an attendance record can update its description")
        updated = replace(outcome, description=(description or "").strip() or None)
        self._outcomes.update(updated)
        return updated

    # --- queries ------------------------------------------------------

    def get(self, outcome_id: int) -> AttendanceOutcome:
        return self._get_outcome(outcome_id)

    def list_for_user(self, user_id: int, start: date, end: date) -> Sequence[AttendanceOutcome]:
        if end < start:
            raise ValidationError("end must not be before start")
        return self._outcomes.list_for_user_between(int(user_id), start, end)

    def list_for_month(
        self,
        *,
        month: int,
        year: int,
        user_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> Sequence[AttendanceOutcome]:
        if not 1 <= int(month) <= 12:
            raise ValidationError("month must be between 1 and 12")
        return self._outcomes.list_for_month(month=int(month), year=int(year), user_id=user_id, team_id=team_id)

    # --- internals ----------------------------------------------------

    def _create_session(
        self,
        ctx: _Context,
        work_date: date,
        check_in: time,
        check_out: time,
        *,
        ends_next_day: bool,
        apply_rules: bool,
        worked_from_home: bool,
        entry_type: EntryType,
        note: Optional[str] = None,
    ) -> list[AttendanceOutcome]:
        user_id = ctx.employee.user_id
        if self._outcomes.exists_primary(user_id, work_date):
            raise ConflictError(f"Attendance already recorded for user {user_id} on {work_date.isoformat()}")

        calc, counter = self._calculate(
            ctx,
            work_date,
            check_in,
            check_out,
            ends_next_day=ends_next_day,
            apply_rules=apply_rules,
            worked_from_home=worked_from_home,
        )

        transition = BufferTransition.NONE
        if calc.increment_buffer:
            counter, transition = self._increment(user_id, work_date)

        created = self._persist(
            ctx,
            calc,
            entry_type=entry_type,
            is_manual=entry_type == EntryType.MANUAL,
            note=note,
            incremented=calc.increment_buffer,
            count=counter.usage_count if counter else 0,
        )
        self._reconciler.handle(transition, user_id, work_date)
        return created

    def _calculate(
        self,
        ctx: _Context,
        work_date: date,
        check_in: time,
        check_out: time,
        *,
        ends_next_day: bool,
        apply_rules: bool,
        worked_from_home: bool,
        holds_credit: bool = False,
    ) -> tuple[Calculation, Optional[BufferCounterRecord]]:
        rules = bool(apply_rules) and not is_weekend(work_date)
        counter = self._buffer.get(ctx.employee.user_id, work_date) if rules else None
        abused = counter.abuse_reached if counter else False
        if counter and holds_credit and counter.has_used_on(work_date):
            # the day is judged against the counter without its own use
            abused = counter.usage_count - 1 >= ctx.policy.buffer_abuse_limit

        session = SessionInput(
            work_date=work_date,
            check_in=check_in,
            check_out=check_out,
            office_start=ctx.office_start,
            office_end=ctx.office_end,
            ends_next_day=ends_next_day,
            apply_rules=rules,
            worked_from_home=worked_from_home,
            team_name=ctx.team.team_name,
        )
        calc = self._engine.calculate(
            session,
            ctx.policy.snapshot(),
            buffer_abused=abused,
            payout_multiplier=ctx.employee.payout_multiplier,
        )
        return calc, counter

    def _persist(
        self,
        ctx: _Context,
        calc: Calculation,
        *,
        entry_type: EntryType,
        is_manual: bool,
        note: Optional[str],
        incremented: bool,
        count: int,
    ) -> list[AttendanceOutcome]:
        primary = self._outcomes.create(
            self._build(ctx, calc.primary, entry=None, is_manual=is_manual, note=note, incremented=incremented, count=count)
        )
        created = [primary]

        tail = calc.continuation
        if tail is not None:
            entry = EntryDetails(entry_no=self._next_entry_no(ctx.employee.user_id, tail.work_date), entry_type=entry_type)
            created.append(self._outcomes.create(self._build(ctx, tail, entry=entry, is_manual=is_manual, note=note)))
        return created

    def _build(
        self,
        ctx: _Context,
        segment: Segment,
        *,
        entry: Optional[EntryDetails],
        is_manual: bool,
        note: Optional[str] = None,
        incremented: bool = False,
        count: int = 0,
    ) -> AttendanceOutcome:
        outcome = AttendanceOutcome(
            outcome_id=None,
            user_id=ctx.employee.user_id,
            team_id=ctx.team.team_id,
            work_date=segment.work_date,
            check_in=segment.check_in,
            check_out=segment.check_out,
            office_start=ctx.office_start,
            office_end=ctx.office_end,
            total_work_minutes=segment.total_work_minutes,
            deduction_minutes=segment.deduction_minutes,
            extra_minutes=segment.extra_minutes,
            flags=segment.flags,
            buffer_count_snapshot=count,
            buffer_incremented_this_day=incremented,
            settings_snapshot=ctx.policy.snapshot(),
            is_weekend_work=segment.is_weekend_work,
            payout_multiplier=segment.payout_multiplier,
            entry=entry,
            note=note,
            is_manual_entry=is_manual,
            calculated_at=self._clock(),
        )
        return self._holidays.apply_to(outcome)

    def _apply_status(
        self,
        outcome: AttendanceOutcome,
        status: ApprovalStatus,
        note: Optional[str],
    ) -> tuple[AttendanceOutcome, BufferTransition]:
        changed = replace(outcome, approval_status=status, note=note if note is not None else outcome.note)
        if outcome.is_weekend_work or not outcome.flags.is_buffer_used:
            return changed, BufferTransition.NONE

        entering = status == ApprovalStatus.REJECTED and outcome.approval_status != ApprovalStatus.REJECTED
        leaving = outcome.approval_status == ApprovalStatus.REJECTED and status != ApprovalStatus.REJECTED

        if entering and not outcome.buffer_incremented_this_day:
            if self._buffer.is_abused(outcome.user_id, outcome.work_date):
                return changed, BufferTransition.NONE
            counter, transition = self._increment(outcome.user_id, outcome.work_date)
            return replace(changed, buffer_incremented_this_day=True, buffer_count_snapshot=counter.usage_count), transition

        if leaving and outcome.buffer_incremented_this_day:
            counter, transition = self._decrement(outcome.user_id, outcome.work_date)
            return replace(changed, buffer_incremented_this_day=False, buffer_count_snapshot=counter.usage_count), transition

        return changed, BufferTransition.NONE

    def _increment(self, user_id: int, work_date: date) -> tuple[BufferCounterRecord, BufferTransition]:
        before = self._buffer.get(user_id, work_date)
        after = self._buffer.increment(user_id, work_date)
        return after, abuse_transition(before, after)

    def _decrement(self, user_id: int, work_date: date) -> tuple[BufferCounterRecord, BufferTransition]:
        before = self._buffer.get(user_id, work_date)
        after = self._buffer.decrement(user_id, work_date)
        return after, abuse_transition(before, after)

    def _continuation_of(self, outcome: AttendanceOutcome) -> Optional[AttendanceOutcome]:
        """The after-midnight half of an overnight primary, if it was split."""

        if not outcome.is_primary or outcome.check_out != DAY_END:
            return None
        for candidate in self._outcomes.list_for_date(outcome.work_date + timedelta(days=1)):
            if candidate.user_id == outcome.user_id and not candidate.is_primary and candidate.check_in == DAY_START:
                return candidate
        return None

    def _drop_continuation(self, outcome: AttendanceOutcome) -> None:
        tail = self._continuation_of(outcome)
        if tail is not None:
            self._outcomes.delete(tail.outcome_id)
            logger.info("Continuation %s of outcome %s removed", tail.outcome_id, outcome.outcome_id)

    def _next_entry_no(self, user_id: int, work_date: date) -> int:
        existing = self._outcomes.count_for_date(user_id, work_date)
        return min(max(existing + 1, 2), MAX_ENTRIES_PER_DAY)

    def _context(self, employee: Employee, team: Team) -> _Context:
        policy = self._policy.get_active()
        office_start, office_end = self._policy.office_hours_for(employee, policy)
        return _Context(employee=employee, team=team, policy=policy, office_start=office_start, office_end=office_end)

    def _resolve_user(self, user_id: int) -> tuple[Employee, Team]:
        employee = self._users.get_by_id(int(user_id))
        if employee is None:
            raise NotFoundError(f"User {user_id} not found")
        return employee, self._team_of(employee)

    def _team_of(self, employee: Employee) -> Team:
        team = self._users.team_of(employee.user_id)
        if team is None:
            raise NotFoundError(f"Team not found for user {employee.full_name}")
        return team

    def _get_outcome(self, outcome_id: int) -> AttendanceOutcome:
        outcome = self._outcomes.get_by_id(int(outcome_id))
        if outcome is None:
            raise NotFoundError(f"Attendance record {outcome_id} not found")
        return outcome

    @staticmethod
    def _coerce_status(status: ApprovalStatus | str) -> ApprovalStatus:
        try:
            return ApprovalStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown approval status: {status!r}")
