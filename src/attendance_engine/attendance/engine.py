from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from typing import Optional

from ..common.datetime_utils import at, is_weekend, minutes_between
from ..core.constants import DAY_END, DAY_START, OPERATIONS_TEAM_NAME, WEEKEND_PAYOUT_MULTIPLIER
from ..core.enums import Arrival
from ..core.exceptions import ValidationError
from ..policy.model import SettingsSnapshot
from .factory import ArrivalStrategyFactory
from .model import RuleFlags
from .strategies.base import SessionTiming

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionInput:
    """One check-in/check-out pair on a work date, plus the office hours it is measured against."""

    work_date: date
    check_in: time
    check_out: time
    office_start: time
    office_end: time
    ends_next_day: bool = False
    apply_rules: bool = True
    worked_from_home: bool = False
    team_name: Optional[str] = None

    @classmethod
    def from_clock(cls, work_date: date, check_in: time, check_out: time, **kwargs) -> "SessionInput":
        """A check-out earlier than the check-in is read as the next day."""
        return cls(work_date=work_date, check_in=check_in, check_out=check_out, ends_next_day=check_out < check_in, **kwargs)

    @property
    def started_at(self) -> datetime:
        return at(self.work_date, self.check_in)

    @property
    def ended_at(self) -> datetime:
        day = self.work_date + timedelta(days=1) if self.ends_next_day else self.work_date
        return at(day, self.check_out)


@dataclass(frozen=True)
class Segment:
    """The part of a session that lands on one calendar date."""

    work_date: date
    check_in: time
    check_out: time
    total_work_minutes: int
    deduction_minutes: int
    extra_minutes: int
    flags: RuleFlags
    is_weekend_work: bool
    payout_multiplier: float
    is_continuation: bool = False


@dataclass(frozen=True)
class Calculation:
    arrival: Optional[Arrival]
    segments: tuple[Segment, ...]
    increment_buffer: bool = False
    team_bonus_minutes: int = 0

    @property
    def primary(self) -> Segment:
        return self.segments[0]

    @property
    def continuation(self) -> Optional[Segment]:
        return self.segments[1] if len(self.segments) > 1 else None

    @property
    def is_overnight(self) -> bool:
        return len(self.segments) > 1


class AttendanceRuleEngine:
    """Pure rule evaluation for one session; performs no reads or writes.

    Steps, in order: weekend short-circuit, no-rules short-circuit, arrival
    classification with early-checkout overlay, team bonus, overnight split.
    The buffer increment is only reported (`Calculation.increment_buffer`).
    """

    def __init__(self, strategy_factory: ArrivalStrategyFactory | None = None):
        self._factory = strategy_factory or ArrivalStrategyFactory()

    def calculate(
        self,
        session: SessionInput,
        settings: SettingsSnapshot,
        *,
        buffer_abused: bool = False,
        payout_multiplier: float = 1,
    ) -> Calculation:
        start = session.started_at
        end = session.ended_at
        if end < start:
            raise ValidationError("Check-out cannot be before check-in")

        if is_weekend(session.work_date):
            logger.debug("Weekend work on %s, rules bypassed", session.work_date)
            flags = RuleFlags(is_worked_from_home=session.worked_from_home)
            return self._flat(session, flags, WEEKEND_PAYOUT_MULTIPLIER, payout_multiplier)

        if not session.apply_rules:
            flags = RuleFlags(is_worked_from_home=session.worked_from_home, no_rules_applied=True)
            return self._flat(session, flags, payout_multiplier, payout_multiplier)

        return self._evaluate(session, settings, buffer_abused=buffer_abused, payout_multiplier=payout_multiplier)

    def _flat(self, session: SessionInput, flags: RuleFlags, multiplier: float, base_multiplier: float) -> Calculation:
        """Weekend and no-rules sessions: every worked minute is extra, nothing is deducted."""

        start = session.started_at
        head_end = self._midnight_after(session) if session.ends_next_day else session.ended_at
        total = minutes_between(start, head_end)
        head = Segment(
            work_date=session.work_date,
            check_in=session.check_in,
            check_out=DAY_END if session.ends_next_day else session.check_out,
            total_work_minutes=total,
            deduction_minutes=0,
            extra_minutes=total,
            flags=replace(flags, has_extra_hours=total > 0),
            is_weekend_work=is_weekend(session.work_date),
            payout_multiplier=multiplier,
        )
        return self._with_continuation(Calculation(arrival=None, segments=(head,)), session, base_multiplier)

    def _evaluate(
        self,
        session: SessionInput,
        settings: SettingsSnapshot,
        *,
        buffer_abused: bool,
        payout_multiplier: float,
    ) -> Calculation:
        start = session.started_at
        end = session.ended_at
        office_start = at(session.work_date, session.office_start)
        office_end = at(session.work_date, session.office_end)

        # the first half of an overnight session cannot leave early
        is_early_checkout = not session.ends_next_day and end < office_end

        strategy = self._factory.for_checkin(
            check_in=start,
            office_start=office_start,
            settings=settings,
            buffer_abused=buffer_abused,
        )
        decision = strategy.decide(
            SessionTiming(
                check_in=start,
                check_out=end,
                office_start=office_start,
                office_end=office_end,
                is_early_checkout=is_early_checkout,
            )
        )

        deduction = decision.deduction_minutes
        if is_early_checkout:
            deduction += minutes_between(end, office_end)

        team_bonus = 0
        if session.team_name == OPERATIONS_TEAM_NAME and start < office_start:
            team_bonus = minutes_between(start, office_start)
            logger.debug("Early arrival bonus of %s minutes on %s", team_bonus, session.work_date)

        if session.ends_next_day:
            head_end = self._midnight_after(session)
            extra = max(0, minutes_between(office_end, at(session.work_date, DAY_END))) + team_bonus
        else:
            head_end = end
            extra = decision.extra_minutes + team_bonus

        arrival = decision.arrival
        flags = RuleFlags(
            is_late=arrival == Arrival.LATE,
            has_deduction=arrival == Arrival.LATE or is_early_checkout,
            has_extra_hours=extra > 0,
            is_buffer_used=arrival == Arrival.BUFFER_USED,
            is_buffer_abused=buffer_abused,
            is_safe_zone=arrival == Arrival.SAFE_ZONE,
            is_early_checkout=is_early_checkout,
            is_worked_from_home=session.worked_from_home,
        )
        head = Segment(
            work_date=session.work_date,
            check_in=session.check_in,
            check_out=DAY_END if session.ends_next_day else session.check_out,
            total_work_minutes=minutes_between(start, head_end),
            deduction_minutes=deduction,
            extra_minutes=extra,
            flags=flags,
            is_weekend_work=False,
            payout_multiplier=payout_multiplier,
        )
        calculation = Calculation(
            arrival=arrival,
            segments=(head,),
            increment_buffer=decision.increment_buffer,
            team_bonus_minutes=team_bonus,
        )
        return self._with_continuation(calculation, session, payout_multiplier)

    def _with_continuation(self, calculation: Calculation, session: SessionInput, base_multiplier: float) -> Calculation:
        """Append the after-midnight segment of an overnight session."""

        if not session.ends_next_day:
            return calculation

        next_day = session.work_date + timedelta(days=1)
        total = minutes_between(self._midnight_after(session), session.ended_at)
        weekend = is_weekend(next_day)
        tail = Segment(
            work_date=next_day,
            check_in=DAY_START,
            check_out=session.check_out,
            total_work_minutes=total,
            deduction_minutes=0,
            extra_minutes=total,
            flags=RuleFlags(
                has_extra_hours=total > 0,
                is_worked_from_home=session.worked_from_home,
                no_rules_applied=True,
            ),
            is_weekend_work=weekend,
            payout_multiplier=WEEKEND_PAYOUT_MULTIPLIER if weekend else base_multiplier,
            is_continuation=True,
        )
        logger.debug(
            "Overnight session split on %s: %s + %s minutes",
            session.work_date,
            calculation.primary.total_work_minutes,
            total,
        )
        return replace(calculation, segments=calculation.segments + (tail,))

    @staticmethod
    def _midnight_after(session: SessionInput) -> datetime:
        return at(session.work_date + timedelta(days=1), DAY_START)
