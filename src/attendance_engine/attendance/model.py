from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import ApprovalStatus, EntryType
from ..policy.model import SettingsSnapshot


@dataclass(frozen=True)
class RuleFlags:
    """What the rule engine decided for one session."""

    is_late: bool = False
    has_deduction: bool = False
    has_extra_hours: bool = False
    is_buffer_used: bool = False
    is_buffer_abused: bool = False
    is_safe_zone: bool = False
    is_early_checkout: bool = False
    is_worked_from_home: bool = False
    no_rules_applied: bool = False


@dataclass(frozen=True)
class EntryDetails:
    """Marks a 2nd/3rd session recorded on the same date."""

    entry_no: int
    entry_type: EntryType


@dataclass(frozen=True)
class Adjustment:
    reason: str
    from_deduction: int
    to_deduction: int
    from_extra: int
    to_extra: int
    adjusted_by: Optional[int]
    adjusted_at: datetime


@dataclass(frozen=True)
class AttendanceOutcome:
    """Domain entity: the payroll-relevant result for one user on one date.

    A primary outcome has `entry is None`; at most one exists per (user, date).
    """

    outcome_id: Optional[int]
    user_id: int
    team_id: int
    work_date: date
    check_in: Optional[time]
    check_out: Optional[time]
    office_start: Optional[time]
    office_end: Optional[time]
    total_work_minutes: int = 0
    deduction_minutes: int = 0
    extra_minutes: int = 0
    flags: RuleFlags = RuleFlags()
    buffer_count_snapshot: int = 0
    buffer_incremented_this_day: bool = False
    settings_snapshot: Optional[SettingsSnapshot] = None
    is_weekend_work: bool = False
    is_holiday_work: bool = False
    holiday_bonus_minutes: int = 0
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    payout_multiplier: float = 1
    adjustment_history: tuple[Adjustment, ...] = ()
    entry: Optional[EntryDetails] = None
    note: Optional[str] = None
    description: Optional[str] = None
    ignore_deduction: bool = False
    is_half_day: bool = False
    is_absent: bool = False
    is_paid_leave: bool = False
    is_manual_entry: bool = False
    calculated_at: Optional[datetime] = None

    @property
    def is_primary(self) -> bool:
        return self.entry is None
