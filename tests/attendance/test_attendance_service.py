from __future__ import annotations

from datetime import date, time

import pytest

from attendance_engine.core.enums import ApprovalStatus, EntryType, LeaveType
from attendance_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from attendance_engine.punches.model import PunchGroup

from conftest import MONDAY, SATURDAY, punch


def _group(employee_id: str, *stamps: str) -> PunchGroup:
    events = [punch(employee_id, s) for s in stamps]
    return PunchGroup(
        employee_id=employee_id,
        work_date=events[0].timestamp.date(),
        times=tuple(sorted(e.timestamp for e in events)),
    )


def test_processing_same_punch_group_twice_keeps_one_record_and_one_credit(service, outcomes, counters):
    group = _group("101", "2025-10-06T10:15:00", "2025-10-06T19:05:00")

    service.record_punch_group(group)
    with pytest.raises(ConflictError):
        service.record_punch_group(group)

    assert len(outcomes.primaries_of(1)) == 1
    counter = counters.get(1, 2025, 10)
    assert counter.usage_count == 1
    assert counter.usage_dates == (MONDAY,)


def test_short_buffer_day_consumes_a_credit(service, container):
    [outcome] = service.record_manual_entry(1, MONDAY, time(10, 15), time(19, 5))

    assert outcome.flags.is_buffer_used
    assert outcome.buffer_incremented_this_day
    assert outcome.buffer_count_snapshot == 1
    counter = container.buffer_counter.get(1, MONDAY)
    assert counter.usage_count == 1
    assert MONDAY in counter.usage_dates


def test_exactly_required_hours_do_not_consume_a_credit(service, counters):
    [outcome] = service.record_manual_entry(1, MONDAY, time(10, 15), time(19, 15))

    assert outcome.flags.is_buffer_used
    assert outcome.extra_minutes == 0
    assert not outcome.buffer_incremented_this_day
    assert counters.get(1, 2025, 10).usage_count == 0


def test_manual_entry_snapshots_policy_and_office_hours(service):
    [outcome] = service.record_manual_entry(3, MONDAY, time(9, 5), time(18, 0), note="badge broken")

    assert outcome.office_start == time(9, 0)
    assert outcome.office_end == time(18, 0)
    assert outcome.flags.is_safe_zone
    assert outcome.settings_snapshot.buffer_minutes == 30
    assert outcome.settings_snapshot.settings_version == 1
    assert outcome.is_manual_entry
    assert outcome.note == "badge broken"


def test_forced_default_hours_ignore_user_override(service, container):
    container.policy_service.update({"force_default_hours": True})

    [outcome] = service.record_manual_entry(3, MONDAY, time(9, 5), time(18, 0))

    assert outcome.office_start == time(10, 0)
    assert outcome.office_end == time(19, 0)
    assert outcome.flags.is_safe_zone
    assert outcome.flags.is_early_checkout
    assert outcome.deduction_minutes == 60


def test_unknown_user_and_missing_team_are_not_found(service):
    with pytest.raises(NotFoundError):
        service.record_manual_entry(99, MONDAY, time(10, 0), time(19, 0))
    with pytest.raises(NotFoundError):
        service.record_manual_entry(4, MONDAY, time(10, 0), time(19, 0))


def test_unknown_biometric_id_is_not_found(service):
    with pytest.raises(NotFoundError):
        service.record_punch_group(_group("999", "2025-10-06T10:00:00", "2025-10-06T19:00:00"))


def test_weekend_session_never_touches_counter(service, counters):
    [outcome] = service.record_manual_entry(1, SATURDAY, time(11, 0), time(13, 0))

    assert outcome.is_weekend_work
    assert outcome.payout_multiplier == 2
    assert outcome.extra_minutes == 120
    assert counters.records == {}


def test_overnight_session_is_stored_as_primary_plus_additional_entry(service, outcomes):
    head, tail = service.record_manual_entry(1, MONDAY, time(20, 0), time(1, 30))

    assert head.is_primary
    assert head.check_out == time(23, 59)
    assert tail.work_date == date(2025, 10, 7)
    assert tail.entry.entry_no == 2
    assert tail.entry.entry_type == EntryType.MANUAL
    assert head.total_work_minutes + tail.total_work_minutes == 330
    assert len(outcomes.rows) == 2


def test_overnight_punch_group_tail_is_automatic(service):
    group = PunchGroup(
        employee_id="101",
        work_date=MONDAY,
        times=(punch("101", "2025-10-06T18:00:00").timestamp, punch("101", "2025-10-07T02:00:00").timestamp),
    )

    head, tail = service.record_punch_group(group)

    assert tail.entry.entry_type == EntryType.AUTOMATIC
    assert not head.is_manual_entry


def test_holiday_work_gets_bonus_overlay(service, container):
    container.holiday_service.add(MONDAY, "Founders Day")

    [outcome] = service.record_manual_entry(1, MONDAY, time(10, 0), time(19, 0))

    assert outcome.is_holiday_work
    assert outcome.holiday_bonus_minutes == 1080


def test_update_entry_recomputes_in_place_and_moves_credit(service, counters):
    [outcome] = service.record_manual_entry(1, MONDAY, time(10, 15), time(19, 5))
    assert counters.get(1, 2025, 10).usage_count == 1

    [updated] = service.update_entry(outcome.outcome_id, check_in=time(10, 5), check_out=time(19, 0))

    assert updated.outcome_id == outcome.outcome_id
    assert updated.flags.is_safe_zone
    assert not updated.buffer_incremented_this_day
    assert counters.get(1, 2025, 10).usage_count == 0


def test_update_entry_crossing_midnight_regenerates_split_pair(service, outcomes):
    [outcome] = service.record_manual_entry(1, MONDAY, time(10, 0), time(19, 0))

    head, tail = service.update_entry(outcome.outcome_id, check_in=time(10, 0), check_out=time(2, 0))

    assert outcome.outcome_id not in outcomes.rows
    assert head.is_primary and head.work_date == MONDAY
    assert tail.work_date == date(2025, 10, 7)
    assert tail.extra_minutes == 120


def test_additional_entries_are_numbered_and_capped(service):
    service.record_manual_entry(1, MONDAY, time(10, 0), time(19, 0))

    [second] = service.add_additional_entry(1, MONDAY, time(20, 0), time(21, 0))
    [third] = service.add_additional_entry(1, MONDAY, time(21, 30), time(22, 0))
    [fourth] = service.add_additional_entry(1, MONDAY, time(22, 10), time(22, 40))

    assert second.entry.entry_no == 2
    assert third.entry.entry_no == 3
    assert fourth.entry.entry_no == 3
    assert second.flags.no_rules_applied
    assert second.extra_minutes == 60
    assert second.deduction_minutes == 0


def test_delete_releases_credit(service, counters):
    [outcome] = service.record_manual_entry(1, MONDAY, time(10, 15), time(19, 5))

    service.delete_entry(outcome.outcome_id)

    counter = counters.get(1, 2025, 10)
    assert counter.usage_count == 0
    assert counter.usage_dates == ()
    with pytest.raises(NotFoundError):
        service.get(outcome.outcome_id)


def test_adjust_hours_appends_history(service):
    [outcome] = service.record_manual_entry(1, MONDAY, time(10, 35), time(19, 0))

    adjusted = service.adjust_hours(outcome.outcome_id, deduction_minutes=0, extra_minutes=15, adjusted_by=7, is_half_day=True)

    assert adjusted.deduction_minutes == 0
    assert not adjusted.flags.has_deduction
    assert adjusted.flags.has_extra_hours
    assert adjusted.is_half_day
    [entry] = adjusted.adjustment_history
    assert entry.reason == "Manual adjustment"
    assert (entry.from_deduction, entry.to_deduction) == (35, 0)
    assert (entry.from_extra, entry.to_extra) == (0, 15)
    assert entry.adjusted_by == 7


def test_adjust_hours_rejects_negative_minutes(service):
    [outcome] = service.record_manual_entry(1, MONDAY, time(10, 0), time(19, 0))

    with pytest.raises(ValidationError):
        service.adjust_hours(outcome.outcome_id, extra_minutes=-5)


def test_mark_leave_creates_zero_record(service):
    outcome = service.mark_leave(1, MONDAY, "leave")

    assert outcome.is_paid_leave and not outcome.is_absent
    assert outcome.check_in is None and outcome.check_out is None
    assert outcome.approval_status == ApprovalStatus.NA
    assert outcome.payout_multiplier == 0
    assert outcome.flags.no_rules_applied


def test_mark_leave_over_existing_record_releases_credit(service, counters):
    [outcome] = service.record_manual_entry(1, MONDAY, time(10, 15), time(19, 5))

    marked = service.mark_leave(1, MONDAY, LeaveType.ABSENT)

    assert marked.outcome_id == outcome.outcome_id
    assert marked.is_absent
    assert marked.total_work_minutes == 0
    assert counters.get(1, 2025, 10).usage_count == 0


def test_mark_leave_rejects_unknown_type(service):
    with pytest.raises(ValidationError):
        service.mark_leave(1, MONDAY, "vacation")


def test_description_only_by_owner(service):
    [outcome] = service.record_manual_entry(1, MONDAY, time(10, 0), time(19, 0))

    assert service.update_description(outcome.outcome_id, 1, "client visit").description == "client visit"
    with pytest.raises(ValidationError):
        service.update_description(outcome.outcome_id, 2, "not mine")


def test_toggle_ignore_deduction(service):
    [outcome] = service.record_manual_entry(1, MONDAY, time(10, 45), time(19, 0))

    assert service.toggle_ignore_deduction(outcome.outcome_id, True).ignore_deduction
    assert not service.toggle_ignore_deduction(outcome.outcome_id, False).ignore_deduction


def test_list_for_month_filters_by_user(service):
    service.record_manual_entry(1, MONDAY, time(10, 0), time(19, 0))
    service.record_manual_entry(2, MONDAY, time(10, 0), time(19, 0))

    assert [o.user_id for o in service.list_for_month(month=10, year=2025, user_id=2)] == [2]
    assert len(service.list_for_month(month=10, year=2025)) == 2
    with pytest.raises(ValidationError):
        service.list_for_month(month=13, year=2025)


def _tails(outcomes, day):
    return [o for o in outcomes.list_for_date(day) if not o.is_primary]


def test_resaving_a_credited_day_in_an_abused_month_keeps_the_credit(service, counters):
    records = [service.record_manual_entry(1, date(2025, 10, d), time(10, 15), time(19, 5))[0] for d in range(6, 11)]
    assert counters.get(1, 2025, 10).abuse_reached

    [edited] = service.update_entry(records[1].outcome_id, check_in=time(10, 15), check_out=time(19, 5))

    counter = counters.get(1, 2025, 10)
    assert counter.usage_count == 5
    assert counter.abuse_reached
    assert edited.flags.is_buffer_used
    assert not edited.flags.is_late
    assert edited.buffer_incremented_this_day


def test_reediting_overnight_head_replaces_its_tail(service, outcomes):
    head, _ = service.record_manual_entry(1, MONDAY, time(20, 0), time(1, 30))

    new_head, tail = service.update_entry(head.outcome_id, check_in=time(20, 0), check_out=time(2, 0))

    [stored_tail] = _tails(outcomes, date(2025, 10, 7))
    assert stored_tail.outcome_id == tail.outcome_id
    assert stored_tail.extra_minutes == 120
    assert stored_tail.entry.entry_no == 2

    service.update_entry(new_head.outcome_id, check_in=time(10, 0), check_out=time(19, 0))

    assert _tails(outcomes, date(2025, 10, 7)) == []


def test_deleting_or_clearing_overnight_head_removes_its_tail(service, outcomes):
    head, _ = service.record_manual_entry(1, MONDAY, time(20, 0), time(1, 30))
    service.delete_entry(head.outcome_id)
    assert outcomes.list_for_date(date(2025, 10, 7)) == []

    service.record_manual_entry(1, MONDAY, time(20, 0), time(1, 30))
    service.mark_leave(1, MONDAY, LeaveType.LEAVE)
    assert outcomes.list_for_date(date(2025, 10, 7)) == []


def test_punch_group_entirely_after_midnight_is_rejected(service, outcomes):
    group = PunchGroup(
        employee_id="101",
        work_date=MONDAY,
        times=(punch("101", "2025-10-07T01:00:00").timestamp, punch("101", "2025-10-07T03:00:00").timestamp),
    )

    with pytest.raises(ValidationError):
        service.record_punch_group(group)
    assert outcomes.rows == {}
