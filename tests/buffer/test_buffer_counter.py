from __future__ import annotations

from datetime import date

import pytest

from attendance_engine.buffer.model import BufferCounterRecord, abuse_transition
from attendance_engine.core.enums import BufferTransition
from attendance_engine.core.exceptions import ConfigurationError


@pytest.fixture
def counter(container):
    return container.buffer_counter


def test_get_creates_zeroed_counter_on_first_access(counter, counters):
    record = counter.get(1, date(2025, 10, 15))

    assert record == BufferCounterRecord(user_id=1, year=2025, month=10)
    assert counters.get(1, 2025, 10) is not None


def test_get_without_date_is_a_configuration_error(counter):
    with pytest.raises(ConfigurationError):
        counter.get(1, None)


def test_increment_counts_each_day_once(counter):
    day = date(2025, 10, 6)

    first = counter.increment(1, day)
    again = counter.increment(1, day)

    assert first.usage_count == 1
    assert again.usage_count == 1
    assert again.usage_dates == (day,)


def test_abuse_flag_follows_limit_both_ways(counter):
    days = [date(2025, 10, d) for d in (6, 7, 8, 9, 10)]
    for d in days[:4]:
        assert not counter.increment(1, d).abuse_reached

    at_limit = counter.increment(1, days[4])
    assert at_limit.usage_count == 5
    assert at_limit.abuse_reached

    released = counter.decrement(1, days[2])
    assert released.usage_count == 4
    assert not released.abuse_reached
    assert days[2] not in released.usage_dates


def test_decrement_of_unused_day_changes_nothing(counter):
    counter.increment(1, date(2025, 10, 6))

    record = counter.decrement(1, date(2025, 10, 7))

    assert record.usage_count == 1


def test_months_are_tracked_separately(counter):
    counter.increment(1, date(2025, 10, 31))

    assert counter.get(1, date(2025, 11, 1)).usage_count == 0
    assert counter.get(1, date(2025, 10, 1)).usage_count == 1


def test_history_is_newest_first_and_limited(counter):
    for month in (8, 9, 10):
        counter.increment(1, date(2025, month, 6))

    history = counter.history(1, limit=2)

    assert [(r.year, r.month) for r in history] == [(2025, 10), (2025, 9)]


def test_monthly_report_lists_every_user_of_the_month(counter):
    counter.increment(2, date(2025, 10, 6))
    counter.increment(1, date(2025, 10, 7))
    counter.increment(1, date(2025, 9, 7))

    report = counter.monthly_report(month=10, year=2025)

    assert [r.user_id for r in report] == [1, 2]


def test_open_month_creates_missing_counters_only(counter):
    counter.increment(1, date(2025, 11, 3))

    result = counter.open_month([1, 2, 3], date(2025, 11, 1))

    assert (result.created, result.skipped) == (2, 1)
    assert counter.get(1, date(2025, 11, 1)).usage_count == 1


def test_abuse_transition():
    clean = BufferCounterRecord(user_id=1, year=2025, month=10, usage_count=4)
    abused = BufferCounterRecord(user_id=1, year=2025, month=10, usage_count=5, abuse_reached=True)

    assert abuse_transition(clean, abused) is BufferTransition.ABUSE_REACHED
    assert abuse_transition(abused, clean) is BufferTransition.ABUSE_CLEARED
    assert abuse_transition(clean, clean) is BufferTransition.NONE
