from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time
from typing import Optional, Sequence

import pytest

from attendance_engine.attendance.model import AttendanceOutcome
from attendance_engine.buffer.model import BufferCounterRecord
from attendance_engine.container import Container, wire
from attendance_engine.core.exceptions import UpstreamIOError
from attendance_engine.policy.model import Holiday, NewPolicy, PolicySettings
from attendance_engine.punches.model import PunchEvent
from attendance_engine.users.model import Employee, Team

# October 2025: the 6th is a Monday, the 4th/5th and 11th/12th are weekends.
MONDAY = date(2025, 10, 6)
SATURDAY = date(2025, 10, 4)

ENGINEERING = Team(team_id=1, team_name="Engineering")
OPERATIONS = Team(team_id=2, team_name="Operations")


class InMemoryUsers:
    def __init__(self):
        self.employees: dict[int, Employee] = {}
        self.teams: dict[int, Team] = {}

    def add(self, employee: Employee, team: Optional[Team]) -> Employee:
        self.employees[employee.user_id] = employee
        if team is not None:
            self.teams[employee.user_id] = team
        return employee

    def get_by_id(self, user_id: int) -> Optional[Employee]:
        return self.employees.get(int(user_id))

    def find_by_biometric_id(self, biometric_id: str) -> Optional[Employee]:
        for e in self.employees.values():
            if e.biometric_id == str(biometric_id) and e.is_active:
                return e
        return None

    def team_of(self, user_id: int) -> Optional[Team]:
        return self.teams.get(int(user_id))

    def list_active(self) -> Sequence[Employee]:
        return [e for e in self.employees.values() if e.is_active]


class InMemoryPolicies:
    def __init__(self):
        self.versions: list[PolicySettings] = []

    def get_active(self) -> Optional[PolicySettings]:
        for p in self.versions:
            if p.is_active:
                return p
        return None

    def latest_version(self) -> int:
        return max((p.version for p in self.versions), default=0)

    def create(self, policy: NewPolicy, *, version, created_by, holidays=(), last_fetched_at=None) -> PolicySettings:
        self.versions = [replace(p, is_active=False) for p in self.versions]
        created = PolicySettings(
            settings_id=len(self.versions) + 1,
            version=version,
            buffer_minutes=policy.buffer_minutes,
            reduced_buffer_minutes=policy.reduced_buffer_minutes,
            safe_zone_minutes=policy.safe_zone_minutes,
            buffer_abuse_limit=policy.buffer_abuse_limit,
            default_start=policy.default_start,
            default_end=policy.default_end,
            force_default_hours=policy.force_default_hours,
            holidays=tuple(holidays),
            is_active=True,
            effective_from=policy.effective_from,
            created_by=created_by,
            last_fetched_at=last_fetched_at,
        )
        self.versions.append(created)
        return created

    def history(self) -> Sequence[PolicySettings]:
        return sorted(self.versions, key=lambda p: p.version, reverse=True)

    def replace_holidays(self, settings_id: int, holidays: Sequence[Holiday]) -> None:
        self._replace(settings_id, holidays=tuple(holidays))

    def set_last_fetched(self, settings_id: int, at: datetime) -> None:
        self._replace(settings_id, last_fetched_at=at)

    def _replace(self, settings_id: int, **changes) -> None:
        self.versions = [replace(p, **changes) if p.settings_id == settings_id else p for p in self.versions]


class InMemoryCounters:
    def __init__(self):
        self.records: dict[tuple[int, int, int], BufferCounterRecord] = {}

    def get(self, user_id: int, year: int, month: int) -> Optional[BufferCounterRecord]:
        return self.records.get((user_id, year, month))

    def create(self, record: BufferCounterRecord) -> BufferCounterRecord:
        return self.records.setdefault((record.user_id, record.year, record.month), record)

    def save(self, record: BufferCounterRecord) -> None:
        self.records[(record.user_id, record.year, record.month)] = record

    def history(self, user_id: int, limit: int) -> Sequence[BufferCounterRecord]:
        items = [r for r in self.records.values() if r.user_id == user_id]
        items.sort(key=lambda r: (r.year, r.month), reverse=True)
        return items[:limit]

    def list_for_month(self, year: int, month: int) -> Sequence[BufferCounterRecord]:
        return sorted((r for r in self.records.values() if (r.year, r.month) == (year, month)), key=lambda r: r.user_id)


class InMemoryOutcomes:
    def __init__(self):
        self.rows: dict[int, AttendanceOutcome] = {}
        self._id = 0
        self.fail_updates_for: set[int] = set()

    def exists_primary(self, user_id: int, work_date: date) -> bool:
        return self.get_primary(user_id, work_date) is not None

    def count_for_date(self, user_id: int, work_date: date) -> int:
        return sum(1 for o in self.rows.values() if o.user_id == user_id and o.work_date == work_date)

    def create(self, outcome: AttendanceOutcome) -> AttendanceOutcome:
        self._id += 1
        created = replace(outcome, outcome_id=self._id)
        self.rows[self._id] = created
        return created

    def update(self, outcome: AttendanceOutcome) -> bool:
        if outcome.outcome_id in self.fail_updates_for:
            raise RuntimeError("storage unavailable")
        if outcome.outcome_id not in self.rows:
            return False
        self.rows[outcome.outcome_id] = outcome
        return True

    def get_by_id(self, outcome_id: int) -> Optional[AttendanceOutcome]:
        return self.rows.get(int(outcome_id))

    def get_primary(self, user_id: int, work_date: date) -> Optional[AttendanceOutcome]:
        for o in self.rows.values():
            if o.user_id == user_id and o.work_date == work_date and o.is_primary:
                return o
        return None

    def get_many(self, outcome_ids) -> Sequence[AttendanceOutcome]:
        return [self.rows[i] for i in outcome_ids if i in self.rows]

    def list_for_user_between(self, user_id: int, start: date, end: date) -> Sequence[AttendanceOutcome]:
        items = [o for o in self.rows.values() if o.user_id == user_id and start <= o.work_date <= end]
        return sorted(items, key=lambda o: (o.work_date, o.outcome_id))

    def list_for_month(self, *, month: int, year: int, user_id=None, team_id=None) -> Sequence[AttendanceOutcome]:
        items = [
            o
            for o in self.rows.values()
            if (o.work_date.year, o.work_date.month) == (year, month)
            and (user_id is None or o.user_id == user_id)
            and (team_id is None or o.team_id == team_id)
        ]
        return sorted(items, key=lambda o: (o.work_date, o.outcome_id))

    def list_for_date(self, work_date: date) -> Sequence[AttendanceOutcome]:
        return sorted((o for o in self.rows.values() if o.work_date == work_date), key=lambda o: o.outcome_id)

    def delete(self, outcome_id: int) -> bool:
        return self.rows.pop(int(outcome_id), None) is not None

    def primaries_of(self, user_id: int) -> list[AttendanceOutcome]:
        return [o for o in self.list_for_user_between(user_id, date.min, date.max) if o.is_primary]


class FakePunchSource:
    def __init__(self, events: Sequence[PunchEvent] = (), *, error: Optional[str] = None):
        self.events = list(events)
        self.error = error
        self.calls: list[tuple[datetime, datetime]] = []

    def fetch(self, start: datetime, end: datetime) -> Sequence[PunchEvent]:
        self.calls.append((start, end))
        if self.error:
            raise UpstreamIOError(self.error)
        return [e for e in self.events if start <= e.timestamp <= end]


def punch(employee_id: str, stamp: str) -> PunchEvent:
    return PunchEvent(employee_id=employee_id, timestamp=datetime.fromisoformat(stamp))


@pytest.fixture
def users() -> InMemoryUsers:
    directory = InMemoryUsers()
    directory.add(Employee(user_id=1, full_name="Ayesha Khan", biometric_id="101"), ENGINEERING)
    directory.add(Employee(user_id=2, full_name="Bilal Ahmed", biometric_id="102"), OPERATIONS)
    directory.add(
        Employee(user_id=3, full_name="Sara Malik", biometric_id="103", office_start=time(9, 0), office_end=time(18, 0)),
        ENGINEERING,
    )
    directory.add(Employee(user_id=4, full_name="No Team", biometric_id="104"), None)
    return directory


@pytest.fixture
def policies() -> InMemoryPolicies:
    repo = InMemoryPolicies()
    repo.create(NewPolicy(effective_from=datetime(2025, 1, 1)), version=1, created_by=None)
    return repo


@pytest.fixture
def counters() -> InMemoryCounters:
    return InMemoryCounters()


@pytest.fixture
def outcomes() -> InMemoryOutcomes:
    return InMemoryOutcomes()


@pytest.fixture
def punch_source() -> FakePunchSource:
    return FakePunchSource()


@pytest.fixture
def container(users, policies, counters, outcomes, punch_source) -> Container:
    return wire(
        users_repo=users,
        policy_repo=policies,
        counter_repo=counters,
        outcome_repo=outcomes,
        punch_source=punch_source,
    )


@pytest.fixture
def service(container):
    return container.attendance_service
