from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.automation import AttendanceAutomation
from .attendance.engine import AttendanceRuleEngine
from .attendance.factory import ArrivalStrategyFactory
from .attendance.mysql_attendance_repository import MySQLOutcomeRepository
from .attendance.reconciler import RetroactiveReconciler
from .attendance.repository import OutcomeRepository
from .attendance.service import AttendanceService
from .buffer.mysql_buffer_repository import MySQLCounterRepository
from .buffer.repository import CounterRepository
from .buffer.service import BufferCounter
from .database.connection import DBConfig, DatabaseConnection
from .holidays.calculator import HolidayCalculator
from .holidays.service import HolidayService
from .policy.mysql_policy_repository import MySQLPolicyRepository
from .policy.repository import PolicyRepository
from .policy.service import PolicyService
from .punches.isapi_source import IsapiPunchSource
from .punches.source import PunchSource
from .users.mysql_user_repository import MySQLUserDirectory
from .users.repository import UserDirectory


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserDirectory
    policy_repo: PolicyRepository
    counter_repo: CounterRepository
    outcome_repo: OutcomeRepository
    punch_source: PunchSource

    policy_service: PolicyService
    buffer_counter: BufferCounter
    holiday_calculator: HolidayCalculator
    holiday_service: HolidayService
    reconciler: RetroactiveReconciler
    attendance_service: AttendanceService
    automation: AttendanceAutomation


def wire(
    *,
    users_repo: UserDirectory,
    policy_repo: PolicyRepository,
    counter_repo: CounterRepository,
    outcome_repo: OutcomeRepository,
    punch_source: PunchSource,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Build the service graph on top of any set of repositories."""

    policy_service = PolicyService(policy_repo)
    buffer_counter = BufferCounter(counter_repo, policy_service)
    holiday_calculator = HolidayCalculator(policy_service, outcome_repo)
    holiday_service = HolidayService(policy_service, policy_repo, holiday_calculator)
    reconciler = RetroactiveReconciler(outcome_repo, policy_service)
    attendance_service = AttendanceService(
        outcome_repo,
        users_repo,
        policy_service,
        buffer_counter,
        holiday_calculator,
        reconciler,
        engine=AttendanceRuleEngine(ArrivalStrategyFactory()),
    )
    automation = AttendanceAutomation(punch_source, attendance_service, policy_service)

    return Container(
        conn=conn,
        users_repo=users_repo,
        policy_repo=policy_repo,
        counter_repo=counter_repo,
        outcome_repo=outcome_repo,
        punch_source=punch_source,
        policy_service=policy_service,
        buffer_counter=buffer_counter,
        holiday_calculator=holiday_calculator,
        holiday_service=holiday_service,
        reconciler=reconciler,
        attendance_service=attendance_service,
        automation=automation,
    )


def build_container(*, db_config: dict, biometric_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    return wire(
        users_repo=MySQLUserDirectory(conn),
        policy_repo=MySQLPolicyRepository(conn),
        counter_repo=MySQLCounterRepository(conn),
        outcome_repo=MySQLOutcomeRepository(conn),
        punch_source=IsapiPunchSource.from_config(biometric_config),
        conn=conn,
    )
