from datetime import datetime

from attendance_engine.attendance.factory import ArrivalStrategyFactory
from attendance_engine.attendance.strategies.buffer_strategy import BufferedArrivalStrategy
from attendance_engine.attendance.strategies.late_strategy import LateArrivalStrategy
from attendance_engine.attendance.strategies.safe_zone_strategy import SafeZoneArrivalStrategy
from attendance_engine.policy.model import PolicySettings

SETTINGS = PolicySettings(settings_id=1, version=1).snapshot()
START = datetime(2025, 10, 6, 10, 0)


def _strategy(minute: int, *, abused: bool = False):
    return ArrivalStrategyFactory().for_checkin(
        check_in=START.replace(minute=minute),
        office_start=START,
        settings=SETTINGS,
        buffer_abused=abused,
    )


def test_factory_boundaries_are_inclusive_of_window_end():
    assert isinstance(_strategy(10), SafeZoneArrivalStrategy)
    assert isinstance(_strategy(11), BufferedArrivalStrategy)
    assert isinstance(_strategy(30), BufferedArrivalStrategy)
    assert isinstance(_strategy(31), LateArrivalStrategy)


def test_factory_reduced_window_when_abused():
    assert isinstance(_strategy(10, abused=True), SafeZoneArrivalStrategy)
    assert isinstance(_strategy(11, abused=True), LateArrivalStrategy)
