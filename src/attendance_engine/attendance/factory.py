from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from ..policy.model import SettingsSnapshot
from .strategies.base import ArrivalStrategy
from .strategies.buffer_strategy import BufferedArrivalStrategy
from .strategies.late_strategy import LateArrivalStrategy
from .strategies.safe_zone_strategy import SafeZoneArrivalStrategy


@dataclass
class ArrivalStrategyFactory:
    """Factory Pattern: choose the arrival strategy, checked in order late, buffer, safe zone."""

    def for_checkin(
        self,
        *,
        check_in: datetime,
        office_start: datetime,
        settings: SettingsSnapshot,
        buffer_abused: bool,
    ) -> ArrivalStrategy:
        window = settings.reduced_buffer_minutes if buffer_abused else settings.buffer_minutes
        if check_in > office_start + timedelta(minutes=window):
            return LateArrivalStrategy()
        if check_in > office_start + timedelta(minutes=settings.safe_zone_minutes):
            return BufferedArrivalStrategy()
        return SafeZoneArrivalStrategy()
