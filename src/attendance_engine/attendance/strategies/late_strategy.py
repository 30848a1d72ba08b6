from __future__ import annotations

from ...core.enums import Arrival
from .base import ArrivalDecision, ArrivalStrategy, SessionTiming


class LateArrivalStrategy(ArrivalStrategy):
    """Check-in after the effective buffer end."""

    def decide(self, timing: SessionTiming) -> ArrivalDecision:
        return ArrivalDecision(
            arrival=Arrival.LATE,
            deduction_minutes=timing.minutes_after_start,
            extra_minutes=max(0, timing.minutes_after_end),
        )
