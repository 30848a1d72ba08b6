from __future__ import annotations

from ...core.enums import Arrival
from .base import ArrivalDecision, ArrivalStrategy, SessionTiming


class SafeZoneArrivalStrategy(ArrivalStrategy):
    """On time, or late by no more than the safe zone."""

    def decide(self, timing: SessionTiming) -> ArrivalDecision:
        return ArrivalDecision(arrival=Arrival.SAFE_ZONE, extra_minutes=max(0, timing.minutes_after_end))
