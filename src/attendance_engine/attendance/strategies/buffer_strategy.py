from __future__ import annotations

from ...core.enums import Arrival
from .base import ArrivalDecision, ArrivalStrategy, SessionTiming


class BufferedArrivalStrategy(ArrivalStrategy):
    """Check-in inside the buffer window but past the safe zone.

    The late minutes are forgiven unless the day is also cut short. A day that
    falls short of the required minutes without an early checkout consumes one
    buffer credit; exactly the required minutes do not.
    """

    def decide(self, timing: SessionTiming) -> ArrivalDecision:
        deduction = timing.minutes_after_start if timing.is_early_checkout else 0

        worked = timing.worked_minutes
        required = timing.required_minutes
        if worked >= required:
            return ArrivalDecision(
                arrival=Arrival.BUFFER_USED,
                deduction_minutes=deduction,
                extra_minutes=worked - required,
            )

        return ArrivalDecision(
            arrival=Arrival.BUFFER_USED,
            deduction_minutes=deduction,
            increment_buffer=not timing.is_early_checkout,
        )
