from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from ..core.enums import BufferTransition


@dataclass(frozen=True)
class BufferCounterRecord:
    """Buffer-zone usage of one user in one calendar month."""

    user_id: int
    year: int
    month: int
    usage_count: int = 0
    abuse_reached: bool = False
    usage_dates: tuple[date, ...] = ()

    def has_used_on(self, day: date) -> bool:
        return day in self.usage_dates


def abuse_transition(before: BufferCounterRecord, after: BufferCounterRecord) -> BufferTransition:
    if not before.abuse_reached and after.abuse_reached:
        return BufferTransition.ABUSE_REACHED
    if before.abuse_reached and not after.abuse_reached:
        return BufferTransition.ABUSE_CLEARED
    return BufferTransition.NONE
