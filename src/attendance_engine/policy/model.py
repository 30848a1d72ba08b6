from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core import constants


@dataclass(frozen=True)
class Holiday:
    day: date
    name: str
    description: str = ""
    added_by: Optional[int] = None
    added_at: Optional[datetime] = None
    recalculated: bool = False


@dataclass(frozen=True)
class SettingsSnapshot:
    """Policy values an outcome was calculated with."""

    buffer_minutes: int
    safe_zone_minutes: int
    buffer_abuse_limit: int
    reduced_buffer_minutes: int
    settings_version: int
    effective_from: Optional[datetime] = None


@dataclass(frozen=True)
class PolicySettings:
    """One version of the attendance policy.

    Exactly one version is active; superseded versions are kept untouched as history.
    """

    settings_id: int
    version: int
    buffer_minutes: int = constants.DEFAULT_BUFFER_MINUTES
    reduced_buffer_minutes: int = constants.DEFAULT_REDUCED_BUFFER_MINUTES
    safe_zone_minutes: int = constants.DEFAULT_SAFE_ZONE_MINUTES
    buffer_abuse_limit: int = constants.DEFAULT_BUFFER_ABUSE_LIMIT
    default_start: time = constants.DEFAULT_OFFICE_START
    default_end: time = constants.DEFAULT_OFFICE_END
    force_default_hours: bool = False
    holidays: tuple[Holiday, ...] = ()
    is_active: bool = True
    effective_from: Optional[datetime] = None
    created_by: Optional[int] = None
    last_fetched_at: Optional[datetime] = None

    def snapshot(self) -> SettingsSnapshot:
        return SettingsSnapshot(
            buffer_minutes=self.buffer_minutes,
            safe_zone_minutes=self.safe_zone_minutes,
            buffer_abuse_limit=self.buffer_abuse_limit,
            reduced_buffer_minutes=self.reduced_buffer_minutes,
            settings_version=self.version,
            effective_from=self.effective_from,
        )

    def holiday_on(self, day: date) -> Optional[Holiday]:
        for h in self.holidays:
            if h.day == day:
                return h
        return None


@dataclass(frozen=True)
class NewPolicy:
    """Values for a new policy version (holidays and fetch marker are carried separately)."""

    buffer_minutes: int = constants.DEFAULT_BUFFER_MINUTES
    reduced_buffer_minutes: int = constants.DEFAULT_REDUCED_BUFFER_MINUTES
    safe_zone_minutes: int = constants.DEFAULT_SAFE_ZONE_MINUTES
    buffer_abuse_limit: int = constants.DEFAULT_BUFFER_ABUSE_LIMIT
    default_start: time = constants.DEFAULT_OFFICE_START
    default_end: time = constants.DEFAULT_OFFICE_END
    force_default_hours: bool = False
    effective_from: Optional[datetime] = None
