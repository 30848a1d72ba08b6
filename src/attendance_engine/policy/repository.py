from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import Holiday, NewPolicy, PolicySettings


class PolicyRepository(Protocol):
    def get_active(self) -> Optional[PolicySettings]:
        raise NotImplementedError

    def latest_version(self) -> int:
        """Highest version number stored, 0 when empty."""

        raise NotImplementedError

    def create(
        self,
        policy: NewPolicy,
        *,
        version: int,
        created_by: Optional[int],
        holidays: Sequence[Holiday] = (),
        last_fetched_at: Optional[datetime] = None,
    ) -> PolicySettings:
        """Insert a new active version and deactivate every other version."""

        raise NotImplementedError

    def history(self) -> Sequence[PolicySettings]:
        raise NotImplementedError

    def replace_holidays(self, settings_id: int, holidays: Sequence[Holiday]) -> None:
        raise NotImplementedError

    def set_last_fetched(self, settings_id: int, at: datetime) -> None:
        raise NotImplementedError
