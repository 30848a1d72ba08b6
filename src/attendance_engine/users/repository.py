from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Employee, Team


class UserDirectory(Protocol):
    """Read-only lookup of employees and their team.

    Every employee belongs to exactly one team (office hours and the team bonus depend on it).
    """

    def get_by_id(self, user_id: int) -> Optional[Employee]:
        raise NotImplementedError

    def find_by_biometric_id(self, biometric_id: str) -> Optional[Employee]:
        raise NotImplementedError

    def team_of(self, user_id: int) -> Optional[Team]:
        raise NotImplementedError

    def list_active(self) -> Sequence[Employee]:
        raise NotImplementedError
