from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional


@dataclass(frozen=True)
class Employee:
    """Domain entity: an employee as the rule engine sees it.

    Note: plain data object (no DB access code).
    """

    user_id: int
    full_name: str
    biometric_id: Optional[str] = None
    office_start: Optional[time] = None
    office_end: Optional[time] = None
    payout_multiplier: float = 1
    is_active: bool = True


@dataclass(frozen=True)
class Team:
    team_id: int
    team_name: str
