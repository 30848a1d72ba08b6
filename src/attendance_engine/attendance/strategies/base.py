from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime

from ...common.datetime_utils import minutes_between
from ...core.enums import Arrival


@dataclass(frozen=True)
class SessionTiming:
    """Concrete instants of one weekday session, all composed on the work date."""

    check_in: datetime
    check_out: datetime
    office_start: datetime
    office_end: datetime
    is_early_checkout: bool = False

    @property
    def minutes_after_start(self) -> int:
        return minutes_between(self.office_start, self.check_in)

    @property
    def minutes_after_end(self) -> int:
        return minutes_between(self.office_end, self.check_out)

    @property
    def worked_minutes(self) -> int:
        return minutes_between(self.check_in, self.check_out)

    @property
    def required_minutes(self) -> int:
        return minutes_between(self.office_start, self.office_end)


@dataclass(frozen=True)
class ArrivalDecision:
    arrival: Arrival
    deduction_minutes: int = 0
    extra_minutes: int = 0
    increment_buffer: bool = False


class ArrivalStrategy(ABC):
    """Strategy Pattern: how one arrival class turns a session into deduction and extra minutes.

    Early-checkout minutes are added by the engine; a strategy only reports what its
    own arrival class contributes.
    """

    @abstractmethod
    def decide(self, timing: SessionTiming) -> ArrivalDecision:
        raise NotImplementedError
