from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from .model import PunchEvent


class PunchSource(Protocol):
    def fetch(self, start: datetime, end: datetime) -> Sequence[PunchEvent]:
        """Every punch between start and end, flattened across pages and deduplicated."""

        raise NotImplementedError
