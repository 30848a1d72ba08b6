from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import BufferCounterRecord


class CounterRepository(Protocol):
    """Storage for buffer counters, unique per (user_id, year, month)."""

    def get(self, user_id: int, year: int, month: int) -> Optional[BufferCounterRecord]:
        raise NotImplementedError

    def create(self, record: BufferCounterRecord) -> BufferCounterRecord:
        raise NotImplementedError

    def save(self, record: BufferCounterRecord) -> None:
        raise NotImplementedError

    def history(self, user_id: int, limit: int) -> Sequence[BufferCounterRecord]:
        """Most recent months first."""

        raise NotImplementedError

    def list_for_month(self, year: int, month: int) -> Sequence[BufferCounterRecord]:
        raise NotImplementedError
