from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, Optional, Sequence

from ..core.constants import DEFAULT_BUFFER_HISTORY_LIMIT
from ..core.exceptions import ConfigurationError
from ..policy.service import PolicyService
from .model import BufferCounterRecord
from .repository import CounterRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RolloverResult:
    created: int
    skipped: int


class BufferCounter:
    """Per-user, per-month ledger of buffer-zone uses.

    All mutation goes through increment/decrement, both idempotent per calendar day.
    Detecting abuse-flag transitions (and reconciling) is the caller's job.
    """

    def __init__(self, counters: CounterRepository, policy: PolicyService):
        self._counters = counters
        self._policy = policy

    def get(self, user_id: int, on: Optional[date]) -> BufferCounterRecord:
        if on is None:
            raise ConfigurationError("A work date is required to resolve the buffer counter month")

        existing = self._counters.get(int(user_id), on.year, on.month)
        if existing is not None:
            return existing

        created = self._counters.create(BufferCounterRecord(user_id=int(user_id), year=on.year, month=on.month))
        logger.info("Created buffer counter for user %s for %04d-%02d", user_id, on.year, on.month)
        return created

    def is_abused(self, user_id: int, on: Optional[date]) -> bool:
        return self.get(user_id, on).abuse_reached

    def increment(self, user_id: int, on: Optional[date]) -> BufferCounterRecord:
        counter = self.get(user_id, on)
        if counter.has_used_on(on):
            return counter

        limit = self._policy.get_active().buffer_abuse_limit
        usage_count = counter.usage_count + 1
        updated = replace(
            counter,
            usage_count=usage_count,
            usage_dates=tuple(sorted(counter.usage_dates + (on,))),
            abuse_reached=usage_count >= limit,
        )
        self._counters.save(updated)
        logger.debug("Buffer use %s/%s recorded for user %s on %s", usage_count, limit, user_id, on)
        return updated

    def decrement(self, user_id: int, on: Optional[date]) -> BufferCounterRecord:
        counter = self.get(user_id, on)
        if not counter.has_used_on(on):
            return counter

        limit = self._policy.get_active().buffer_abuse_limit
        usage_count = max(0, counter.usage_count - 1)
        updated = replace(
            counter,
            usage_count=usage_count,
            usage_dates=tuple(d for d in counter.usage_dates if d != on),
            abuse_reached=usage_count >= limit,
        )
        self._counters.save(updated)
        logger.debug("Buffer use on %s released for user %s (%s/%s)", on, user_id, usage_count, limit)
        return updated

    def history(self, user_id: int, *, limit: int = DEFAULT_BUFFER_HISTORY_LIMIT) -> Sequence[BufferCounterRecord]:
        return self._counters.history(int(user_id), int(limit))

    def monthly_report(self, *, month: int, year: int) -> Sequence[BufferCounterRecord]:
        return self._counters.list_for_month(int(year), int(month))

    def open_month(self, user_ids: Iterable[int], today: date) -> RolloverResult:
        """Create zeroed counters for the month of `today`; existing ones are left alone."""

        created = 0
        skipped = 0
        for user_id in user_ids:
            if self._counters.get(int(user_id), today.year, today.month) is not None:
                skipped += 1
                continue
            self._counters.create(BufferCounterRecord(user_id=int(user_id), year=today.year, month=today.month))
            created += 1

        logger.info("Buffer rollover %04d-%02d: created=%s skipped=%s", today.year, today.month, created, skipped)
        return RolloverResult(created=created, skipped=skipped)
