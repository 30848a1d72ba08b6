from __future__ import annotations

import logging
from dataclasses import fields, replace
from datetime import datetime, time
from typing import Any, Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local, parse_hhmm
from ..common.validators import parse_bool, require_in_range
from ..core.exceptions import ConfigurationError, ValidationError
from ..users.model import Employee
from .model import NewPolicy, PolicySettings
from .repository import PolicyRepository

logger = logging.getLogger(__name__)

# field -> (low, high)
_RANGES = {
    "buffer_minutes": (0, 60),
    "safe_zone_minutes": (0, 30),
    "buffer_abuse_limit": (1, 20),
    "reduced_buffer_minutes": (0, 30),
}


class PolicyService:
    """Active policy lookup and append-only versioning."""

    def __init__(self, policies: PolicyRepository, *, clock: Callable[[], datetime] = now_local):
        self._policies = policies
        self._clock = clock

    def get_active(self) -> PolicySettings:
        policy = self._policies.get_active()
        if policy is None:
            raise ConfigurationError("No active policy settings found")
        return policy

    def history(self) -> Sequence[PolicySettings]:
        return self._policies.history()

    def create(self, values: Mapping[str, Any], *, created_by: Optional[int] = None) -> PolicySettings:
        policy = self._validate(self._coerce(NewPolicy(), values))
        version = self._policies.latest_version() + 1
        created = self._policies.create(policy, version=version, created_by=created_by)
        logger.info("Policy version %s activated", created.version)
        return created

    def update(self, values: Mapping[str, Any], *, created_by: Optional[int] = None) -> PolicySettings:
        """Create a new version from the active one; holidays and the fetch marker carry over."""

        current = self.get_active()
        base = NewPolicy(**{f.name: getattr(current, f.name) for f in fields(NewPolicy)})
        policy = self._validate(self._coerce(replace(base, effective_from=None), values))
        version = self._policies.latest_version() + 1
        created = self._policies.create(
            policy,
            version=version,
            created_by=created_by,
            holidays=current.holidays,
            last_fetched_at=current.last_fetched_at,
        )
        logger.info("Policy version %s superseded by %s", current.version, created.version)
        return created

    def mark_fetched(self, at: datetime) -> None:
        self._policies.set_last_fetched(self.get_active().settings_id, at)

    @staticmethod
    def office_hours_for(employee: Employee, policy: PolicySettings) -> tuple[time, time]:
        if policy.force_default_hours:
            return policy.default_start, policy.default_end
        return (
            employee.office_start or policy.default_start,
            employee.office_end or policy.default_end,
        )

    def _coerce(self, base: NewPolicy, values: Mapping[str, Any]) -> NewPolicy:
        changes: dict[str, Any] = {}
        for f in fields(NewPolicy):
            if f.name not in values or values[f.name] is None:
                continue
            value = values[f.name]
            if f.name in _RANGES:
                low, high = _RANGES[f.name]
                value = require_in_range(value, f.name, low, high)
            elif f.name in ("default_start", "default_end") and isinstance(value, str):
                value = parse_hhmm(value)
            elif f.name == "force_default_hours":
                value = parse_bool(value)
            elif f.name == "effective_from" and isinstance(value, str):
                value = datetime.fromisoformat(value)
            changes[f.name] = value
        policy = replace(base, **changes)
        if policy.effective_from is None:
            policy = replace(policy, effective_from=self._clock())
        return policy

    @staticmethod
    def _validate(policy: NewPolicy) -> NewPolicy:
        if policy.default_start >= policy.default_end:
            raise ValidationError("default_start must be before default_end")
        return policy
