from __future__ import annotations

from enum import Enum


class ApprovalStatus(str, Enum):
    """Approval state of an attendance outcome."""

    PENDING = "Pending"
    NA = "NA"
    APPROVED = "Approved"
    SINGLE_PAY = "SinglePay"
    REJECTED = "Rejected"


class Arrival(str, Enum):
    """Arrival classification of a weekday session with rules applied."""

    LATE = "LATE"
    BUFFER_USED = "BUFFER_USED"
    SAFE_ZONE = "SAFE_ZONE"


class DayKind(str, Enum):
    WEEKEND = "WEEKEND"
    HOLIDAY = "HOLIDAY"
    NORMAL = "NORMAL"


class EntryType(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class LeaveType(str, Enum):
    ABSENT = "absent"
    LEAVE = "leave"


class BufferTransition(str, Enum):
    """Change of a counter's abuse flag caused by one increment/decrement."""

    NONE = "NONE"
    ABUSE_REACHED = "ABUSE_REACHED"
    ABUSE_CLEARED = "ABUSE_CLEARED"
