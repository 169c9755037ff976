"""Domain models for the guard scheduling system.

This module contains the core data structures shared by the generator,
the roster and the leave workflow: guards, areas, shifts, manual shift
requests, week references and leave requests.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional, Union
from uuid import uuid4


def _new_id() -> str:
    return uuid4().hex


class GuardStatus(Enum):
    """Operational status of a guard."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on-leave"


class ShiftType(Enum):
    """The three daily 8-hour shift windows.

    Each type has a fixed clock window. The night window ends on the
    calendar day after it starts.
    """

    MORNING = "morning"  # 07:00 - 15:00
    AFTERNOON = "afternoon"  # 15:00 - 23:00
    NIGHT = "night"  # 23:00 - 07:00 next day

    @property
    def start_hour(self) -> int:
        """Clock hour the shift starts."""
        return _SHIFT_WINDOWS[self][0]

    @property
    def end_hour(self) -> int:
        """Clock hour the shift ends."""
        return _SHIFT_WINDOWS[self][1]

    @property
    def crosses_midnight(self) -> bool:
        """Whether the shift ends on the following calendar day."""
        return self.end_hour <= self.start_hour

    @property
    def duration(self) -> timedelta:
        """Length of the shift window."""
        hours = (self.end_hour - self.start_hour) % 24
        return timedelta(hours=hours)

    @classmethod
    def from_start_hour(cls, hour: int) -> Optional["ShiftType"]:
        """Look up the shift type that starts at a clock hour."""
        for shift_type in cls:
            if shift_type.start_hour == hour:
                return shift_type
        return None

    @classmethod
    def parse(cls, value: Union["ShiftType", str, None]) -> Optional["ShiftType"]:
        """Coerce a value to a ShiftType, returning None if it is not one."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None


# (start_hour, end_hour)
_SHIFT_WINDOWS = {
    ShiftType.MORNING: (7, 15),
    ShiftType.AFTERNOON: (15, 23),
    ShiftType.NIGHT: (23, 7),
}

# Order in which the generator walks the shift types of a day.
SHIFT_TYPE_ORDER = (ShiftType.MORNING, ShiftType.AFTERNOON, ShiftType.NIGHT)


class ShiftStatus(Enum):
    """Lifecycle status of a shift."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LeaveStatus(Enum):
    """Lifecycle status of a leave request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class Guard:
    """A person performing security duty.

    Attributes:
        id: Unique identifier for the guard.
        name: Display name.
        status: Operational status. Only active guards are scheduled.
        phone_number: Optional contact number.
        email: Optional contact email.
    """

    id: str
    name: str
    status: GuardStatus = GuardStatus.ACTIVE
    phone_number: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == GuardStatus.ACTIVE


@dataclass
class Area:
    """A physical zone that needs continuous coverage.

    Attributes:
        id: Unique identifier for the area.
        name: Display name.
        is_active: Only active areas receive generated shifts.
        description: Optional free text.
        location: Optional free text location.
    """

    id: str
    name: str
    is_active: bool = True
    description: Optional[str] = None
    location: Optional[str] = None


@dataclass
class Shift:
    """One guard's presence in one area for one shift window.

    Attributes:
        guard_id: ID of the assigned guard.
        area_id: ID of the covered area.
        start_time: When the shift starts.
        end_time: When the shift ends (next day for night shifts).
        shift_type: The shift window tag.
        status: Lifecycle status.
        is_manual: True when the shift came from a manual request.
        replacement_for: ID of the guard this shift covers for, if any.
        notes: Free text notes.
        id: Unique identifier.
    """

    guard_id: str
    area_id: str
    start_time: datetime
    end_time: datetime
    shift_type: ShiftType
    status: ShiftStatus = ShiftStatus.SCHEDULED
    is_manual: bool = False
    replacement_for: Optional[str] = None
    notes: str = ""
    id: str = field(default_factory=_new_id)

    @property
    def shift_date(self) -> date:
        """Calendar date the shift starts on."""
        return self.start_time.date()

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    def overlaps(self, other: "Shift") -> bool:
        """Check if this shift overlaps another in time."""
        return self.start_time < other.end_time and other.start_time < self.end_time

    def is_within(self, start: datetime, end: datetime) -> bool:
        """Check if the shift lies fully inside [start, end]."""
        return start <= self.start_time and self.end_time <= end

    def __repr__(self) -> str:
        return (
            f"Shift({self.guard_id}@{self.area_id} "
            f"{self.start_time.strftime('%Y-%m-%d %H:%M')} {self.shift_type.value})"
        )


@dataclass
class ManualShift:
    """A caller-specified shift that preempts generation.

    Attributes:
        guard_id: ID of the guard.
        area_id: ID of the area.
        day: Day index within the week (0 = Saturday ... 6 = Friday).
        shift_type: Shift window, as a ShiftType or its string value.
    """

    guard_id: Optional[str]
    area_id: Optional[str]
    day: Optional[int]
    shift_type: Union[ShiftType, str, None]

    def is_complete(self) -> bool:
        """Whether every field is present and in range."""
        if not self.guard_id or not self.area_id:
            return False
        if self.day is None or isinstance(self.day, bool):
            return False
        if not isinstance(self.day, int) or not 0 <= self.day < 7:
            return False
        return ShiftType.parse(self.shift_type) is not None

    @property
    def resolved_type(self) -> Optional[ShiftType]:
        return ShiftType.parse(self.shift_type)


@dataclass(frozen=True)
class WeekRef:
    """A week identified by its number within a calendar year.

    Attributes:
        number: Week number, 1..53.
        year: Calendar year in the calendar the week belongs to.
    """

    number: int
    year: int

    def __post_init__(self):
        if not 1 <= self.number <= 53:
            raise ValueError(f"Week number must be between 1 and 53, got {self.number}")

    def __str__(self) -> str:
        return f"{self.year}-W{self.number:02d}"


# Guard ID -> IDs of areas the guard is permanently assigned to.
FixedAssignments = dict[str, set[str]]


@dataclass
class Leave:
    """A guard's absence request.

    Attributes:
        guard_id: ID of the guard requesting leave.
        start_date: First day of leave (inclusive).
        end_date: Last day of leave (inclusive).
        reason: Free text reason.
        status: Lifecycle status.
        replacement_guard_id: Guard covering the shifts once approved.
        approved_by: ID of whoever handled the request.
        rejection_reason: Stored reason when rejected.
        id: Unique identifier.
    """

    guard_id: str
    start_date: date
    end_date: date
    reason: str = ""
    status: LeaveStatus = LeaveStatus.PENDING
    replacement_guard_id: Optional[str] = None
    approved_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    id: str = field(default_factory=_new_id)

    def __post_init__(self):
        if self.end_date < self.start_date:
            raise ValueError("Leave end date precedes its start date")

    @property
    def window(self) -> tuple[datetime, datetime]:
        """Datetime range covered by the leave (end exclusive at next midnight)."""
        start = datetime.combine(self.start_date, datetime.min.time())
        end = datetime.combine(self.end_date + timedelta(days=1), datetime.min.time())
        return start, end

    @property
    def is_pending(self) -> bool:
        return self.status == LeaveStatus.PENDING


@dataclass
class ApprovalResult:
    """Outcome of approving a leave.

    Attributes:
        leave: The updated leave.
        reassigned_count: Number of shifts moved to the replacement guard.
        message: Human-readable summary.
    """

    leave: Leave
    reassigned_count: int
    message: str = ""

    @property
    def nothing_to_reassign(self) -> bool:
        return self.reassigned_count == 0
