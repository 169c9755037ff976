"""Domain models and business rules for guard scheduling."""

from guardshift.domain.calendar import (
    GregorianWeekCalendar,
    JalaliWeekCalendar,
    WeekCalendar,
    get_calendar,
    get_shift_times,
)
from guardshift.domain.errors import (
    DeletionBlockedError,
    DuplicateWeekError,
    InsufficientResourcesError,
    InvalidStateError,
    NotFoundError,
    SchedulingError,
)
from guardshift.domain.models import (
    ApprovalResult,
    Area,
    FixedAssignments,
    Guard,
    GuardStatus,
    Leave,
    LeaveStatus,
    ManualShift,
    Shift,
    ShiftStatus,
    ShiftType,
    WeekRef,
)
from guardshift.domain.policies import (
    FirstCandidateSelector,
    FridayRotationPolicy,
    LeastLoadedSelector,
    ReplacementSelector,
    ShiftRotationPolicy,
)

__all__ = [
    # Models
    "ApprovalResult",
    "Area",
    "FixedAssignments",
    "Guard",
    "GuardStatus",
    "Leave",
    "LeaveStatus",
    "ManualShift",
    "Shift",
    "ShiftStatus",
    "ShiftType",
    "WeekRef",
    # Calendar
    "GregorianWeekCalendar",
    "JalaliWeekCalendar",
    "WeekCalendar",
    "get_calendar",
    "get_shift_times",
    # Errors
    "DeletionBlockedError",
    "DuplicateWeekError",
    "InsufficientResourcesError",
    "InvalidStateError",
    "NotFoundError",
    "SchedulingError",
    # Policies
    "FirstCandidateSelector",
    "FridayRotationPolicy",
    "LeastLoadedSelector",
    "ReplacementSelector",
    "ShiftRotationPolicy",
]
