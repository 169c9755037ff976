"""In-memory roster of guards, areas, shifts and leaves.

The roster is the store the scheduler reads active guards and areas from
and writes generated shifts to. It also owns the shift status lifecycle
and the rules that protect replacement history from deletion.
"""

import logging
from datetime import date, datetime
from typing import Iterable, Optional

from guardshift.domain.calendar import get_shift_times, shift_type_for
from guardshift.domain.errors import (
    DeletionBlockedError,
    InvalidStateError,
    NotFoundError,
)
from guardshift.domain.models import (
    Area,
    Guard,
    GuardStatus,
    Leave,
    LeaveStatus,
    Shift,
    ShiftStatus,
    ShiftType,
)

logger = logging.getLogger(__name__)

# Allowed (from -> to) shift status transitions
SHIFT_TRANSITIONS = {
    ShiftStatus.SCHEDULED: {ShiftStatus.IN_PROGRESS, ShiftStatus.COMPLETED, ShiftStatus.CANCELLED},
    ShiftStatus.IN_PROGRESS: {ShiftStatus.COMPLETED, ShiftStatus.CANCELLED},
    ShiftStatus.COMPLETED: set(),
    ShiftStatus.CANCELLED: set(),
}


class ShiftRoster:
    """Keyed store for the records the scheduler works with.

    Example:
        >>> roster = ShiftRoster(guards=[...], areas=[...])
        >>> roster.add_shifts(generated)
        >>> roster.cancel_shift(generated[0].id)
    """

    def __init__(
        self,
        guards: Optional[Iterable[Guard]] = None,
        areas: Optional[Iterable[Area]] = None,
    ):
        self.guards: dict[str, Guard] = {}
        self.areas: dict[str, Area] = {}
        self.shifts: dict[str, Shift] = {}
        self.leaves: dict[str, Leave] = {}

        for guard in guards or []:
            self.add_guard(guard)
        for area in areas or []:
            self.add_area(area)

    # --- Guards and areas ---

    def add_guard(self, guard: Guard) -> Guard:
        self.guards[str(guard.id)] = guard
        return guard

    def add_area(self, area: Area) -> Area:
        self.areas[str(area.id)] = area
        return area

    def get_guard(self, guard_id: str) -> Guard:
        try:
            return self.guards[str(guard_id)]
        except KeyError:
            raise NotFoundError("Guard", guard_id) from None

    def get_area(self, area_id: str) -> Area:
        try:
            return self.areas[str(area_id)]
        except KeyError:
            raise NotFoundError("Area", area_id) from None

    def active_guards(self) -> list[Guard]:
        """Guards that take part in generation."""
        return [g for g in self.guards.values() if g.is_active]

    def active_areas(self) -> list[Area]:
        """Areas that receive generated shifts."""
        return [a for a in self.areas.values() if a.is_active]

    def set_guard_status(self, guard_id: str, status: GuardStatus) -> Guard:
        """Move a guard to a new operational status."""
        guard = self.get_guard(guard_id)
        if guard.status != status:
            logger.info(
                "Guard %s status %s -> %s", guard.name, guard.status.value, status.value
            )
            guard.status = status
        return guard

    # --- Shifts ---

    def get_shift(self, shift_id: str) -> Shift:
        try:
            return self.shifts[str(shift_id)]
        except KeyError:
            raise NotFoundError("Shift", shift_id) from None

    def add_shift(self, shift: Shift) -> Shift:
        """Create a single shift after checking its guard and area exist."""
        self.add_shifts([shift])
        return shift

    def add_shifts(self, shifts: Iterable[Shift]) -> list[Shift]:
        """Insert shifts in bulk, all or nothing.

        Raises:
            NotFoundError: If a shift references an unknown guard or area.
            ValueError: If a shift is malformed or its ID is already taken.
        """
        batch = list(shifts)
        seen: set[str] = set()
        for shift in batch:
            self._check_shift(shift)
            if shift.id in self.shifts or shift.id in seen:
                raise ValueError(f"Duplicate shift id: {shift.id}")
            seen.add(shift.id)

        for shift in batch:
            self.shifts[shift.id] = shift
        logger.debug("Stored %d shifts", len(batch))
        return batch

    def _check_shift(self, shift: Shift) -> None:
        self.get_guard(shift.guard_id)
        self.get_area(shift.area_id)
        if shift.end_time <= shift.start_time:
            raise ValueError(f"Shift {shift.id} ends before it starts")
        if shift_type_for(shift.start_time, shift.end_time) != shift.shift_type:
            raise ValueError(
                f"Shift {shift.id} times do not match the {shift.shift_type.value} window"
            )

    def shifts_for_guard(self, guard_id: str) -> list[Shift]:
        gid = str(guard_id)
        return sorted(
            (s for s in self.shifts.values() if str(s.guard_id) == gid),
            key=lambda s: s.start_time,
        )

    def shifts_for_area(self, area_id: str) -> list[Shift]:
        aid = str(area_id)
        return sorted(
            (s for s in self.shifts.values() if str(s.area_id) == aid),
            key=lambda s: s.start_time,
        )

    def shifts_in_range(
        self,
        start: datetime,
        end: datetime,
        guard_id: Optional[str] = None,
    ) -> list[Shift]:
        """Shifts lying fully inside [start, end], optionally for one guard."""
        result = [
            s for s in self.shifts.values()
            if s.is_within(start, end)
            and (guard_id is None or str(s.guard_id) == str(guard_id))
        ]
        return sorted(result, key=lambda s: s.start_time)

    def has_shifts_between(self, start: datetime, end: datetime) -> bool:
        """Whether any shift starts inside [start, end)."""
        return any(start <= s.start_time < end for s in self.shifts.values())

    # --- Shift lifecycle ---

    def _transition(self, shift_id: str, target: ShiftStatus) -> Shift:
        shift = self.get_shift(shift_id)
        if target not in SHIFT_TRANSITIONS[shift.status]:
            raise InvalidStateError(
                f"Cannot move shift {shift.id} from {shift.status.value} to {target.value}"
            )
        shift.status = target
        return shift

    def start_shift(self, shift_id: str) -> Shift:
        return self._transition(shift_id, ShiftStatus.IN_PROGRESS)

    def complete_shift(self, shift_id: str) -> Shift:
        return self._transition(shift_id, ShiftStatus.COMPLETED)

    def cancel_shift(self, shift_id: str) -> Shift:
        return self._transition(shift_id, ShiftStatus.CANCELLED)

    def reschedule_shift(
        self,
        shift_id: str,
        new_date: date,
        shift_type: Optional[ShiftType] = None,
    ) -> Shift:
        """Move a scheduled shift to another day and optionally another window."""
        shift = self.get_shift(shift_id)
        if shift.status != ShiftStatus.SCHEDULED:
            raise InvalidStateError(
                f"Only scheduled shifts can be rescheduled, shift {shift.id} is {shift.status.value}"
            )
        shift_type = shift_type or shift.shift_type
        shift.start_time, shift.end_time = get_shift_times(new_date, shift_type)
        shift.shift_type = shift_type
        return shift

    def update_shift(self, shift: Shift) -> Shift:
        """Store a modified copy of an existing shift."""
        self.get_shift(shift.id)
        self._check_shift(shift)
        self.shifts[shift.id] = shift
        return shift

    def delete_shift(self, shift_id: str) -> None:
        """Delete a shift unless it is replacement history of an approved leave."""
        shift = self.get_shift(shift_id)
        blocking = self._covering_leaves(shift)
        if blocking:
            raise DeletionBlockedError(
                f"Shift {shift.id} covers approved leave {blocking[0].id} and cannot be deleted"
            )
        del self.shifts[shift.id]

    def _covering_leaves(self, shift: Shift) -> list[Leave]:
        if shift.replacement_for is None:
            return []
        result = []
        for leave in self.leaves.values():
            if leave.status != LeaveStatus.APPROVED:
                continue
            if str(leave.guard_id) != str(shift.replacement_for):
                continue
            if str(leave.replacement_guard_id) != str(shift.guard_id):
                continue
            if shift.is_within(*leave.window):
                result.append(leave)
        return result

    # --- Leaves ---

    def add_leave(self, leave: Leave) -> Leave:
        """Store a leave request after checking its guard exists."""
        self.get_guard(leave.guard_id)
        self.leaves[leave.id] = leave
        return leave

    def get_leave(self, leave_id: str) -> Leave:
        try:
            return self.leaves[str(leave_id)]
        except KeyError:
            raise NotFoundError("Leave", leave_id) from None

    def leaves_for_guard(self, guard_id: str) -> list[Leave]:
        gid = str(guard_id)
        return sorted(
            (l for l in self.leaves.values() if str(l.guard_id) == gid),
            key=lambda l: l.start_date,
            reverse=True,
        )

    def replacement_shifts(self, leave: Leave) -> list[Shift]:
        """Shifts reassigned to the leave's replacement within its window."""
        if leave.replacement_guard_id is None:
            return []
        return [
            s for s in self.shifts_in_range(*leave.window, guard_id=leave.replacement_guard_id)
            if str(s.replacement_for) == str(leave.guard_id)
        ]

    def delete_leave(self, leave_id: str) -> None:
        """Delete a leave unless it is approved with replacement shifts."""
        leave = self.get_leave(leave_id)
        if leave.status == LeaveStatus.APPROVED and self.replacement_shifts(leave):
            raise DeletionBlockedError(
                f"Approved leave {leave.id} has replacement shifts and cannot be deleted"
            )
        del self.leaves[leave.id]
