"""Leave replacement reassignment.

Approving a leave moves every shift of the guard on leave that lies fully
inside the leave window to a replacement guard, marks those shifts as
replacements and sets the original guard's status to on-leave. Rejecting
a leave only records the reason.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Union

from guardshift.domain.errors import InvalidStateError
from guardshift.domain.models import (
    ApprovalResult,
    Guard,
    GuardStatus,
    Leave,
    LeaveStatus,
    Shift,
    ShiftStatus,
)
from guardshift.domain.policies import FirstCandidateSelector, ReplacementSelector
from guardshift.scheduling.roster import ShiftRoster

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "No reason given"


def find_replacement_guard(
    candidates: Iterable[Guard],
    shift: Optional[Shift],
    original_guard_id: str,
    selector: Optional[ReplacementSelector] = None,
    shifts: Optional[Iterable[Shift]] = None,
) -> Optional[Guard]:
    """Pick a guard to cover for another.

    Never returns the guard being replaced. Returns None only when the
    candidate pool holds no other guard.
    """
    selector = selector or FirstCandidateSelector()
    return selector.select(candidates, original_guard_id, shift=shift, shifts=shifts)


def replacement_note(guard_name: Optional[str] = None) -> str:
    return f"Replacement for {guard_name or 'guard'} on leave"


def reassign_shifts(
    shifts: Iterable[Shift],
    leave: Leave,
    replacement_guard_id: str,
    guard_name: Optional[str] = None,
) -> list[Shift]:
    """Reassign the leave guard's shifts inside the leave window.

    Args:
        shifts: Candidate shifts; those of other guards or outside the
            window are ignored.
        leave: The leave being approved.
        replacement_guard_id: Guard taking over the shifts.
        guard_name: Name of the guard on leave, used in the shift notes.

    Returns:
        Updated copies of the affected shifts. The inputs are not modified.
    """
    start, end = leave.window
    note = replacement_note(guard_name)
    return [
        replace(
            shift,
            guard_id=replacement_guard_id,
            replacement_for=leave.guard_id,
            notes=note,
        )
        for shift in shifts
        if str(shift.guard_id) == str(leave.guard_id) and shift.is_within(start, end)
    ]


@dataclass
class ReplacementCandidate:
    """A guard who could cover a leave.

    Attributes:
        guard: The candidate guard.
        has_conflict: True if the guard already works a shift overlapping
            one of the shifts to cover.
        shift_count: Live shifts currently assigned to the guard.
    """

    guard: Guard
    has_conflict: bool = False
    shift_count: int = 0


@dataclass
class ReplacementOptions:
    """Shifts a leave would vacate and the guards available to take them."""

    leave: Leave
    shifts: list[Shift] = field(default_factory=list)
    candidates: list[ReplacementCandidate] = field(default_factory=list)

    @property
    def available_guards(self) -> list[Guard]:
        """Candidates without an overlapping shift."""
        return [c.guard for c in self.candidates if not c.has_conflict]


class LeaveManager:
    """Handles leave requests against a roster.

    Example:
        >>> manager = LeaveManager(roster)
        >>> result = manager.approve_leave(leave.id, replacement_guard_id="g4")
        >>> result.reassigned_count
    """

    def __init__(
        self,
        roster: ShiftRoster,
        selector: Optional[ReplacementSelector] = None,
    ):
        self.roster = roster
        self.selector = selector or FirstCandidateSelector()

    def _resolve(self, leave: Union[Leave, str]) -> Leave:
        if isinstance(leave, Leave):
            if leave.id not in self.roster.leaves:
                self.roster.add_leave(leave)
            return self.roster.get_leave(leave.id)
        return self.roster.get_leave(leave)

    @staticmethod
    def _require_pending(leave: Leave) -> None:
        if leave.status != LeaveStatus.PENDING:
            raise InvalidStateError(
                f"Leave {leave.id} has already been {leave.status.value}"
            )

    def approve_leave(
        self,
        leave: Union[Leave, str],
        replacement_guard_id: str,
        approved_by: Optional[str] = None,
    ) -> ApprovalResult:
        """Approve a pending leave and hand its shifts to a replacement.

        Shifts are updated one at a time. If an update fails the error
        propagates and shifts already moved stay moved.

        Raises:
            InvalidStateError: If the leave is not pending.
            NotFoundError: If the leave or the replacement guard is unknown.
            ValueError: If the replacement is the guard on leave.
        """
        leave = self._resolve(leave)
        self._require_pending(leave)

        original = self.roster.get_guard(leave.guard_id)
        replacement = self.roster.get_guard(replacement_guard_id)
        if str(replacement.id) == str(original.id):
            raise ValueError("A guard cannot replace themselves")

        affected = self.roster.shifts_in_range(*leave.window, guard_id=original.id)
        reassigned = reassign_shifts(affected, leave, replacement.id, original.name)
        for shift in reassigned:
            self.roster.update_shift(shift)

        leave.status = LeaveStatus.APPROVED
        leave.replacement_guard_id = replacement.id
        leave.approved_by = approved_by
        self.roster.set_guard_status(original.id, GuardStatus.ON_LEAVE)

        if reassigned:
            message = (
                f"Leave approved, {len(reassigned)} shifts reassigned to {replacement.name}"
            )
        else:
            message = "Leave approved, no shifts to reassign"
        logger.info(
            "Approved leave %s for %s: %d shifts reassigned to %s",
            leave.id, original.name, len(reassigned), replacement.name,
        )
        return ApprovalResult(leave=leave, reassigned_count=len(reassigned), message=message)

    def reject_leave(
        self,
        leave: Union[Leave, str],
        reason: Optional[str] = None,
        rejected_by: Optional[str] = None,
    ) -> Leave:
        """Reject a pending leave. Shifts are left untouched.

        Raises:
            InvalidStateError: If the leave is not pending.
        """
        leave = self._resolve(leave)
        self._require_pending(leave)

        leave.status = LeaveStatus.REJECTED
        leave.rejection_reason = reason or DEFAULT_REJECTION_REASON
        leave.approved_by = rejected_by
        logger.info("Rejected leave %s: %s", leave.id, leave.rejection_reason)
        return leave

    def handle_leave(
        self,
        leave: Union[Leave, str],
        status: Union[LeaveStatus, str],
        replacement_guard_id: Optional[str] = None,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Union[ApprovalResult, Leave]:
        """Approve or reject a leave depending on the requested status.

        Raises:
            ValueError: For an unknown status, or an approval without a
                replacement guard.
        """
        try:
            target = LeaveStatus(status) if not isinstance(status, LeaveStatus) else status
        except ValueError:
            raise ValueError(f"Unknown leave status: {status}") from None

        if target == LeaveStatus.APPROVED:
            if not replacement_guard_id:
                raise ValueError("A replacement guard is required to approve a leave")
            return self.approve_leave(leave, replacement_guard_id, approved_by=actor)
        if target == LeaveStatus.REJECTED:
            return self.reject_leave(leave, reason=reason, rejected_by=actor)
        raise ValueError(f"Leave cannot be moved to {target.value}")

    def replacement_options(self, leave: Union[Leave, str]) -> ReplacementOptions:
        """List the shifts a leave vacates and who could cover them."""
        leave = self._resolve(leave)
        shifts = [
            s for s in self.roster.shifts_in_range(*leave.window, guard_id=leave.guard_id)
            if s.status != ShiftStatus.CANCELLED
        ]

        options = ReplacementOptions(leave=leave, shifts=shifts)
        for guard in self.roster.active_guards():
            if str(guard.id) == str(leave.guard_id):
                continue
            own = [
                s for s in self.roster.shifts_for_guard(guard.id)
                if s.status != ShiftStatus.CANCELLED
            ]
            conflict = any(mine.overlaps(vacated) for mine in own for vacated in shifts)
            options.candidates.append(
                ReplacementCandidate(guard=guard, has_conflict=conflict, shift_count=len(own))
            )
        return options

    def suggest_replacement(self, leave: Union[Leave, str]) -> Optional[Guard]:
        """Apply the selector to the leave's replacement options."""
        options = self.replacement_options(leave)
        shift = options.shifts[0] if options.shifts else None
        return find_replacement_guard(
            [c.guard for c in options.candidates],
            shift,
            options.leave.guard_id,
            selector=self.selector,
            shifts=self.roster.shifts.values(),
        )
