"""Policy definitions for scheduling rules.

This module contains configurable policies that define business rules
for shift rotation and replacement selection. Policies are kept separate
from the generator and the leave workflow to allow independent testing
and easy substitution.
"""

from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from guardshift.domain.calendar import is_friday
from guardshift.domain.models import Guard, Shift, ShiftStatus, ShiftType


class ShiftRotationPolicy(ABC):
    """Abstract base class for day-dependent shift type remapping."""

    @abstractmethod
    def effective_shift_type(self, day: date, shift_type: ShiftType) -> ShiftType:
        """Get the shift type actually worked for a rotation slot.

        Args:
            day: Calendar date of the slot.
            shift_type: The natural shift type of the rotation slot.

        Returns:
            The shift type to emit.
        """
        pass

    def is_remapped_day(self, day: date) -> bool:
        """Whether the policy changes shift types on this date."""
        return any(
            self.effective_shift_type(day, t) != t for t in ShiftType
        )


@dataclass
class FridayRotationPolicy(ShiftRotationPolicy):
    """Guards work a rotated shift on the weekly holiday.

    On Fridays:
    - morning slot -> night shift
    - afternoon slot -> morning shift
    - night slot -> afternoon shift

    Every other day keeps the natural shift type.
    """

    friday_mapping: dict[ShiftType, ShiftType] = field(
        default_factory=lambda: {
            ShiftType.MORNING: ShiftType.NIGHT,
            ShiftType.AFTERNOON: ShiftType.MORNING,
            ShiftType.NIGHT: ShiftType.AFTERNOON,
        }
    )

    def effective_shift_type(self, day: date, shift_type: ShiftType) -> ShiftType:
        if is_friday(day):
            return self.friday_mapping.get(shift_type, shift_type)
        return shift_type


class ReplacementSelector(ABC):
    """Abstract base class for choosing a replacement guard."""

    @abstractmethod
    def select(
        self,
        candidates: Iterable[Guard],
        original_guard_id: str,
        shift: Optional[Shift] = None,
        shifts: Optional[Iterable[Shift]] = None,
    ) -> Optional[Guard]:
        """Choose a replacement for a guard.

        Args:
            candidates: Pool of guards to choose from.
            original_guard_id: ID of the guard being replaced.
            shift: The shift that needs covering, if a single one.
            shifts: Existing shifts, for load-aware selectors.

        Returns:
            A guard other than the original, or None if the pool has none.
        """
        pass

    @staticmethod
    def eligible(candidates: Iterable[Guard], original_guard_id: str) -> list[Guard]:
        """Candidates with the original guard filtered out."""
        original = str(original_guard_id)
        return [g for g in candidates if str(g.id) != original]


class FirstCandidateSelector(ReplacementSelector):
    """Returns the first candidate that is not the original guard."""

    def select(
        self,
        candidates: Iterable[Guard],
        original_guard_id: str,
        shift: Optional[Shift] = None,
        shifts: Optional[Iterable[Shift]] = None,
    ) -> Optional[Guard]:
        possible = self.eligible(candidates, original_guard_id)
        if not possible:
            return None
        return possible[0]


class LeastLoadedSelector(ReplacementSelector):
    """Ranks candidates by their current number of live shifts.

    Cancelled shifts do not count towards load. Ties keep the candidates'
    input order. When a shift to cover is given, candidates already booked
    at an overlapping time are ranked last.
    """

    def select(
        self,
        candidates: Iterable[Guard],
        original_guard_id: str,
        shift: Optional[Shift] = None,
        shifts: Optional[Iterable[Shift]] = None,
    ) -> Optional[Guard]:
        possible = self.eligible(candidates, original_guard_id)
        if not possible:
            return None

        live = [
            s for s in (shifts or []) if s.status != ShiftStatus.CANCELLED
        ]
        load = Counter(str(s.guard_id) for s in live)
        busy = set()
        if shift is not None:
            busy = {str(s.guard_id) for s in live if s.id != shift.id and s.overlaps(shift)}

        ranked = sorted(
            enumerate(possible),
            key=lambda item: (str(item[1].id) in busy, load[str(item[1].id)], item[0]),
        )
        return ranked[0][1]
