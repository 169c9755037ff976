"""Validation module for verifying weekly shift schedules.

This module provides a single source of truth for the properties every
generated week must satisfy. The scheduler validates each generated week
before persisting it.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Optional

from guardshift.domain.calendar import (
    JalaliWeekCalendar,
    WeekCalendar,
    shift_type_for,
)
from guardshift.domain.models import (
    SHIFT_TYPE_ORDER,
    Area,
    FixedAssignments,
    Guard,
    ManualShift,
    Shift,
    ShiftType,
    WeekRef,
)
from guardshift.domain.policies import FridayRotationPolicy, ShiftRotationPolicy


class ValidationErrorType(Enum):
    """Types of validation errors."""

    END_BEFORE_START = "end_before_start"
    NIGHT_END_DATE = "night_end_date"
    TYPE_TIME_MISMATCH = "type_time_mismatch"
    SHIFT_OUTSIDE_WEEK = "shift_outside_week"
    UNKNOWN_GUARD = "unknown_guard"
    UNKNOWN_AREA = "unknown_area"
    FIXED_ASSIGNMENT_VIOLATED = "fixed_assignment_violated"
    MANUAL_SHIFT_MISSING = "manual_shift_missing"
    MANUAL_SHIFT_OVERRIDDEN = "manual_shift_overridden"
    COVERAGE_MISMATCH = "coverage_mismatch"
    FRIDAY_REMAP_VIOLATED = "friday_remap_violated"
    SLOT_TYPE_MISMATCH = "slot_type_mismatch"


@dataclass
class ValidationError:
    """A single validation error."""

    error_type: ValidationErrorType
    message: str
    guard_id: Optional[str] = None
    area_id: Optional[str] = None
    day: Optional[date] = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.error_type.value}]"]
        if self.guard_id:
            parts.append(f"Guard {self.guard_id}:")
        parts.append(self.message)
        if self.day is not None:
            parts.append(f"({self.day.isoformat()})")
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of validating a week."""

    is_valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, error: ValidationError) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(warning)

    def errors_of(self, error_type: ValidationErrorType) -> list[ValidationError]:
        return [e for e in self.errors if e.error_type == error_type]


class ScheduleValidator:
    """Validates a generated week against the scheduling rules.

    Example:
        >>> validator = ScheduleValidator()
        >>> result = validator.validate_week(shifts, week, areas, guards)
        >>> if not result.is_valid:
        ...     for error in result.errors:
        ...         print(error)
    """

    def __init__(
        self,
        rotation_policy: Optional[ShiftRotationPolicy] = None,
        calendar: Optional[WeekCalendar] = None,
    ):
        self.rotation_policy = rotation_policy or FridayRotationPolicy()
        self.calendar = calendar or JalaliWeekCalendar()

    def validate_week(
        self,
        shifts: Iterable[Shift],
        week: WeekRef,
        areas: Iterable[Area],
        guards: Optional[Iterable[Guard]] = None,
        fixed_assignments: Optional[FixedAssignments] = None,
        manual_shifts: Optional[Iterable[ManualShift]] = None,
        suppressed: Optional[Iterable[tuple]] = None,
    ) -> ValidationResult:
        """Validate every shift of a generated week.

        Args:
            shifts: Manual and generated shifts of the week.
            week: The week the shifts were generated for.
            areas: Areas the week was generated for.
            guards: Guards the week was generated for. When omitted, guard
                references and area eligibility are not checked.
            fixed_assignments: Guard ID -> area IDs the guard is excluded from.
            manual_shifts: Manual requests the week was generated with.
            suppressed: (guard_id, area_id, day, shift_type) slots the
                generator skipped because of a manual shift. When omitted
                and manual shifts exist, exact per-slot coverage is not checked.

        Returns:
            ValidationResult with is_valid flag, errors and warnings.
        """
        result = ValidationResult(is_valid=True)
        shifts = list(shifts)
        areas = list(areas)
        area_ids = {str(a.id) for a in areas}
        guard_list = list(guards) if guards is not None else None
        fixed = {
            str(g): {str(a) for a in area_set}
            for g, area_set in (fixed_assignments or {}).items()
        }
        manual_list = [m for m in (manual_shifts or []) if m.is_complete()]

        week_dates = self.calendar.week_dates(week)
        week_start = week_dates[0]

        for shift in shifts:
            self._validate_times(shift, result)
            self._validate_references(shift, area_ids, guard_list, result)
            day_index = (shift.shift_date - week_start).days
            if not 0 <= day_index < len(week_dates):
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.SHIFT_OUTSIDE_WEEK,
                        message=f"Shift starts outside week {week}",
                        guard_id=str(shift.guard_id),
                        area_id=str(shift.area_id),
                        day=shift.shift_date,
                    )
                )

        generated = [s for s in shifts if not s.is_manual]
        self._validate_exclusion(generated, fixed, result)
        self._validate_manual(shifts, manual_list, week_dates, result)

        covered = self._covered_areas(areas, guard_list, fixed, generated)
        if suppressed is not None or not manual_list:
            self._validate_slots(
                generated, covered, week_dates, list(suppressed or []), result
            )
        else:
            for area_id in covered:
                count = sum(1 for s in generated if str(s.area_id) == area_id)
                if count > len(week_dates) * len(SHIFT_TYPE_ORDER):
                    result.add_error(
                        ValidationError(
                            error_type=ValidationErrorType.COVERAGE_MISMATCH,
                            message=f"Area {area_id} has {count} generated shifts",
                            area_id=area_id,
                        )
                    )

        self._check_double_booking(shifts, result)
        return result

    def _validate_times(self, shift: Shift, result: ValidationResult) -> None:
        """Check ordering, the night rollover and the clock window."""
        if shift.end_time <= shift.start_time:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.END_BEFORE_START,
                    message="Shift does not end after it starts",
                    guard_id=str(shift.guard_id),
                    area_id=str(shift.area_id),
                    day=shift.shift_date,
                )
            )
            return

        if shift.shift_type == ShiftType.NIGHT:
            if shift.end_time.date() != shift.start_time.date() + timedelta(days=1):
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.NIGHT_END_DATE,
                        message="Night shift must end on the following day",
                        guard_id=str(shift.guard_id),
                        area_id=str(shift.area_id),
                        day=shift.shift_date,
                    )
                )

        if shift_type_for(shift.start_time, shift.end_time) != shift.shift_type:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.TYPE_TIME_MISMATCH,
                    message=(
                        f"{shift.shift_type.value} shift runs "
                        f"{shift.start_time:%H:%M}-{shift.end_time:%H:%M}"
                    ),
                    guard_id=str(shift.guard_id),
                    area_id=str(shift.area_id),
                    day=shift.shift_date,
                )
            )

    def _validate_references(
        self,
        shift: Shift,
        area_ids: set[str],
        guards: Optional[list[Guard]],
        result: ValidationResult,
    ) -> None:
        if str(shift.area_id) not in area_ids:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.UNKNOWN_AREA,
                    message=f"Unknown area ID: {shift.area_id}",
                    guard_id=str(shift.guard_id),
                    area_id=str(shift.area_id),
                )
            )
        if guards is not None and str(shift.guard_id) not in {str(g.id) for g in guards}:
            result.add_error(
                ValidationError(
                    error_type=ValidationErrorType.UNKNOWN_GUARD,
                    message=f"Unknown guard ID: {shift.guard_id}",
                    guard_id=str(shift.guard_id),
                    area_id=str(shift.area_id),
                )
            )

    def _validate_exclusion(
        self,
        generated: list[Shift],
        fixed: dict[str, set[str]],
        result: ValidationResult,
    ) -> None:
        """A generated shift never puts a guard into an area they are fixed to."""
        for shift in generated:
            if str(shift.area_id) in fixed.get(str(shift.guard_id), set()):
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.FIXED_ASSIGNMENT_VIOLATED,
                        message=f"Generated shift in fixed area {shift.area_id}",
                        guard_id=str(shift.guard_id),
                        area_id=str(shift.area_id),
                        day=shift.shift_date,
                    )
                )

    def _validate_manual(
        self,
        shifts: list[Shift],
        manual_list: list[ManualShift],
        week_dates: list[date],
        result: ValidationResult,
    ) -> None:
        """Manual shifts are present and no generated shift shares their guard and day."""
        manual_records = [s for s in shifts if s.is_manual]
        for manual in manual_list:
            current_date = week_dates[manual.day]
            guard_id = str(manual.guard_id)
            present = any(
                str(s.guard_id) == guard_id
                and str(s.area_id) == str(manual.area_id)
                and s.shift_date == current_date
                and s.shift_type == manual.resolved_type
                for s in manual_records
            )
            if not present:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.MANUAL_SHIFT_MISSING,
                        message=(
                            f"Manual {manual.resolved_type.value} shift in area "
                            f"{manual.area_id} is missing"
                        ),
                        guard_id=guard_id,
                        area_id=str(manual.area_id),
                        day=current_date,
                    )
                )

            for shift in shifts:
                if shift.is_manual:
                    continue
                if str(shift.guard_id) == guard_id and shift.shift_date == current_date:
                    result.add_error(
                        ValidationError(
                            error_type=ValidationErrorType.MANUAL_SHIFT_OVERRIDDEN,
                            message="Generated shift on a day with a manual shift",
                            guard_id=guard_id,
                            area_id=str(shift.area_id),
                            day=current_date,
                        )
                    )

    def _covered_areas(
        self,
        areas: list[Area],
        guards: Optional[list[Guard]],
        fixed: dict[str, set[str]],
        generated: list[Shift],
    ) -> list[str]:
        """Areas that should have received generated shifts."""
        if guards is None:
            seen = {str(s.area_id) for s in generated}
            return [str(a.id) for a in areas if str(a.id) in seen]
        return [
            str(area.id)
            for area in areas
            if any(str(area.id) not in fixed.get(str(g.id), set()) for g in guards)
        ]

    def _validate_slots(
        self,
        generated: list[Shift],
        covered: list[str],
        week_dates: list[date],
        suppressed: list[tuple],
        result: ValidationResult,
    ) -> None:
        """Every unsuppressed slot of a covered area emits its effective type once."""
        skipped = {(str(s[1]), s[2], s[3]) for s in suppressed}

        actual: dict[tuple[str, date], Counter] = defaultdict(Counter)
        for shift in generated:
            actual[(str(shift.area_id), shift.shift_date)][shift.shift_type] += 1

        for area_id in covered:
            expected_total = 0
            actual_total = 0
            for day, current_date in enumerate(week_dates):
                expected = Counter(
                    self.rotation_policy.effective_shift_type(current_date, t)
                    for t in SHIFT_TYPE_ORDER
                    if (area_id, day, t) not in skipped
                )
                found = actual[(area_id, current_date)]
                expected_total += sum(expected.values())
                actual_total += sum(found.values())
                if sum(expected.values()) != sum(found.values()) or expected == found:
                    continue

                if self.rotation_policy.is_remapped_day(current_date):
                    error_type = ValidationErrorType.FRIDAY_REMAP_VIOLATED
                else:
                    error_type = ValidationErrorType.SLOT_TYPE_MISMATCH
                result.add_error(
                    ValidationError(
                        error_type=error_type,
                        message=(
                            "Shift types "
                            f"{sorted(t.value for t in found.elements())} do not match "
                            f"{sorted(t.value for t in expected.elements())}"
                        ),
                        area_id=area_id,
                        day=current_date,
                    )
                )

            if expected_total != actual_total:
                result.add_error(
                    ValidationError(
                        error_type=ValidationErrorType.COVERAGE_MISMATCH,
                        message=(
                            f"Area {area_id} has {actual_total} generated shifts, "
                            f"expected {expected_total}"
                        ),
                        area_id=area_id,
                        details={"expected": expected_total, "actual": actual_total},
                    )
                )

    def _check_double_booking(self, shifts: list[Shift], result: ValidationResult) -> None:
        per_day = Counter((str(s.guard_id), s.shift_date) for s in shifts)
        for (guard_id, day), count in sorted(per_day.items(), key=lambda i: (i[0][1], i[0][0])):
            if count > 1:
                result.add_warning(
                    f"Guard {guard_id} has {count} shifts on {day.isoformat()}"
                )
