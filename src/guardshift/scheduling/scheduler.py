"""Scheduler orchestrating weekly generation against a roster.

The generator itself is a pure function of its inputs. The scheduler is
the unit of work around it: it reads active guards and areas from the
roster, enforces the operational preconditions, derives fixed
assignments from shift history, validates the result and persists it.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable, Optional

from guardshift.domain.calendar import start_of_day
from guardshift.domain.errors import DuplicateWeekError, InsufficientResourcesError
from guardshift.domain.models import FixedAssignments, ManualShift, WeekRef
from guardshift.scheduling.fixed_assignments import (
    FixedAssignmentResolver,
    merge_fixed_assignments,
)
from guardshift.scheduling.roster import ShiftRoster
from guardshift.scheduling.weekly_generator import (
    GenerationResult,
    WeeklyShiftGenerator,
)
from guardshift.validation.validator import ScheduleValidator, ValidationResult

logger = logging.getLogger(__name__)


@dataclass
class SchedulerConfig:
    """Configuration for the scheduler's unit of work.

    Attributes:
        min_active_guards: Fewest active guards a week may be generated with.
        allow_regeneration: Generate a week even if it already has shifts.
        validate: Validate the generated week before persisting it.
        use_history: Derive fixed assignments from recent manual shifts.
        history_threshold: Share of recent shifts in one area that fixes a guard to it.
        history_window_days: Days of history considered.
    """

    min_active_guards: int = 3
    allow_regeneration: bool = False
    validate: bool = True
    use_history: bool = False
    history_threshold: float = 0.7
    history_window_days: int = 30


@dataclass
class ScheduleRunResult:
    """Outcome of generating and persisting one week.

    Attributes:
        generation: The generator's result.
        validation: Validation of the generated week, if it was run.
        fixed_assignments: Fixed assignments the week was generated with.
    """

    generation: GenerationResult
    validation: Optional[ValidationResult] = None
    fixed_assignments: FixedAssignments = field(default_factory=dict)

    @property
    def shifts(self):
        return self.generation.shifts


class ShiftScheduler:
    """Generates weeks of shifts for the guards and areas in a roster.

    Example:
        >>> scheduler = ShiftScheduler(roster)
        >>> run = scheduler.generate_week(WeekRef(number=5, year=1403))
        >>> len(run.shifts)
    """

    def __init__(
        self,
        roster: ShiftRoster,
        config: Optional[SchedulerConfig] = None,
        generator: Optional[WeeklyShiftGenerator] = None,
        validator: Optional[ScheduleValidator] = None,
    ):
        self.roster = roster
        self.config = config or SchedulerConfig()
        self.generator = generator or WeeklyShiftGenerator()
        self.validator = validator or ScheduleValidator(
            rotation_policy=self.generator.config.rotation_policy,
            calendar=self.generator.config.calendar,
        )
        self.resolver = FixedAssignmentResolver(
            threshold=self.config.history_threshold,
            window_days=self.config.history_window_days,
        )

    def generate_week(
        self,
        week: WeekRef,
        manual_shifts: Optional[Iterable[ManualShift]] = None,
        fixed_assignments: Optional[FixedAssignments] = None,
        use_history: Optional[bool] = None,
    ) -> ScheduleRunResult:
        """Generate, validate and store the shifts of a week.

        Args:
            week: The week to generate.
            manual_shifts: Manual requests for the week.
            fixed_assignments: Explicit fixed assignments, merged with any
                derived from history.
            use_history: Override of the config's use_history flag.

        Returns:
            ScheduleRunResult with the generated shifts and validation.

        Raises:
            InsufficientResourcesError: Too few active guards or no active area.
            DuplicateWeekError: The week already has shifts and regeneration
                is not allowed.
        """
        guards = self.roster.active_guards()
        areas = self.roster.active_areas()

        if len(guards) < self.config.min_active_guards:
            raise InsufficientResourcesError(
                f"At least {self.config.min_active_guards} active guards are required, "
                f"found {len(guards)}"
            )
        if not areas:
            raise InsufficientResourcesError("At least one active area is required")

        calendar = self.generator.config.calendar
        week_start = start_of_day(calendar.start_of_week(week))
        week_end = week_start + timedelta(days=7)
        if not self.config.allow_regeneration and self.roster.has_shifts_between(
            week_start, week_end
        ):
            raise DuplicateWeekError(f"Week {week} already has shifts")

        if use_history is None:
            use_history = self.config.use_history
        derived = {}
        if use_history:
            # Rotation output never fixes a guard to an area
            history = [s for s in self.roster.shifts.values() if s.is_manual]
            derived = self.resolver.from_history(history, as_of=week_start)
            if derived:
                logger.info("Derived %d fixed assignments from history", len(derived))
        fixed = merge_fixed_assignments(derived, fixed_assignments)

        manual_list = list(manual_shifts or [])
        generation = self.generator.generate(guards, areas, week, fixed, manual_list)

        validation = None
        if self.config.validate:
            validation = self.validator.validate_week(
                generation.shifts,
                week,
                areas,
                guards=guards,
                fixed_assignments=fixed,
                manual_shifts=manual_list,
                suppressed=generation.suppressed,
            )
            for warning in validation.warnings:
                logger.warning(warning)
            for error in validation.errors:
                logger.error("Validation error: %s", error)

        self.roster.add_shifts(generation.shifts)
        return ScheduleRunResult(
            generation=generation,
            validation=validation,
            fixed_assignments=fixed,
        )

    def generate_week_with_stats(
        self,
        week: WeekRef,
        manual_shifts: Optional[Iterable[ManualShift]] = None,
        fixed_assignments: Optional[FixedAssignments] = None,
    ) -> tuple[ScheduleRunResult, dict]:
        """Generate a week and return statistics.

        Returns:
            Tuple of (run_result, stats_dict).
        """
        run = self.generate_week(week, manual_shifts, fixed_assignments)
        stats = self._calculate_stats(run)
        return run, stats

    def _calculate_stats(self, run: ScheduleRunResult) -> dict:
        """Calculate shift counts for a run."""
        shifts = run.shifts
        per_guard = Counter(str(s.guard_id) for s in shifts)
        stats = run.generation.get_summary()
        stats.update(
            {
                "shifts_per_area": dict(Counter(str(s.area_id) for s in shifts)),
                "shifts_per_guard": dict(per_guard),
                "shifts_per_type": dict(Counter(s.shift_type.value for s in shifts)),
                "min_guard_shifts": min(per_guard.values()) if per_guard else 0,
                "max_guard_shifts": max(per_guard.values()) if per_guard else 0,
                "is_valid": run.validation.is_valid if run.validation else None,
            }
        )
        return stats
