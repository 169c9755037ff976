"""Weekly shift generator.

This module turns a week reference, the active guards and areas, the
fixed guard-to-area exclusions and a list of manual shift requests into
a complete list of shift records:

1. Manual requests become shifts first and always win.
2. Every area gets an eligible guard pool (all guards minus those fixed
   to that area) and a rotation per shift type.
3. Each day of the week, each shift type takes the next guard of its
   rotation, skipping guards that already hold a manual shift that day,
   with Friday's shift types remapped by the rotation policy.
"""

import logging
import random
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from guardshift.domain.calendar import (
    JalaliWeekCalendar,
    WeekCalendar,
    get_shift_times,
)
from guardshift.domain.errors import InsufficientResourcesError
from guardshift.domain.models import (
    SHIFT_TYPE_ORDER,
    Area,
    FixedAssignments,
    Guard,
    ManualShift,
    Shift,
    ShiftStatus,
    WeekRef,
)
from guardshift.domain.policies import FridayRotationPolicy, ShiftRotationPolicy
from guardshift.scheduling.cpsat_rotation import (
    CPSATRotationBuilder,
    RotationSolverConfig,
    count_variables,
)
from guardshift.scheduling.rotation import (
    RotationBuilder,
    SeededRotationBuilder,
    ShuffledRotationBuilder,
)

logger = logging.getLogger(__name__)


class RotationStrategy(Enum):
    """How per-area rotations are ordered."""

    SHUFFLE = "shuffle"  # Random shuffle per area and shift type
    SEEDED = "seeded"  # Deterministic round-robin offset by week number
    CPSAT = "cpsat"  # OR-Tools CP-SAT, minimizes same-day double bookings
    HYBRID = "hybrid"  # CP-SAT for small models, shuffle otherwise


@dataclass
class GeneratorConfig:
    """Configuration for weekly shift generation.

    Attributes:
        rotation_strategy: How rotations are ordered.
        seed: Seed for the shuffle strategy (None = unseeded, runs differ).
        recommended_pool_size: Pool size below which rotation degenerates to
            repeats; smaller pools are generated anyway, with a warning.
        calendar: Week numbering used to locate the week's Saturday.
        rotation_policy: Day-dependent shift type remapping (Friday rule).
        solver_config: Configuration for the CP-SAT strategies.
    """

    rotation_strategy: RotationStrategy = RotationStrategy.SHUFFLE
    seed: Optional[int] = None
    recommended_pool_size: int = 3
    calendar: WeekCalendar = field(default_factory=JalaliWeekCalendar)
    rotation_policy: ShiftRotationPolicy = field(default_factory=FridayRotationPolicy)
    solver_config: RotationSolverConfig = field(default_factory=RotationSolverConfig)


@dataclass
class GenerationResult:
    """Result of a weekly generation run.

    Attributes:
        week: The generated week.
        week_start: Saturday that begins the week.
        manual_shifts: Shifts created from manual requests.
        generated_shifts: Shifts created by rotation.
        skipped_areas: IDs of areas left uncovered for lack of eligible guards.
        skipped_manual: Manual requests dropped as malformed.
        suppressed: (guard_id, area_id, day, natural shift type) slots not
            generated because the guard holds a manual shift that day.
        rotation_strategy_used: Strategy that produced the rotations.
    """

    week: WeekRef
    week_start: date
    manual_shifts: list[Shift] = field(default_factory=list)
    generated_shifts: list[Shift] = field(default_factory=list)
    skipped_areas: list[str] = field(default_factory=list)
    skipped_manual: list[ManualShift] = field(default_factory=list)
    suppressed: list[tuple] = field(default_factory=list)
    rotation_strategy_used: str = RotationStrategy.SHUFFLE.value

    @property
    def shifts(self) -> list[Shift]:
        """Manual shifts followed by generated shifts."""
        return self.manual_shifts + self.generated_shifts

    def get_summary(self) -> dict:
        """Get summary statistics for the run."""
        per_area: dict[str, int] = defaultdict(int)
        for shift in self.generated_shifts:
            per_area[shift.area_id] += 1
        return {
            "week": str(self.week),
            "week_start": self.week_start.isoformat(),
            "total_shifts": len(self.shifts),
            "manual_shifts": len(self.manual_shifts),
            "generated_shifts": len(self.generated_shifts),
            "generated_per_area": dict(per_area),
            "skipped_areas": list(self.skipped_areas),
            "skipped_manual": len(self.skipped_manual),
            "suppressed": len(self.suppressed),
            "rotation_strategy": self.rotation_strategy_used,
        }


class WeeklyShiftGenerator:
    """Rule-based generator for a week of area coverage.

    Example:
        >>> generator = WeeklyShiftGenerator()
        >>> result = generator.generate(
        ...     guards, areas, WeekRef(number=2, year=1403),
        ...     fixed_assignments={"g1": {"gate"}},
        ...     manual_shifts=[ManualShift("g2", "gate", 0, ShiftType.MORNING)],
        ... )
        >>> len(result.shifts)
    """

    def __init__(self, config: Optional[GeneratorConfig] = None):
        self.config = config or GeneratorConfig()
        self.rng = random.Random(self.config.seed)

    def generate(
        self,
        guards: list[Guard],
        areas: list[Area],
        week: WeekRef,
        fixed_assignments: Optional[FixedAssignments] = None,
        manual_shifts: Optional[Iterable[ManualShift]] = None,
    ) -> GenerationResult:
        """Generate every shift of a week.

        Args:
            guards: Active guards to rotate.
            areas: Active areas to cover.
            week: The week to generate.
            fixed_assignments: Guard ID -> area IDs the guard is excluded from.
            manual_shifts: Pre-assigned shifts that take precedence.

        Returns:
            GenerationResult with manual and generated shifts and run stats.

        Raises:
            InsufficientResourcesError: If no guards or no areas are supplied.
        """
        if not guards or not areas:
            raise InsufficientResourcesError(
                "At least one guard and one area are required to generate shifts"
            )

        fixed = _normalize_fixed(fixed_assignments)
        manual_list = list(manual_shifts or [])

        logger.info("Generating shifts for week %s", week)
        logger.info(
            "Guards: %d, areas: %d, fixed assignment entries: %d, manual shifts: %d",
            len(guards), len(areas), len(fixed), len(manual_list),
        )

        calendar = self.config.calendar
        week_start = calendar.start_of_week(week)
        week_dates = calendar.week_dates(week)
        logger.info("Week starts on %s", week_start.isoformat())

        result = GenerationResult(week=week, week_start=week_start)

        # Manual pass
        manual_days: set[tuple[str, int]] = set()
        for manual in manual_list:
            shift = self._build_manual_shift(manual, week_dates)
            if shift is None:
                logger.warning("Skipping invalid manual shift: %r", manual)
                result.skipped_manual.append(manual)
                continue
            result.manual_shifts.append(shift)
            manual_days.add((str(shift.guard_id), manual.day))

        # Eligible pools per area
        pools: dict[str, list[Guard]] = {}
        area_order: list[Area] = []
        for area in areas:
            area_id = str(area.id)
            pool = []
            for guard in guards:
                if area_id in fixed.get(str(guard.id), set()):
                    logger.debug(
                        "Excluding guard %s from area %s due to fixed assignment",
                        guard.name, area.name,
                    )
                    continue
                pool.append(guard)

            if not pool:
                logger.warning("No available guards for area %s, skipping it", area.name)
                result.skipped_areas.append(area_id)
                continue

            if len(pool) < self.config.recommended_pool_size:
                logger.warning(
                    "Only %d guards available for area %s, rotation will repeat guards",
                    len(pool), area.name,
                )
            logger.debug("Area %s has %d available guards", area.name, len(pool))
            pools[area_id] = pool
            area_order.append(area)

        builder = self._rotation_builder(pools)
        rotations = builder.build(pools, week)
        result.rotation_strategy_used = getattr(builder, "used", builder.name)

        # Per-area generation
        for area in area_order:
            area_id = str(area.id)
            rotation = rotations[area_id]
            for day, current_date in enumerate(week_dates):
                for shift_type in SHIFT_TYPE_ORDER:
                    order = rotation[shift_type]
                    guard = order[day % len(order)]

                    if (str(guard.id), day) in manual_days:
                        logger.debug(
                            "Skipping automatic %s shift for %s on %s: manual shift exists",
                            shift_type.value, guard.name, current_date.isoformat(),
                        )
                        result.suppressed.append((str(guard.id), area_id, day, shift_type))
                        continue

                    effective_type = self.config.rotation_policy.effective_shift_type(
                        current_date, shift_type
                    )
                    start_time, end_time = get_shift_times(current_date, effective_type)
                    result.generated_shifts.append(
                        Shift(
                            guard_id=guard.id,
                            area_id=area.id,
                            start_time=start_time,
                            end_time=end_time,
                            shift_type=effective_type,
                            status=ShiftStatus.SCHEDULED,
                        )
                    )

        logger.info(
            "Generated %d shifts (%d manual, %d automatic)",
            len(result.shifts), len(result.manual_shifts), len(result.generated_shifts),
        )
        return result

    def _build_manual_shift(
        self,
        manual: ManualShift,
        week_dates: list[date],
    ) -> Optional[Shift]:
        """Turn a manual request into a shift, or None if it is malformed."""
        if not isinstance(manual, ManualShift) or not manual.is_complete():
            return None
        shift_type = manual.resolved_type
        current_date = week_dates[manual.day]
        start_time, end_time = get_shift_times(current_date, shift_type)
        return Shift(
            guard_id=manual.guard_id,
            area_id=manual.area_id,
            start_time=start_time,
            end_time=end_time,
            shift_type=shift_type,
            status=ShiftStatus.SCHEDULED,
            is_manual=True,
        )

    def _rotation_builder(self, pools: dict[str, list[Guard]]) -> RotationBuilder:
        """Pick the rotation builder for the configured strategy."""
        strategy = self.config.rotation_strategy
        shuffled = ShuffledRotationBuilder(self.rng)

        if strategy == RotationStrategy.SEEDED:
            return SeededRotationBuilder()
        if strategy == RotationStrategy.CPSAT:
            return CPSATRotationBuilder(shuffled, self.config.solver_config)
        if strategy == RotationStrategy.HYBRID:
            size = count_variables(pools)
            if size <= self.config.solver_config.max_variables:
                return CPSATRotationBuilder(shuffled, self.config.solver_config)
            logger.info(
                "Rotation model too large for CP-SAT (%d variables), shuffling instead",
                size,
            )
        return shuffled


def _normalize_fixed(fixed_assignments: Optional[FixedAssignments]) -> dict[str, set[str]]:
    """Stringify IDs so lookups don't depend on the caller's ID type."""
    if not fixed_assignments:
        return {}
    return {
        str(guard_id): {str(area_id) for area_id in area_ids}
        for guard_id, area_ids in fixed_assignments.items()
    }


def generate_weekly_shifts(
    guards: list[Guard],
    areas: list[Area],
    week: WeekRef,
    fixed_assignments: Optional[FixedAssignments] = None,
    manual_shifts: Optional[Iterable[ManualShift]] = None,
    config: Optional[GeneratorConfig] = None,
) -> list[Shift]:
    """Generate a week of shifts and return them, manual shifts first.

    Convenience wrapper around WeeklyShiftGenerator.generate.

    Raises:
        InsufficientResourcesError: If no guards or no areas are supplied.
    """
    generator = WeeklyShiftGenerator(config)
    return generator.generate(
        guards, areas, week, fixed_assignments, manual_shifts
    ).shifts

