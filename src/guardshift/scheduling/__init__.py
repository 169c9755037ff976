"""Scheduling engine for generating guard shifts and handling leave."""

from guardshift.scheduling.cpsat_rotation import (
    CPSATRotationBuilder,
    CPSATRotationSolver,
    RotationSolverConfig,
    RotationSolveResult,
)
from guardshift.scheduling.fixed_assignments import (
    FixedAreaStat,
    FixedAssignmentResolver,
    merge_fixed_assignments,
)
from guardshift.scheduling.leave import (
    LeaveManager,
    ReplacementCandidate,
    ReplacementOptions,
    find_replacement_guard,
    reassign_shifts,
)
from guardshift.scheduling.roster import ShiftRoster
from guardshift.scheduling.rotation import (
    RotationBuilder,
    SeededRotationBuilder,
    ShuffledRotationBuilder,
)
from guardshift.scheduling.scheduler import (
    ScheduleRunResult,
    SchedulerConfig,
    ShiftScheduler,
)
from guardshift.scheduling.weekly_generator import (
    GenerationResult,
    GeneratorConfig,
    RotationStrategy,
    WeeklyShiftGenerator,
    generate_weekly_shifts,
)

__all__ = [
    # Generation
    "WeeklyShiftGenerator",
    "GeneratorConfig",
    "GenerationResult",
    "RotationStrategy",
    "generate_weekly_shifts",
    # Rotations
    "RotationBuilder",
    "ShuffledRotationBuilder",
    "SeededRotationBuilder",
    "CPSATRotationBuilder",
    "CPSATRotationSolver",
    "RotationSolverConfig",
    "RotationSolveResult",
    # Fixed assignments
    "FixedAreaStat",
    "FixedAssignmentResolver",
    "merge_fixed_assignments",
    # Roster and orchestration
    "ShiftRoster",
    "ShiftScheduler",
    "SchedulerConfig",
    "ScheduleRunResult",
    # Leave
    "LeaveManager",
    "ReplacementCandidate",
    "ReplacementOptions",
    "find_replacement_guard",
    "reassign_shifts",
]
