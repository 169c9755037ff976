"""OR-Tools CP-SAT solver for conflict-aware rotations.

The generator looks up the guard for a slot as
``rotation[shift_type][day % len(rotation)]`` independently per area and
shift type, so a randomly shuffled rotation can put one guard into two
slots on the same day (two shift types of one area, or two areas). This
module chooses all rotation permutations jointly so that the round-robin
lookup itself produces as few same-day double bookings as possible while
keeping weekly load balanced.
"""

from dataclasses import dataclass
from typing import Optional

from ortools.sat.python import cp_model

from guardshift.domain.calendar import DAYS_PER_WEEK
from guardshift.domain.models import SHIFT_TYPE_ORDER, Guard, ShiftType, WeekRef
from guardshift.scheduling.rotation import RotationBuilder, Rotations


@dataclass
class RotationSolverConfig:
    """Configuration for the CP-SAT rotation solver.

    Attributes:
        time_limit_seconds: Maximum solver runtime.
        num_workers: Number of parallel workers (0 = auto).
        double_booking_weight: Penalty per extra same-day booking of a guard.
        balance_weight: Penalty per shift of spread between the most and
            least loaded guard.
        max_variables: Largest model (in boolean variables) the hybrid
            strategy will hand to CP-SAT.
        random_seed: Solver seed, for reproducible rotations.
    """

    time_limit_seconds: float = 10.0
    num_workers: int = 0
    double_booking_weight: int = 100
    balance_weight: int = 1
    max_variables: int = 20000
    random_seed: Optional[int] = None


@dataclass
class RotationSolveResult:
    """Result from the CP-SAT rotation solver.

    Attributes:
        rotations: The chosen rotations, or None if no solution was found.
        status: Solver status (OPTIMAL, FEASIBLE, etc.).
        objective_value: Final objective value.
        double_bookings: Same-day double bookings left in the solution.
        solve_time_seconds: Time taken to solve.
    """

    rotations: Optional[Rotations]
    status: str
    objective_value: int = 0
    double_bookings: int = 0
    solve_time_seconds: float = 0.0

    @property
    def is_optimal(self) -> bool:
        return self.status == "OPTIMAL"

    @property
    def is_feasible(self) -> bool:
        return self.status in ("OPTIMAL", "FEASIBLE")


def count_variables(pools: dict[str, list[Guard]]) -> int:
    """Number of position variables the model needs for these pools."""
    return sum(len(SHIFT_TYPE_ORDER) * len(pool) ** 2 for pool in pools.values())


class CPSATRotationSolver:
    """Constraint Programming rotation solver using OR-Tools CP-SAT.

    Decision variable ``x[a, t, g, p]`` is 1 when guard ``g`` sits at
    position ``p`` of area ``a``'s rotation for shift type ``t``. Each
    rotation is constrained to be a permutation of the area's pool, and
    day ``d`` reads position ``d % pool_size``.
    """

    def __init__(self, config: Optional[RotationSolverConfig] = None):
        self.config = config or RotationSolverConfig()

    def solve(self, pools: dict[str, list[Guard]], week: WeekRef) -> RotationSolveResult:
        """Solve for rotations of every area.

        Args:
            pools: Dict mapping area IDs to their non-empty eligible guard pools.
            week: The week being generated (used only in variable names).

        Returns:
            RotationSolveResult with rotations and solver statistics.
        """
        model = cp_model.CpModel()

        guards_by_id: dict[str, Guard] = {}
        for pool in pools.values():
            for guard in pool:
                guards_by_id[str(guard.id)] = guard

        # x[(area_id, shift_type, guard_id, position)]
        x: dict[tuple[str, ShiftType, str, int], cp_model.IntVar] = {}
        for area_id, pool in pools.items():
            size = len(pool)
            for shift_type in SHIFT_TYPE_ORDER:
                for guard in pool:
                    gid = str(guard.id)
                    for position in range(size):
                        x[(area_id, shift_type, gid, position)] = model.NewBoolVar(
                            f"x_{week}_{area_id}_{shift_type.value}_{gid}_{position}"
                        )

                # Constraint 1: rotation is a permutation of the pool
                for guard in pool:
                    model.AddExactlyOne(
                        [x[(area_id, shift_type, str(guard.id), p)] for p in range(size)]
                    )
                for position in range(size):
                    model.AddExactlyOne(
                        [x[(area_id, shift_type, str(g.id), position)] for g in pool]
                    )

        # Daily bookings per guard under the round-robin lookup
        excess_vars = []
        weekly_load: dict[str, list] = {gid: [] for gid in guards_by_id}
        for gid in guards_by_id:
            for day in range(DAYS_PER_WEEK):
                booked = []
                for area_id, pool in pools.items():
                    if not any(str(g.id) == gid for g in pool):
                        continue
                    position = day % len(pool)
                    for shift_type in SHIFT_TYPE_ORDER:
                        booked.append(x[(area_id, shift_type, gid, position)])
                if not booked:
                    continue
                weekly_load[gid].extend(booked)
                if len(booked) > 1:
                    # Constraint 2: excess >= bookings - 1
                    excess = model.NewIntVar(0, len(booked) - 1, f"excess_{gid}_{day}")
                    model.Add(excess >= sum(booked) - 1)
                    excess_vars.append(excess)

        objective_terms = []
        if excess_vars and self.config.double_booking_weight > 0:
            objective_terms.append(self.config.double_booking_weight * sum(excess_vars))

        if self.config.balance_weight > 0 and len(weekly_load) > 1:
            max_load = DAYS_PER_WEEK * len(SHIFT_TYPE_ORDER) * max(1, len(pools))
            loads = []
            for gid, terms in weekly_load.items():
                load = model.NewIntVar(0, max_load, f"load_{gid}")
                model.Add(load == sum(terms))
                loads.append(load)
            highest = model.NewIntVar(0, max_load, "load_max")
            lowest = model.NewIntVar(0, max_load, "load_min")
            model.AddMaxEquality(highest, loads)
            model.AddMinEquality(lowest, loads)
            objective_terms.append(self.config.balance_weight * (highest - lowest))

        if objective_terms:
            model.Minimize(sum(objective_terms))

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = self.config.time_limit_seconds
        if self.config.num_workers > 0:
            solver.parameters.num_workers = self.config.num_workers
        if self.config.random_seed is not None:
            solver.parameters.random_seed = self.config.random_seed

        status = solver.Solve(model)

        status_map = {
            cp_model.OPTIMAL: "OPTIMAL",
            cp_model.FEASIBLE: "FEASIBLE",
            cp_model.INFEASIBLE: "INFEASIBLE",
            cp_model.MODEL_INVALID: "MODEL_INVALID",
            cp_model.UNKNOWN: "UNKNOWN",
        }
        status_str = status_map.get(status, "UNKNOWN")

        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            return RotationSolveResult(
                rotations=None,
                status=status_str,
                solve_time_seconds=solver.WallTime(),
            )

        rotations = self._extract_rotations(solver, x, pools)

        return RotationSolveResult(
            rotations=rotations,
            status=status_str,
            objective_value=int(solver.ObjectiveValue()) if objective_terms else 0,
            double_bookings=sum(int(solver.Value(e)) for e in excess_vars),
            solve_time_seconds=solver.WallTime(),
        )

    def _extract_rotations(
        self,
        solver: cp_model.CpSolver,
        x: dict[tuple[str, ShiftType, str, int], cp_model.IntVar],
        pools: dict[str, list[Guard]],
    ) -> Rotations:
        """Read the chosen permutations back out of the solved model."""
        rotations: Rotations = {}
        for area_id, pool in pools.items():
            rotations[area_id] = {}
            for shift_type in SHIFT_TYPE_ORDER:
                order = []
                for position in range(len(pool)):
                    for guard in pool:
                        if solver.Value(x[(area_id, shift_type, str(guard.id), position)]) == 1:
                            order.append(guard)
                            break
                rotations[area_id][shift_type] = order
        return rotations


class CPSATRotationBuilder(RotationBuilder):
    """Rotation builder backed by the CP-SAT solver.

    Falls back to ``fallback`` (normally a shuffled builder) when the
    solver finds no solution. The last solve result is kept on
    ``last_result`` for reporting.
    """

    name = "cpsat"

    def __init__(
        self,
        fallback: RotationBuilder,
        config: Optional[RotationSolverConfig] = None,
    ):
        self.fallback = fallback
        self.solver = CPSATRotationSolver(config)
        self.last_result: Optional[RotationSolveResult] = None
        self.used = self.name

    def build(self, pools: dict[str, list[Guard]], week: WeekRef) -> Rotations:
        if not pools:
            self.used = self.name
            return {}
        result = self.solver.solve(pools, week)
        self.last_result = result
        if result.is_feasible and result.rotations is not None:
            self.used = self.name
            return result.rotations
        self.used = self.fallback.name
        return self.fallback.build(pools, week)
