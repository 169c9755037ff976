"""Tests for weekly shift generation.

Rotations are randomized by default, so most tests assert properties
that hold for every run: coverage, exclusions, manual precedence, the
Friday remap and time invariants. Exact guard-to-slot mappings are only
asserted for the deterministic seeded strategy.
"""

from collections import Counter, defaultdict
from datetime import date, timedelta

import pytest

from guardshift.domain.calendar import GregorianWeekCalendar, JalaliWeekCalendar
from guardshift.domain.errors import InsufficientResourcesError
from guardshift.domain.models import (
    Area,
    Guard,
    ManualShift,
    ShiftStatus,
    ShiftType,
    WeekRef,
)
from guardshift.scheduling.weekly_generator import (
    GeneratorConfig,
    RotationStrategy,
    WeeklyShiftGenerator,
    generate_weekly_shifts,
)

WEEK = WeekRef(number=2, year=2024)
SATURDAY = date(2024, 1, 6)
FRIDAY = date(2024, 1, 12)


def make_generator(strategy=RotationStrategy.SHUFFLE, **kwargs) -> WeeklyShiftGenerator:
    return WeeklyShiftGenerator(
        GeneratorConfig(
            rotation_strategy=strategy,
            calendar=GregorianWeekCalendar(),
            **kwargs,
        )
    )


@pytest.fixture
def guards():
    """Three active guards."""
    return [
        Guard(id="g1", name="Ali"),
        Guard(id="g2", name="Reza"),
        Guard(id="g3", name="Sara"),
    ]


@pytest.fixture
def area():
    """A single area."""
    return Area(id="a1", name="Main Gate")


class TestCoverage:
    """Tests for the 21-shifts-per-area coverage rule."""

    def test_three_guards_one_area(self, guards, area):
        """3 guards and 1 area give 21 shifts covering 7 days x 3 types."""
        result = make_generator().generate(guards, [area], WEEK)

        assert len(result.shifts) == 21
        assert len(result.generated_shifts) == 21
        assert result.manual_shifts == []
        per_day = Counter(s.shift_date for s in result.shifts)
        assert sorted(per_day) == [SATURDAY + timedelta(days=i) for i in range(7)]
        assert all(count == 3 for count in per_day.values())
        assert {s.guard_id for s in result.shifts} <= {"g1", "g2", "g3"}

    def test_each_day_covers_every_type(self, guards, area):
        """Every day of the week has one morning, afternoon and night shift."""
        result = make_generator().generate(guards, [area], WEEK)

        types_per_day = defaultdict(list)
        for shift in result.shifts:
            types_per_day[shift.shift_date].append(shift.shift_type)
        for types in types_per_day.values():
            assert sorted(t.value for t in types) == ["afternoon", "morning", "night"]

    def test_multiple_areas(self, guards):
        """Each area gets its own 21 shifts."""
        areas = [Area(id="a1", name="Gate"), Area(id="a2", name="Lobby")]
        result = make_generator().generate(guards, areas, WEEK)

        per_area = Counter(s.area_id for s in result.shifts)
        assert per_area == {"a1": 21, "a2": 21}
        assert result.get_summary()["generated_per_area"] == {"a1": 21, "a2": 21}

    def test_single_guard_covers_everything(self, area):
        """A pool of one guard still covers every slot."""
        result = make_generator().generate([Guard(id="g1", name="Ali")], [area], WEEK)
        assert len(result.shifts) == 21
        assert {s.guard_id for s in result.shifts} == {"g1"}

    def test_all_shifts_scheduled_and_automatic(self, guards, area):
        """Generated shifts start scheduled and are not manual."""
        result = make_generator().generate(guards, [area], WEEK)
        assert all(s.status == ShiftStatus.SCHEDULED for s in result.shifts)
        assert not any(s.is_manual for s in result.shifts)
        assert len({s.id for s in result.shifts}) == 21


class TestTimeInvariants:
    """Tests for shift timestamps."""

    def test_end_follows_start(self, guards, area):
        """Every shift ends after it starts and lasts 8 hours."""
        result = make_generator().generate(guards, [area], WEEK)
        for shift in result.shifts:
            assert shift.end_time > shift.start_time
            assert shift.duration == timedelta(hours=8)

    def test_night_ends_next_day(self, guards, area):
        """Night shifts end on the calendar day after they start."""
        result = make_generator().generate(guards, [area], WEEK)
        nights = [s for s in result.shifts if s.shift_type == ShiftType.NIGHT]
        assert len(nights) == 7
        for shift in nights:
            assert shift.end_time.date() == shift.start_time.date() + timedelta(days=1)
            assert shift.start_time.hour == 23
            assert shift.end_time.hour == 7

    def test_jalali_week(self, guards, area):
        """The default calendar locates Jalali weeks."""
        generator = WeeklyShiftGenerator(GeneratorConfig(calendar=JalaliWeekCalendar()))
        result = generator.generate(guards, [area], WeekRef(number=1, year=1403))
        assert result.week_start == date(2024, 3, 16)
        assert min(s.shift_date for s in result.shifts) == date(2024, 3, 16)
        assert max(s.shift_date for s in result.shifts) == date(2024, 3, 22)


class TestFridayRemap:
    """Tests for the Friday shift type rotation."""

    def test_friday_types_with_seeded_rotation(self, guards, area):
        """Friday's slots emit the remapped types."""
        result = make_generator(RotationStrategy.SEEDED).generate(guards, [area], WEEK)

        friday = {s.guard_id: s.shift_type for s in result.shifts if s.shift_date == FRIDAY}
        # Seeded week 2: morning [g3, g1, g2], afternoon [g1, g2, g3], night [g2, g3, g1]
        # Day 6 reads position 0 of each rotation.
        assert friday == {
            "g3": ShiftType.NIGHT,
            "g1": ShiftType.MORNING,
            "g2": ShiftType.AFTERNOON,
        }

    def test_friday_times_match_types(self, guards, area):
        """Remapped Friday shifts use their new type's clock window."""
        result = make_generator().generate(guards, [area], WEEK)
        for shift in result.shifts:
            if shift.shift_date == FRIDAY:
                assert shift.start_time.hour == shift.shift_type.start_hour


class TestFixedAssignments:
    """Tests for fixed assignment exclusion."""

    def test_fixed_guard_excluded(self, guards, area):
        """A guard fixed to an area never appears in its generated shifts."""
        for _ in range(5):
            result = make_generator().generate(
                guards, [area], WEEK, fixed_assignments={"g1": {"a1"}}
            )
            assert len(result.shifts) == 21
            assert "g1" not in {s.guard_id for s in result.shifts}

    def test_only_guard_fixed_leaves_area_uncovered(self, area):
        """If the only guard is fixed to the area, it gets no shifts."""
        result = make_generator().generate(
            [Guard(id="g1", name="Ali")], [area], WEEK, fixed_assignments={"g1": {"a1"}}
        )
        assert result.shifts == []
        assert result.skipped_areas == ["a1"]

    def test_fixed_to_one_area_still_rotates_elsewhere(self, guards):
        """Fixed assignment only removes the guard from that area's pool."""
        areas = [Area(id="a1", name="Gate"), Area(id="a2", name="Lobby")]
        result = make_generator(RotationStrategy.SEEDED).generate(
            guards, areas, WEEK, fixed_assignments={"g1": {"a1"}}
        )
        assert "g1" not in {s.guard_id for s in result.shifts if s.area_id == "a1"}
        assert "g1" in {s.guard_id for s in result.shifts if s.area_id == "a2"}


class TestManualShifts:
    """Tests for manual shift precedence."""

    def test_manual_shift_included(self, guards, area):
        """The manual shift is emitted and tagged."""
        manual = ManualShift("g2", "a1", 0, ShiftType.MORNING)
        result = make_generator().generate(guards, [area], WEEK, manual_shifts=[manual])

        assert len(result.manual_shifts) == 1
        shift = result.manual_shifts[0]
        assert shift.is_manual
        assert shift.guard_id == "g2"
        assert shift.shift_type == ShiftType.MORNING
        assert shift.shift_date == SATURDAY
        assert result.shifts[0] is shift

    def test_no_automatic_shift_for_manual_guard_day(self, guards, area):
        """The manual guard gets no generated shift on the manual day."""
        manual = ManualShift("g2", "a1", 0, "morning")
        for _ in range(10):
            result = make_generator().generate(guards, [area], WEEK, manual_shifts=[manual])
            saturday = [s for s in result.generated_shifts if s.shift_date == SATURDAY]
            assert "g2" not in {s.guard_id for s in saturday}
            assert len(result.generated_shifts) == 21 - len(result.suppressed)

    def test_manual_suppresses_rotation_slot(self, guards, area):
        """With a seeded rotation the suppressed slot is known exactly."""
        # Seeded week 2 puts g3 on Saturday morning
        manual = ManualShift("g3", "a1", 0, "morning")
        result = make_generator(RotationStrategy.SEEDED).generate(
            guards, [area], WEEK, manual_shifts=[manual]
        )

        assert result.suppressed == [("g3", "a1", 0, ShiftType.MORNING)]
        assert len(result.shifts) == 21
        saturday = [s for s in result.shifts if s.shift_date == SATURDAY]
        mornings = [s for s in saturday if s.shift_type == ShiftType.MORNING]
        assert len(mornings) == 1
        assert mornings[0].is_manual

    def test_suppression_matches_any_type(self, guards, area):
        """A manual shift suppresses the guard's slots regardless of type."""
        # Seeded week 2 puts g1 on Saturday afternoon
        manual = ManualShift("g1", "a1", 0, "night")
        result = make_generator(RotationStrategy.SEEDED).generate(
            guards, [area], WEEK, manual_shifts=[manual]
        )
        assert result.suppressed == [("g1", "a1", 0, ShiftType.AFTERNOON)]

    def test_suppression_spans_areas(self, guards, area):
        """A manual shift in one area suppresses the guard's slots in every area."""
        # Seeded week 2 puts g3 on Saturday morning in both areas
        gate = Area(id="a2", name="Parking")
        manual = ManualShift("g3", "a1", 0, "morning")
        result = make_generator(RotationStrategy.SEEDED).generate(
            guards, [area, gate], WEEK, manual_shifts=[manual]
        )

        assert result.suppressed == [
            ("g3", "a1", 0, ShiftType.MORNING),
            ("g3", "a2", 0, ShiftType.MORNING),
        ]
        saturday_a2 = [
            s for s in result.generated_shifts
            if s.area_id == "a2" and s.shift_date == SATURDAY
        ]
        assert "g3" not in {s.guard_id for s in saturday_a2}
        assert len(saturday_a2) == 2
        assert len(result.shifts) == 1 + 42 - 2

    def test_malformed_manual_entries_skipped(self, guards, area):
        """Incomplete manual entries are dropped without failing the run."""
        manual = [
            ManualShift(None, "a1", 0, "morning"),
            ManualShift("g1", "a1", 7, "morning"),
            ManualShift("g1", "a1", 0, "evening"),
        ]
        result = make_generator().generate(guards, [area], WEEK, manual_shifts=manual)

        assert len(result.skipped_manual) == 3
        assert result.manual_shifts == []
        assert len(result.shifts) == 21


class TestPreconditions:
    """Tests for generation preconditions."""

    def test_no_guards(self, area):
        """Generation without guards fails."""
        with pytest.raises(InsufficientResourcesError):
            make_generator().generate([], [area], WEEK)

    def test_no_areas(self, guards):
        """Generation without areas fails."""
        with pytest.raises(InsufficientResourcesError):
            make_generator().generate(guards, [], WEEK)


class TestRotationStrategies:
    """Tests for the rotation strategies."""

    def test_seeded_is_deterministic(self, guards, area):
        """The seeded strategy gives the same mapping every run."""
        first = make_generator(RotationStrategy.SEEDED).generate(guards, [area], WEEK)
        second = make_generator(RotationStrategy.SEEDED).generate(guards, [area], WEEK)

        def mapping(result):
            return [(s.shift_date, s.shift_type, s.guard_id) for s in result.shifts]

        assert mapping(first) == mapping(second)

    def test_seeded_saturday(self, guards, area):
        """Seeded week 2 Saturday: morning g3, afternoon g1, night g2."""
        result = make_generator(RotationStrategy.SEEDED).generate(guards, [area], WEEK)
        saturday = {s.shift_type: s.guard_id for s in result.shifts if s.shift_date == SATURDAY}
        assert saturday == {
            ShiftType.MORNING: "g3",
            ShiftType.AFTERNOON: "g1",
            ShiftType.NIGHT: "g2",
        }

    def test_shuffle_seed_reproducible(self, guards, area):
        """The same seed reproduces a shuffled rotation."""
        first = make_generator(seed=42).generate(guards, [area], WEEK)
        second = make_generator(seed=42).generate(guards, [area], WEEK)
        assert [s.guard_id for s in first.shifts] == [s.guard_id for s in second.shifts]

    def test_cpsat_avoids_double_booking(self, guards, area):
        """CP-SAT rotations give each guard one shift per day."""
        result = make_generator(RotationStrategy.CPSAT).generate(guards, [area], WEEK)

        assert result.rotation_strategy_used == "cpsat"
        assert len(result.shifts) == 21
        per_guard_day = Counter((s.guard_id, s.shift_date) for s in result.shifts)
        assert max(per_guard_day.values()) == 1
        assert Counter(s.guard_id for s in result.shifts) == {"g1": 7, "g2": 7, "g3": 7}

    def test_hybrid_uses_cpsat_for_small_models(self, guards, area):
        """Small models go to CP-SAT."""
        result = make_generator(RotationStrategy.HYBRID).generate(guards, [area], WEEK)
        assert result.rotation_strategy_used == "cpsat"

    def test_hybrid_falls_back_for_large_models(self, guards, area):
        """Models above the variable limit are shuffled."""
        from guardshift.scheduling.cpsat_rotation import RotationSolverConfig

        generator = make_generator(
            RotationStrategy.HYBRID,
            solver_config=RotationSolverConfig(max_variables=1),
        )
        result = generator.generate(guards, [area], WEEK)
        assert result.rotation_strategy_used == "shuffle"
        assert len(result.shifts) == 21


class TestGenerateWeeklyShifts:
    """Tests for the module-level convenience function."""

    def test_returns_manual_first(self, guards, area):
        """Manual shifts come before generated ones."""
        shifts = generate_weekly_shifts(
            guards,
            [area],
            WEEK,
            manual_shifts=[ManualShift("g1", "a1", 3, "night")],
            config=GeneratorConfig(calendar=GregorianWeekCalendar()),
        )
        assert shifts[0].is_manual
        assert not any(s.is_manual for s in shifts[1:])
