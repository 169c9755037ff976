"""Tests for the scheduler unit of work."""

from datetime import date, timedelta

import pytest

from guardshift.domain.calendar import GregorianWeekCalendar, get_shift_times
from guardshift.domain.errors import DuplicateWeekError, InsufficientResourcesError
from guardshift.domain.models import (
    Area,
    Guard,
    GuardStatus,
    ManualShift,
    Shift,
    ShiftType,
    WeekRef,
)
from guardshift.scheduling.roster import ShiftRoster
from guardshift.scheduling.scheduler import SchedulerConfig, ShiftScheduler
from guardshift.scheduling.weekly_generator import (
    GeneratorConfig,
    RotationStrategy,
    WeeklyShiftGenerator,
)

WEEK = WeekRef(number=2, year=2024)


def make_roster(guard_count: int = 4, area_count: int = 2) -> ShiftRoster:
    return ShiftRoster(
        guards=[Guard(id=f"g{i}", name=f"Guard {i}") for i in range(1, guard_count + 1)],
        areas=[Area(id=f"a{i}", name=f"Area {i}") for i in range(1, area_count + 1)],
    )


def make_scheduler(roster: ShiftRoster, strategy=RotationStrategy.SEEDED, **config) -> ShiftScheduler:
    generator = WeeklyShiftGenerator(
        GeneratorConfig(rotation_strategy=strategy, calendar=GregorianWeekCalendar())
    )
    return ShiftScheduler(roster, config=SchedulerConfig(**config), generator=generator)


class TestGenerateWeek:
    """Tests for ShiftScheduler.generate_week."""

    def test_generates_and_stores(self):
        """A week is generated for every active area and stored."""
        roster = make_roster()
        run = make_scheduler(roster).generate_week(WEEK)

        assert len(run.shifts) == 42
        assert len(roster.shifts) == 42
        assert run.validation is not None
        assert run.validation.is_valid

    def test_manual_shifts_pass_through(self):
        """Manual shifts are generated, validated and stored."""
        roster = make_roster()
        run = make_scheduler(roster).generate_week(
            WEEK, manual_shifts=[ManualShift("g1", "a1", 2, "afternoon")]
        )

        assert len(run.generation.manual_shifts) == 1
        assert run.validation.is_valid
        manual = [s for s in roster.shifts.values() if s.is_manual]
        assert len(manual) == 1
        assert manual[0].shift_date == date(2024, 1, 8)

    def test_inactive_records_skipped(self):
        """Only active guards and areas are scheduled."""
        roster = make_roster(guard_count=4, area_count=2)
        roster.set_guard_status("g4", GuardStatus.ON_LEAVE)
        roster.get_area("a2").is_active = False
        run = make_scheduler(roster).generate_week(WEEK)

        assert len(run.shifts) == 21
        assert {s.area_id for s in run.shifts} == {"a1"}
        assert "g4" not in {s.guard_id for s in run.shifts}

    def test_minimum_active_guards(self):
        """Fewer than three active guards is refused."""
        roster = make_roster(guard_count=2)
        with pytest.raises(InsufficientResourcesError):
            make_scheduler(roster).generate_week(WEEK)
        assert roster.shifts == {}

    def test_minimum_is_configurable(self):
        """The operational minimum can be lowered."""
        roster = make_roster(guard_count=1, area_count=1)
        run = make_scheduler(roster, min_active_guards=1).generate_week(WEEK)
        assert len(run.shifts) == 21

    def test_requires_active_area(self):
        """At least one active area is required."""
        roster = make_roster(area_count=1)
        roster.get_area("a1").is_active = False
        with pytest.raises(InsufficientResourcesError):
            make_scheduler(roster).generate_week(WEEK)

    def test_regeneration_refused(self):
        """Generating a week twice is refused by default."""
        roster = make_roster()
        scheduler = make_scheduler(roster)
        scheduler.generate_week(WEEK)

        with pytest.raises(DuplicateWeekError):
            scheduler.generate_week(WEEK)
        assert len(roster.shifts) == 42

    def test_next_week_allowed(self):
        """A neighbouring week is not a duplicate."""
        roster = make_roster()
        scheduler = make_scheduler(roster)
        scheduler.generate_week(WEEK)
        scheduler.generate_week(WeekRef(number=3, year=2024))
        assert len(roster.shifts) == 84

    def test_regeneration_allowed_when_configured(self):
        """Regeneration can be enabled explicitly."""
        roster = make_roster()
        scheduler = make_scheduler(roster, allow_regeneration=True)
        scheduler.generate_week(WEEK)
        scheduler.generate_week(WEEK)
        assert len(roster.shifts) == 84


class TestHistoryFixedAssignments:
    """Tests for fixed assignments derived from shift history."""

    @pytest.fixture
    def roster(self):
        """g1 was manually placed only in a1 during the ten days before the target week."""
        roster = make_roster()
        for offset in range(1, 11):
            day = date(2024, 1, 6) - timedelta(days=offset)
            start, end = get_shift_times(day, ShiftType.MORNING)
            roster.add_shift(
                Shift(guard_id="g1", area_id="a1", start_time=start, end_time=end,
                      shift_type=ShiftType.MORNING, is_manual=True)
            )
        return roster

    def test_history_excludes_dense_guard(self, roster):
        """A guard fixed by history is kept out of that area's rotation."""
        run = make_scheduler(roster, use_history=True).generate_week(WEEK)

        assert run.fixed_assignments == {"g1": {"a1"}}
        generated = run.generation.generated_shifts
        assert "g1" not in {s.guard_id for s in generated if s.area_id == "a1"}
        assert "g1" in {s.guard_id for s in generated if s.area_id == "a2"}
        assert run.validation.is_valid

    def test_history_can_be_disabled(self, roster):
        """Without history no fixed assignment is derived."""
        run = make_scheduler(roster, use_history=True).generate_week(WEEK, use_history=False)
        assert run.fixed_assignments == {}

    def test_explicit_assignments_merged(self, roster):
        """Explicit fixed assignments are added to the derived ones."""
        run = make_scheduler(roster, use_history=True).generate_week(
            WEEK, fixed_assignments={"g2": {"a2"}}
        )
        assert run.fixed_assignments == {"g1": {"a1"}, "g2": {"a2"}}

    def test_history_off_by_default(self, roster):
        """The default config ignores history."""
        run = make_scheduler(roster).generate_week(WEEK)
        assert run.fixed_assignments == {}

    @pytest.mark.parametrize("use_history", [False, True])
    def test_consecutive_weeks_keep_full_coverage(self, use_history):
        """A generated week never excludes its guards from the next one."""
        roster = make_roster(guard_count=3, area_count=1)
        scheduler = make_scheduler(roster, use_history=use_history)

        first = scheduler.generate_week(WEEK)
        second = scheduler.generate_week(WeekRef(number=3, year=2024))

        assert len(first.shifts) == 21
        assert len(second.shifts) == 21
        assert second.fixed_assignments == {}
        assert second.generation.skipped_areas == []

    def test_explicit_assignments_do_not_cascade(self):
        """Guards kept out of one area are not fixed out of the other next week."""
        roster = make_roster(guard_count=4, area_count=2)
        scheduler = make_scheduler(roster, use_history=True)

        scheduler.generate_week(WEEK, fixed_assignments={"g1": {"a2"}})
        second = scheduler.generate_week(WeekRef(number=3, year=2024))

        assert second.fixed_assignments == {}
        assert "g1" in {s.guard_id for s in second.shifts if s.area_id == "a1"}


class TestGenerateWeekWithStats:
    """Tests for generation statistics."""

    def test_stats(self):
        """Stats count shifts per area, guard and type."""
        roster = make_roster(guard_count=3, area_count=1)
        run, stats = make_scheduler(roster).generate_week_with_stats(WEEK)

        assert stats["total_shifts"] == 21
        assert stats["shifts_per_area"] == {"a1": 21}
        assert stats["shifts_per_type"] == {"morning": 7, "afternoon": 7, "night": 7}
        assert stats["shifts_per_guard"] == {"g1": 7, "g2": 7, "g3": 7}
        assert stats["min_guard_shifts"] == stats["max_guard_shifts"] == 7
        assert stats["rotation_strategy"] == "seeded"
        assert stats["is_valid"] is True
