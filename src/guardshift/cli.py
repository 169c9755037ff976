"""Command-line interface for the guardshift scheduling tool."""

import argparse
import json
import logging
import sys
from datetime import date
from typing import Optional

from guardshift.domain.calendar import CALENDARS, get_calendar
from guardshift.domain.errors import SchedulingError
from guardshift.domain.models import Area, Guard, ManualShift, Shift, WeekRef
from guardshift.scheduling.cpsat_rotation import RotationSolverConfig
from guardshift.scheduling.roster import ShiftRoster
from guardshift.scheduling.scheduler import SchedulerConfig, ShiftScheduler
from guardshift.scheduling.weekly_generator import (
    GeneratorConfig,
    RotationStrategy,
    WeeklyShiftGenerator,
)

DAY_NAMES = ["Saturday", "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


def create_sample_guards(count: int = 6) -> list[Guard]:
    """Create sample guards with IDs g1..gN."""
    names = [
        "Ali", "Reza", "Sara", "Maryam", "Hossein", "Neda", "Omid", "Leila",
        "Kian", "Parisa", "Babak", "Shirin", "Dariush", "Mina", "Arash", "Nazanin",
    ]
    guards = []
    for i in range(count):
        name = names[i % len(names)]
        if i >= len(names):
            name = f"{name}{i // len(names) + 1}"
        guards.append(Guard(id=f"g{i + 1}", name=name))
    return guards


def create_sample_areas(count: int = 2) -> list[Area]:
    """Create sample areas with IDs a1..aN."""
    names = ["Main Gate", "Parking", "Lobby", "Warehouse", "Server Room", "Rear Gate"]
    areas = []
    for i in range(count):
        name = names[i % len(names)]
        if i >= len(names):
            name = f"{name} {i // len(names) + 1}"
        areas.append(Area(id=f"a{i + 1}", name=name))
    return areas


def parse_manual(value: str) -> ManualShift:
    """Parse GUARD:AREA:DAY:TYPE into a manual shift request.

    A non-numeric day is kept as missing so the generator skips the entry.
    """
    parts = value.split(":")
    if len(parts) != 4:
        raise argparse.ArgumentTypeError(
            f"manual shift must look like GUARD:AREA:DAY:TYPE, got {value!r}"
        )
    guard_id, area_id, day, shift_type = parts
    day_index = int(day) if day.strip().lstrip("-").isdigit() else None
    return ManualShift(guard_id or None, area_id or None, day_index, shift_type)


def parse_fixed(value: str) -> tuple[str, str]:
    """Parse GUARD:AREA into a fixed assignment pair."""
    parts = value.split(":")
    if len(parts) != 2 or not all(parts):
        raise argparse.ArgumentTypeError(
            f"fixed assignment must look like GUARD:AREA, got {value!r}"
        )
    return parts[0], parts[1]


def shift_to_dict(shift: Shift) -> dict:
    return {
        "id": shift.id,
        "guard_id": shift.guard_id,
        "area_id": shift.area_id,
        "start_time": shift.start_time.isoformat(),
        "end_time": shift.end_time.isoformat(),
        "shift_type": shift.shift_type.value,
        "status": shift.status.value,
        "is_manual": shift.is_manual,
    }


def resolve_week(calendar_name: str, week: Optional[int], year: Optional[int]) -> WeekRef:
    """Fill in the current week or year where not given."""
    calendar = get_calendar(calendar_name)
    current = calendar.week_of(date.today())
    return WeekRef(
        number=week if week is not None else current.number,
        year=year if year is not None else current.year,
    )


def run_generate(args: argparse.Namespace) -> int:
    """Generate a week for sample guards and areas and print it."""
    guards = create_sample_guards(args.guards)
    areas = create_sample_areas(args.areas)
    week = resolve_week(args.calendar, args.week, args.year)

    fixed: dict[str, set[str]] = {}
    for guard_id, area_id in args.fixed or []:
        fixed.setdefault(guard_id, set()).add(area_id)

    generator = WeeklyShiftGenerator(
        GeneratorConfig(
            rotation_strategy=RotationStrategy(args.rotation),
            seed=args.seed,
            calendar=get_calendar(args.calendar),
            solver_config=RotationSolverConfig(
                time_limit_seconds=args.time_limit,
                random_seed=args.seed,
            ),
        )
    )
    scheduler = ShiftScheduler(
        ShiftRoster(guards=guards, areas=areas),
        config=SchedulerConfig(use_history=False),
        generator=generator,
    )

    try:
        run, stats = scheduler.generate_week_with_stats(
            week, manual_shifts=args.manual, fixed_assignments=fixed
        )
    except SchedulingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps([shift_to_dict(s) for s in run.shifts], indent=2))
        return 0

    guard_names = {g.id: g.name for g in guards}
    area_names = {a.id: a.name for a in areas}

    print(f"Week {week} ({args.calendar}) starting {stats['week_start']}")
    print(f"  Guards: {len(guards)}, areas: {len(areas)}, rotation: {stats['rotation_strategy']}")
    print(f"  Shifts: {stats['total_shifts']} "
          f"({stats['manual_shifts']} manual, {stats['generated_shifts']} generated)")
    if stats["skipped_areas"]:
        print(f"  Uncovered areas: {', '.join(stats['skipped_areas'])}")
    if stats["skipped_manual"]:
        print(f"  Skipped manual shifts: {stats['skipped_manual']}")
    print(f"  Shifts per guard: min={stats['min_guard_shifts']}, max={stats['max_guard_shifts']}")

    print()
    for shift in sorted(run.shifts, key=lambda s: (s.start_time, str(s.area_id))):
        marker = " (manual)" if shift.is_manual else ""
        print(
            f"  {shift.start_time:%Y-%m-%d %a %H:%M}-{shift.end_time:%H:%M} "
            f"{shift.shift_type.value:<9} {area_names.get(shift.area_id, shift.area_id):<12} "
            f"{guard_names.get(shift.guard_id, shift.guard_id)}{marker}"
        )

    validation = run.validation
    if validation is not None:
        if validation.is_valid:
            print("\n  Validation: PASSED")
        else:
            print(f"\n  Validation: FAILED ({len(validation.errors)} errors)")
            for error in validation.errors[:5]:
                print(f"    - {error}")
            if len(validation.errors) > 5:
                print(f"    ... and {len(validation.errors) - 5} more errors")
        if validation.warnings:
            print(f"  Warnings: {len(validation.warnings)}")
            for warning in validation.warnings[:5]:
                print(f"    - {warning}")
    return 0


def run_week(args: argparse.Namespace) -> int:
    """Print the seven dates of a week."""
    week = resolve_week(args.calendar, args.week, args.year)
    calendar = get_calendar(args.calendar)
    print(f"Week {week} ({args.calendar})")
    for name, d in zip(DAY_NAMES, calendar.week_dates(week)):
        print(f"  {name:<10} {d.isoformat()}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="guardshift",
        description="guardshift - Security Guard Shift Scheduling Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s generate                          Generate the current week
  %(prog)s generate --week 5 --year 1403     Generate week 5 of 1403
  %(prog)s generate --rotation seeded        Deterministic rotation
  %(prog)s generate --manual g1:a1:0:morning Pin g1 to a1 Saturday morning
  %(prog)s generate --fixed g2:a1            Keep g2 out of a1's rotation
  %(prog)s week --calendar gregorian         Show this week's dates
        """,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    def add_week_arguments(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--week", "-w",
            type=int,
            help="Week number, 1-53 (default: current week)",
        )
        sub.add_argument(
            "--year", "-y",
            type=int,
            help="Calendar year (default: current year)",
        )
        sub.add_argument(
            "--calendar",
            type=str,
            default="jalali",
            choices=sorted(CALENDARS),
            help="Week numbering calendar (default: jalali)",
        )

    generate_parser = subparsers.add_parser("generate", help="Generate a week of shifts")
    generate_parser.add_argument(
        "--guards", "-g",
        type=int,
        default=6,
        help="Number of sample guards (default: 6)",
    )
    generate_parser.add_argument(
        "--areas", "-a",
        type=int,
        default=2,
        help="Number of sample areas (default: 2)",
    )
    add_week_arguments(generate_parser)
    generate_parser.add_argument(
        "--rotation", "-r",
        type=str,
        default="shuffle",
        choices=[s.value for s in RotationStrategy],
        help="Rotation strategy (default: shuffle)",
    )
    generate_parser.add_argument(
        "--seed", "-s",
        type=int,
        help="Random seed for reproducible rotations",
    )
    generate_parser.add_argument(
        "--time-limit", "-t",
        type=float,
        default=10.0,
        help="CP-SAT solver time limit in seconds (default: 10)",
    )
    generate_parser.add_argument(
        "--manual", "-m",
        type=parse_manual,
        action="append",
        metavar="GUARD:AREA:DAY:TYPE",
        help="Manual shift; DAY is 0 (Saturday) to 6 (Friday). Repeatable.",
    )
    generate_parser.add_argument(
        "--fixed", "-f",
        type=parse_fixed,
        action="append",
        metavar="GUARD:AREA",
        help="Fixed assignment excluding GUARD from AREA's rotation. Repeatable.",
    )
    generate_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the shifts as JSON",
    )

    week_parser = subparsers.add_parser("week", help="Show the dates of a week")
    add_week_arguments(week_parser)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "generate":
        return run_generate(args)
    elif args.command == "week":
        return run_week(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
