"""Week numbering and shift-time helpers.

Weeks run Saturday to Friday (day index 0 = Saturday ... 6 = Friday).
Week 1 of a year is the Saturday-first week containing the first day of
that year, so week N starts on the Saturday on or before the first day of
the year plus 7 * (N - 1) days. Calendars differ only in how they locate
the first day of a year: the Solar Hijri calendar used by the target
locale, or the Gregorian calendar.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta
from typing import Optional

import jdatetime

from guardshift.domain.models import ShiftType, WeekRef

DAYS_PER_WEEK = 7

# date.weekday() value of the first day of the week (Saturday).
WEEK_START_WEEKDAY = 5
FRIDAY_WEEKDAY = 4


class WeekCalendar(ABC):
    """Abstract base class for Saturday-first week numbering."""

    name = "abstract"

    @abstractmethod
    def year_start(self, year: int) -> date:
        """Gregorian date of the first day of the given calendar year."""
        pass

    @abstractmethod
    def year_of(self, d: date) -> int:
        """Calendar year a Gregorian date falls in."""
        pass

    def current_year(self) -> int:
        return self.year_of(date.today())

    def first_week_start(self, year: int) -> date:
        """The Saturday that begins week 1 of the year."""
        first = self.year_start(year)
        return first - timedelta(days=day_index(first))

    def start_of_week(self, week: WeekRef) -> date:
        """The Saturday that begins the given week."""
        return self.first_week_start(week.year) + timedelta(
            days=DAYS_PER_WEEK * (week.number - 1)
        )

    def end_of_week(self, week: WeekRef) -> date:
        """The Friday that ends the given week."""
        return self.start_of_week(week) + timedelta(days=DAYS_PER_WEEK - 1)

    def day_date(self, week: WeekRef, day: int) -> date:
        """Absolute date of a day index within a week."""
        if not 0 <= day < DAYS_PER_WEEK:
            raise ValueError(f"Day index must be between 0 and 6, got {day}")
        return self.start_of_week(week) + timedelta(days=day)

    def week_dates(self, week: WeekRef) -> list[date]:
        """All seven dates of a week, Saturday first."""
        start = self.start_of_week(week)
        return [start + timedelta(days=i) for i in range(DAYS_PER_WEEK)]

    def week_window(self, week: WeekRef) -> tuple[datetime, datetime]:
        """Datetime range [Saturday 00:00, next Saturday 07:00].

        The end includes the morning after the week so that Friday's night
        shift falls inside the window.
        """
        start = start_of_day(self.start_of_week(week))
        end = start + timedelta(days=DAYS_PER_WEEK, hours=ShiftType.NIGHT.end_hour)
        return start, end

    def week_of(self, d: date) -> WeekRef:
        """The week a date belongs to."""
        week_start = d - timedelta(days=day_index(d))
        year = self.year_of(d)
        first = self.first_week_start(year)
        if week_start < first:
            year -= 1
            first = self.first_week_start(year)
        else:
            following = self.first_week_start(year + 1)
            if week_start >= following:
                year += 1
                first = following
        return WeekRef(number=(week_start - first).days // DAYS_PER_WEEK + 1, year=year)


class GregorianWeekCalendar(WeekCalendar):
    """Saturday-first weeks numbered within the Gregorian year."""

    name = "gregorian"

    def year_start(self, year: int) -> date:
        return date(year, 1, 1)

    def year_of(self, d: date) -> int:
        return d.year


class JalaliWeekCalendar(WeekCalendar):
    """Saturday-first weeks numbered within the Solar Hijri (Jalali) year.

    The year starts on 1 Farvardin (Nowruz).
    """

    name = "jalali"

    def year_start(self, year: int) -> date:
        return jdatetime.date(year, 1, 1).togregorian()

    def year_of(self, d: date) -> int:
        return jdatetime.date.fromgregorian(date=d).year


CALENDARS = {
    GregorianWeekCalendar.name: GregorianWeekCalendar,
    JalaliWeekCalendar.name: JalaliWeekCalendar,
}


def get_calendar(name: str) -> WeekCalendar:
    """Create a calendar by name ("jalali" or "gregorian")."""
    try:
        return CALENDARS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown calendar: {name}") from None


def day_index(d: date) -> int:
    """Day index within a Saturday-first week (Saturday = 0)."""
    return (d.weekday() - WEEK_START_WEEKDAY) % DAYS_PER_WEEK


def is_friday(d: date) -> bool:
    """Check if a date is a Friday, the locale's weekly holiday."""
    return d.weekday() == FRIDAY_WEEKDAY


def start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min)


def end_of_day(d: date) -> datetime:
    return datetime.combine(d, time.max)


def add_days(d: date, days: int) -> date:
    return d + timedelta(days=days)


def duration_in_days(start: date, end: date) -> int:
    """Whole days between two dates."""
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()
    return (end - start).days


def get_shift_times(day: date, shift_type: ShiftType) -> tuple[datetime, datetime]:
    """Compute start and end timestamps of a shift on a calendar day.

    Args:
        day: Date the shift starts on.
        shift_type: Which shift window.

    Returns:
        Tuple of (start_time, end_time). Night shifts end at 07:00 on the
        following day.

    Raises:
        ValueError: If shift_type is not a ShiftType.
    """
    if not isinstance(shift_type, ShiftType):
        raise ValueError(f"Invalid shift type: {shift_type!r}")

    midnight = start_of_day(day)
    start_time = midnight + timedelta(hours=shift_type.start_hour)
    end_time = start_time + shift_type.duration
    return start_time, end_time


def shift_type_for(start_time: datetime, end_time: datetime) -> Optional[ShiftType]:
    """Find the shift type whose window matches a start/end pair."""
    if start_time.minute or start_time.second or start_time.microsecond:
        return None
    shift_type = ShiftType.from_start_hour(start_time.hour)
    if shift_type is None:
        return None
    if end_time - start_time != shift_type.duration:
        return None
    return shift_type
