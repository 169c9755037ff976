"""Fixed guard-to-area assignment resolution.

A guard is considered fixed to an area when most of their recent shifts
took place there. Fixed guards are kept out of that area's rotation pool.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

from guardshift.domain.models import FixedAssignments, Shift, ShiftStatus

logger = logging.getLogger(__name__)


@dataclass
class FixedAreaStat:
    """Shift density of a guard in their most frequent area.

    Attributes:
        guard_id: ID of the guard.
        area_id: ID of the guard's most frequent area.
        shifts_count: Shifts the guard worked in that area.
        total_shifts: All shifts the guard worked in the window.
    """

    guard_id: str
    area_id: str
    shifts_count: int
    total_shifts: int

    @property
    def share(self) -> float:
        """Fraction of the guard's shifts spent in the area."""
        if self.total_shifts == 0:
            return 0.0
        return self.shifts_count / self.total_shifts

    @property
    def percentage(self) -> int:
        return round(self.share * 100)


class FixedAssignmentResolver:
    """Derives fixed assignments from historical shift density.

    Attributes:
        threshold: Minimum share of shifts in one area to count as fixed.
        window_days: How far back from the reference date history is read.
        min_shifts: Minimum shifts in the window before a guard is judged.
    """

    def __init__(
        self,
        threshold: float = 0.7,
        window_days: int = 30,
        min_shifts: int = 1,
    ):
        if not 0.0 < threshold <= 1.0:
            raise ValueError("threshold must be in (0, 1]")
        self.threshold = threshold
        self.window_days = window_days
        self.min_shifts = min_shifts

    def describe(
        self,
        shifts: Iterable[Shift],
        as_of: Optional[Union[date, datetime]] = None,
    ) -> list[FixedAreaStat]:
        """List guards whose shift density makes them fixed to an area.

        Args:
            shifts: Historical shifts to analyze.
            as_of: Reference point; the window is [as_of - window_days, as_of].
                Defaults to now.

        Returns:
            One FixedAreaStat per fixed guard, in first-seen guard order.
        """
        window_start, window_end = self._window(as_of)

        counts: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for shift in shifts:
            if shift.status == ShiftStatus.CANCELLED:
                continue
            if not window_start <= shift.start_time <= window_end:
                continue
            counts[str(shift.guard_id)][str(shift.area_id)] += 1

        stats = []
        for guard_id, area_counts in counts.items():
            total = sum(area_counts.values())
            if total < self.min_shifts:
                continue
            # Ties resolve to the area seen first
            area_id, count = max(area_counts.items(), key=lambda item: item[1])
            stat = FixedAreaStat(guard_id, area_id, count, total)
            if stat.share >= self.threshold:
                logger.debug(
                    "Guard %s is fixed to area %s (%d%% of %d shifts)",
                    guard_id, area_id, stat.percentage, total,
                )
                stats.append(stat)
        return stats

    def from_history(
        self,
        shifts: Iterable[Shift],
        as_of: Optional[Union[date, datetime]] = None,
    ) -> FixedAssignments:
        """Build a fixed assignment map from historical shifts."""
        fixed: FixedAssignments = {}
        for stat in self.describe(shifts, as_of):
            fixed.setdefault(stat.guard_id, set()).add(stat.area_id)
        return fixed

    def _window(self, as_of: Optional[Union[date, datetime]]) -> tuple[datetime, datetime]:
        if as_of is None:
            end = datetime.now()
        elif isinstance(as_of, datetime):
            end = as_of
        else:
            end = datetime.combine(as_of, datetime.max.time())
        return end - timedelta(days=self.window_days), end


def merge_fixed_assignments(*maps: Optional[FixedAssignments]) -> FixedAssignments:
    """Union several fixed assignment maps, e.g. history-derived and configured."""
    merged: FixedAssignments = {}
    for fixed in maps:
        if not fixed:
            continue
        for guard_id, area_ids in fixed.items():
            merged.setdefault(str(guard_id), set()).update(str(a) for a in area_ids)
    return merged
