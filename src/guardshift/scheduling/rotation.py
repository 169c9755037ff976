"""Rotation builders for weekly shift generation.

A rotation is, per area and per shift type, an ordering of the area's
eligible guards. The generator walks it round-robin by day index, so the
guard for day ``d`` is ``rotation[shift_type][d % len(rotation)]``.
"""

import random
from abc import ABC, abstractmethod
from typing import Optional

from guardshift.domain.models import SHIFT_TYPE_ORDER, Guard, ShiftType, WeekRef

# area ID -> shift type -> ordered guards
Rotations = dict[str, dict[ShiftType, list[Guard]]]


class RotationBuilder(ABC):
    """Abstract base class for building per-area rotations."""

    name = "abstract"

    @abstractmethod
    def build(self, pools: dict[str, list[Guard]], week: WeekRef) -> Rotations:
        """Build rotations for every area.

        Args:
            pools: Dict mapping area IDs to their non-empty eligible guard pools.
            week: The week being generated.

        Returns:
            Dict mapping area IDs to a permutation of the pool per shift type.
        """
        pass


class ShuffledRotationBuilder(RotationBuilder):
    """Independent random shuffle per area and shift type.

    Two runs with identical input generally produce different rotations.
    Pass a seeded ``random.Random`` to make a run reproducible.
    """

    name = "shuffle"

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def build(self, pools: dict[str, list[Guard]], week: WeekRef) -> Rotations:
        rotations: Rotations = {}
        for area_id, pool in pools.items():
            rotations[area_id] = {}
            for shift_type in SHIFT_TYPE_ORDER:
                order = list(pool)
                self.rng.shuffle(order)
                rotations[area_id][shift_type] = order
        return rotations


class SeededRotationBuilder(RotationBuilder):
    """Deterministic round-robin offset by week number.

    The pool is sorted by guard ID and rotated left by
    ``week.number + shift_type_index``, so consecutive weeks shift each
    guard to a different day and the three shift types start on
    different guards.
    """

    name = "seeded"

    def build(self, pools: dict[str, list[Guard]], week: WeekRef) -> Rotations:
        rotations: Rotations = {}
        for area_id, pool in pools.items():
            ordered = sorted(pool, key=lambda g: str(g.id))
            rotations[area_id] = {}
            for type_index, shift_type in enumerate(SHIFT_TYPE_ORDER):
                offset = (week.number + type_index) % len(ordered)
                rotations[area_id][shift_type] = ordered[offset:] + ordered[:offset]
        return rotations
