"""Walkable tile grid for the office floor.

The grid is computed once from the layout's obstacle rectangles and never
changes afterwards. Coordinates are ``(x, y)`` tuples with ``x`` growing to
the right and ``y`` growing downward.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, Tuple

from .layout import DEFAULT_LAYOUT, OfficeLayout, Zone

Tile = Tuple[int, int]


@dataclass(frozen=True)
class OfficeGrid:
    """Fixed-size boolean occupancy grid."""

    width: int
    height: int
    blocked: FrozenSet[Tile] = field(default_factory=frozenset)

    @classmethod
    def from_layout(cls, layout: OfficeLayout = DEFAULT_LAYOUT) -> "OfficeGrid":
        """Block every cell fully inside any obstacle rectangle."""
        blocked = set()
        for obstacle in layout.obstacles:
            blocked.update(obstacle.cells())
        return cls(width=layout.width, height=layout.height, blocked=frozenset(blocked))

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def is_walkable(self, x: int, y: int) -> bool:
        return self.in_bounds(x, y) and (x, y) not in self.blocked


def zone_interior_tiles(zone: Zone) -> List[Tile]:
    """Tiles of ``zone`` minus its one-tile border, in row-major order."""

    tiles: List[Tile] = []
    for y in range(zone.y + 1, zone.y + zone.height - 1):
        for x in range(zone.x + 1, zone.x + zone.width - 1):
            tiles.append((x, y))
    return tiles
