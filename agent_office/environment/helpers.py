"""Utilities for the office grid: pathfinding, spawn placement, rendering."""

from __future__ import annotations

import math
from collections import deque
from typing import Collection, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .grid import OfficeGrid, Tile
from .layout import OfficeLayout

# Neighbour visit order (+x, -x, +y, -y). BFS tie-breaking depends on it, so
# paths are reproducible for a given grid.
DIRECTIONS: Tuple[Tile, ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))


def find_path(
    grid: OfficeGrid,
    start: Tile,
    goal: Tile,
    *,
    avoid: Collection[Tile] = (),
) -> List[Tile]:
    """Return the shortest 4-directional path from start to goal (both included).

    The goal tile is always traversable, even when blocked, so an agent can
    reach any declared destination. Tiles in ``avoid`` are treated as blocked
    for this search only (the goal excepted).

    Failure is silent: the result is ``[start]`` both when start == goal and
    when the goal is unreachable. Callers treat a single-tile path to a
    different goal as "stay put".
    """

    if start == goal:
        return [start]

    visited = {start}
    queue: deque[Tuple[Tile, List[Tile]]] = deque([(start, [start])])

    def neighbors(coord: Tile) -> Iterable[Tile]:
        x, y = coord
        for dx, dy in DIRECTIONS:
            nx, ny = x + dx, y + dy
            if not grid.in_bounds(nx, ny):
                continue
            if (nx, ny) == goal:
                yield nx, ny
            elif grid.is_walkable(nx, ny) and (nx, ny) not in avoid:
                yield nx, ny

    while queue:
        coord, path = queue.popleft()
        for nb in neighbors(coord):
            if nb in visited:
                continue
            visited.add(nb)
            new_path = path + [nb]
            # First discovery wins; BFS guarantees it is a shortest path
            if nb == goal:
                return new_path
            queue.append((nb, new_path))
    return [start]


def is_path_valid(path: Sequence[Tile]) -> bool:
    """True when every consecutive pair differs by exactly one orthogonal step."""

    for (ax, ay), (bx, by) in zip(path, path[1:]):
        if abs(ax - bx) + abs(ay - by) != 1:
            return False
    return True


def nearest_free_tile(grid: OfficeGrid, origin: Tile, taken: Collection[Tile]) -> Tile:
    """Closest walkable tile to ``origin`` (BFS rings) that is not in ``taken``.

    Returns ``origin`` itself when it is free, or when the grid has no free
    walkable tile reachable from it.
    """

    if origin not in taken:
        return origin

    visited = {origin}
    queue: deque[Tile] = deque([origin])
    while queue:
        x, y = queue.popleft()
        for dx, dy in DIRECTIONS:
            nb = (x + dx, y + dy)
            if nb in visited or not grid.is_walkable(*nb):
                continue
            visited.add(nb)
            if nb not in taken:
                return nb
            queue.append(nb)
    return origin


def tile_distance(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Euclidean distance between two (possibly fractional) positions."""
    return math.hypot(a[0] - b[0], a[1] - b[1])


def round_position(x: float, y: float) -> Tile:
    """Round a floating position to its tile, halves rounding up (4.5 -> 5)."""
    return (math.floor(x + 0.5), math.floor(y + 0.5))


_DEFAULT_FLOOR_SYMBOLS: Dict[str, str] = {
    "wall": "#",
    "border": "+",
    "floor": ".",
    "void": " ",
}


def render_ascii_floor(
    grid: OfficeGrid,
    layout: Optional[OfficeLayout] = None,
    *,
    agents: Optional[Mapping[Tile, str]] = None,
    symbols: Optional[Dict[str, str]] = None,
) -> str:
    """Render the floor as ASCII for debug views.

    Walls are ``#``, zone borders ``+``, zone interiors ``.``; tiles outside
    every zone are blank. ``agents`` maps tiles to a single character drawn on
    top (e.g. the first letter of a callsign).
    """

    mapping = {**_DEFAULT_FLOOR_SYMBOLS}
    if symbols:
        mapping.update(symbols)
    agents = agents or {}
    zones = layout.zones if layout is not None else ()

    lines: List[str] = []
    for y in range(grid.height):
        row: List[str] = []
        for x in range(grid.width):
            if (x, y) in agents:
                row.append(agents[(x, y)][:1] or "?")
            elif (x, y) in grid.blocked:
                row.append(mapping["wall"])
            elif any(zone.interior_contains(x, y) for zone in zones):
                row.append(mapping["floor"])
            elif any(zone.contains(x, y) for zone in zones):
                row.append(mapping["border"])
            else:
                row.append(mapping["void"])
        lines.append("".join(row).rstrip())
    return "\n".join(lines)
