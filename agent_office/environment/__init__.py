"""Floor plan, grid and pathfinding for Agent Office."""

from .layout import DEFAULT_LAYOUT, OfficeLayout, Rect, Zone, load_layout
from .grid import OfficeGrid, Tile, zone_interior_tiles
from .helpers import (
    DIRECTIONS,
    find_path,
    is_path_valid,
    nearest_free_tile,
    render_ascii_floor,
    round_position,
    tile_distance,
)

__all__ = [
    "DEFAULT_LAYOUT",
    "OfficeLayout",
    "Rect",
    "Zone",
    "load_layout",
    "OfficeGrid",
    "Tile",
    "zone_interior_tiles",
    "DIRECTIONS",
    "find_path",
    "is_path_valid",
    "nearest_free_tile",
    "render_ascii_floor",
    "round_position",
    "tile_distance",
]
