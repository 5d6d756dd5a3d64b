"""Static floor plan configuration.

Zones and obstacles are declarative: the grid model and the scene
synthesizer receive an ``OfficeLayout`` value instead of reading module
globals, so alternate floor plans only need a different layout (or a JSON
file passed to ``load_layout``).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Rect(BaseModel):
    """Axis-aligned rectangle in tile units (obstacles)."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)

    def cells(self) -> List[Tuple[int, int]]:
        return [
            (x, y)
            for y in range(self.y, self.y + self.height)
            for x in range(self.x, self.x + self.width)
        ]


class Zone(BaseModel):
    """A fixed rectangular region of the floor with a capacity and role affinity."""

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    x: int
    y: int
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    capacity: int = Field(..., ge=0)
    role_hint: Optional[str] = Field(None, description="Role whose agents work here")

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.x + self.width and self.y <= y < self.y + self.height

    def interior_contains(self, x: int, y: int) -> bool:
        """True when (x, y) is inside the zone and not on its one-tile border."""
        return self.x < x < self.x + self.width - 1 and self.y < y < self.y + self.height - 1


class OfficeLayout(BaseModel):
    """Immutable floor plan: grid size, zones, obstacles and routing zone ids."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    zones: Tuple[Zone, ...]
    obstacles: Tuple[Rect, ...] = ()
    # Zones the synthesizer routes to by activity rather than by role
    review_zone_id: str = "reviewer_gate"
    break_zone_id: str = "break_area"
    orchestrator_zone_id: str = "orchestrator_desk"
    # Fallback for roles without a zone of their own (workers)
    default_zone_id: str = "intake"

    @model_validator(mode="after")
    def _check_zone_references(self) -> "OfficeLayout":
        ids = [zone.id for zone in self.zones]
        duplicates = sorted({zone_id for zone_id in ids if ids.count(zone_id) > 1})
        if duplicates:
            raise ValueError(f"Layout has duplicate zone ids: {duplicates}")

        known = set(ids)
        for field_name in ("review_zone_id", "break_zone_id", "orchestrator_zone_id", "default_zone_id"):
            zone_id = getattr(self, field_name)
            if zone_id not in known:
                raise ValueError(f"Layout {field_name} references unknown zone '{zone_id}'")
        return self

    def zone(self, zone_id: str) -> Zone:
        for zone in self.zones:
            if zone.id == zone_id:
                return zone
        raise KeyError(f"Zone '{zone_id}' not found in layout")

    def zone_for_role(self, role: str) -> Zone:
        """Zone whose role hint matches ``role``, else the default zone."""
        for zone in self.zones:
            if zone.role_hint == role:
                return zone
        return self.zone(self.default_zone_id)

    def zones_by_id(self) -> Dict[str, Zone]:
        return {zone.id: zone for zone in self.zones}


DEFAULT_LAYOUT = OfficeLayout(
    width=48,
    height=30,
    zones=(
        Zone(id="intake", label="Intake", x=2, y=3, width=10, height=8, capacity=6),
        Zone(id="planner_bay", label="Planner Bay", x=14, y=3, width=8, height=8, capacity=4, role_hint="planner"),
        Zone(id="frontend_bay", label="Frontend Bay", x=24, y=3, width=8, height=8, capacity=4, role_hint="frontend"),
        Zone(id="backend_bay", label="Backend Bay", x=34, y=3, width=10, height=8, capacity=6, role_hint="backend"),
        Zone(id="reviewer_gate", label="Reviewer Gate", x=14, y=14, width=14, height=8, capacity=8, role_hint="reviewer"),
        Zone(id="break_area", label="Break Area", x=30, y=14, width=14, height=12, capacity=12),
        Zone(id="orchestrator_desk", label="Control Desk", x=2, y=14, width=10, height=12, capacity=4, role_hint="orchestrator"),
    ),
    obstacles=(
        Rect(x=12, y=3, width=1, height=23),
        Rect(x=22, y=3, width=1, height=8),
        Rect(x=32, y=3, width=1, height=8),
        Rect(x=2, y=11, width=42, height=1),
        Rect(x=27, y=14, width=1, height=12),
        Rect(x=8, y=18, width=4, height=1),
        Rect(x=18, y=18, width=6, height=1),
        Rect(x=37, y=20, width=5, height=1),
    ),
)


def load_layout(path: Union[str, Path]) -> OfficeLayout:
    """Load an ``OfficeLayout`` from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the JSON does not describe a valid layout
    """
    layout_path = Path(path).expanduser()
    if not layout_path.exists():
        raise FileNotFoundError(f"Layout file not found at {layout_path}")
    data = json.loads(layout_path.read_text())
    return OfficeLayout.model_validate(data)
