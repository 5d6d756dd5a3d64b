"""
Deterministic visual identities and pixel sprites for agents.

Nothing here is persisted: every profile and sprite is a pure function of the
agent's seed, role, display name and animation frame, so the same agent looks
the same on every render and on every host.

Randomness never comes from ambient global state. ``RandomStream`` carries
its own 32-bit state derived from a hashed seed string, and unrelated draws
use differently salted seeds (``seed:role:profile`` for the profile) so that
adding a draw for one purpose cannot shift the values drawn for another.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, TypeVar

from agent_office.schemas import VisualIdentity

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619

DEFAULT_SEED = "agent"
DEFAULT_NAME_ROOT = "AGENT"
TRANSPARENT = "transparent"
SPRITE_SIZE = 16


# ============================================================================
# Seeded randomness
# ============================================================================


def _utf16_units(text: str) -> List[int]:
    units: List[int] = []
    for char in text:
        code = ord(char)
        if code > 0xFFFF:
            code -= 0x10000
            units.append(0xD800 + (code >> 10))
            units.append(0xDC00 + (code & 0x3FF))
        else:
            units.append(code)
    return units


def hash_seed(seed: str) -> int:
    """Hash a seed string into an unsigned 32-bit integer (FNV-1a).

    Order-dependent and case-sensitive. Characters are hashed as UTF-16 code
    units so values match across hosts that store strings that way.
    """

    value = _FNV_OFFSET
    for unit in _utf16_units(seed):
        value ^= unit
        value = (value * _FNV_PRIME) & _MASK32
    return value


class RandomStream:
    """Small deterministic PRNG (mulberry32) seeded from a string.

    Each instance owns its integer state; two streams built from the same seed
    produce the same sequence.
    """

    def __init__(self, seed: str) -> None:
        self.seed = seed
        self._state = hash_seed(seed)

    def next(self) -> float:
        """Return the next float in [0, 1)."""
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = ((t ^ (t >> 15)) * (t | 1)) & _MASK32
        t ^= (t + (((t ^ (t >> 7)) * (t | 61)) & _MASK32)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296

    def index(self, length: int) -> int:
        """Draw an index in ``range(length)`` via ``floor(next() * length)``."""
        if length <= 0:
            return 0
        return min(int(math.floor(self.next() * length)), length - 1)

    def choice(self, items: Sequence[T]) -> T:
        return items[self.index(len(items))]


def make_rng(seed: str) -> RandomStream:
    """Convenience constructor mirroring ``RandomStream(seed)``."""
    return RandomStream(seed)


# ============================================================================
# Profile tables
# ============================================================================


@dataclass(frozen=True)
class Palette:
    key: str
    base: str
    accent: str
    accessory: str


ROLE_PALETTES: Dict[str, tuple[Palette, ...]] = {
    "orchestrator": (
        Palette("captain-indigo", "#6d7cff", "#a8b4ff", "#f8fafc"),
        Palette("vector-navy", "#4e67de", "#83a3ff", "#dbeafe"),
    ),
    "planner": (
        Palette("cyan-grid", "#27b9df", "#86ebff", "#d9faff"),
        Palette("ice-map", "#0ea5e9", "#67e8f9", "#cffafe"),
    ),
    "frontend": (
        Palette("mint-weave", "#15bfa0", "#74f6d2", "#ddfff5"),
        Palette("teal-bloom", "#0ea78a", "#5eead4", "#e6fffa"),
    ),
    "backend": (
        Palette("ember-core", "#f37f34", "#ffc48d", "#fff0de"),
        Palette("forge-copper", "#d3661c", "#fdba74", "#ffedd5"),
    ),
    "reviewer": (
        Palette("emerald-seal", "#24ad59", "#87efad", "#eafff0"),
        Palette("sage-guard", "#228d4d", "#4ade80", "#dcfce7"),
    ),
    "worker": (
        Palette("steel-core", "#66758c", "#c5d1e5", "#e2e8f0"),
        Palette("slate-bot", "#536276", "#94a3b8", "#dce3ed"),
    ),
}

ACCESSORIES = ("visor", "headset", "antenna", "badge")
GAITS = ("steady", "quick", "drift")
TRAITS = ("calm", "focused", "bold", "precise")


def make_callsign(display_name: str, seed: str) -> str:
    """First three letters of the name (padded with X), a dash, and 100-999."""

    letters = re.sub(r"[^a-zA-Z]", "", display_name or "").upper() or DEFAULT_NAME_ROOT
    prefix = letters[:3].ljust(3, "X")
    suffix = hash_seed(seed) % 900 + 100
    return f"{prefix}-{suffix}"


def generate_identity(seed: str, role: str, display_name: str) -> VisualIdentity:
    """Derive a stable ``VisualIdentity`` for an agent.

    Pure and total: an empty seed falls back to ``DEFAULT_SEED``, an empty or
    non-alphabetic display name to the ``AGENT`` callsign root, and an unknown
    role to the worker palette.
    """

    seed = seed or DEFAULT_SEED
    palettes = ROLE_PALETTES.get(role, ROLE_PALETTES["worker"])
    rng = RandomStream(f"{seed}:{role}:profile")
    palette = rng.choice(palettes)

    return VisualIdentity(
        seed=seed,
        callsign=make_callsign(display_name, seed),
        palette_key=palette.key,
        base_color=palette.base,
        accent_color=palette.accent,
        accessory_color=palette.accessory,
        accessory=rng.choice(ACCESSORIES),
        gait=rng.choice(GAITS),
        trait=rng.choice(TRAITS),
    )


class IdentityCache:
    """Per agent id memo of generated identities.

    The first identity generated for an id is kept for the lifetime of the
    cache, even if the agent's role or name later changes.
    """

    def __init__(self) -> None:
        self._profiles: Dict[str, VisualIdentity] = {}

    def get(self, agent_id: str, seed: str, role: str, display_name: str) -> VisualIdentity:
        profile = self._profiles.get(agent_id)
        if profile is None:
            profile = generate_identity(seed or agent_id, role, display_name)
            self._profiles[agent_id] = profile
        return profile

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)


# ============================================================================
# Sprites
# ============================================================================


@dataclass
class PixelMatrix:
    """Row-major sprite pixels; each entry is a hex color or ``TRANSPARENT``."""

    width: int
    height: int
    pixels: List[str] = field(default_factory=list)

    def pixel(self, x: int, y: int) -> Optional[str]:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return None
        return self.pixels[y * self.width + x]

    def rows(self) -> List[List[str]]:
        return [self.pixels[y * self.width:(y + 1) * self.width] for y in range(self.height)]


_SKIN = "#f5d1b5"
_DARK = "#122032"


def _set_pixel(matrix: PixelMatrix, x: int, y: int, value: str) -> None:
    if 0 <= x < matrix.width and 0 <= y < matrix.height:
        matrix.pixels[y * matrix.width + x] = value


def generate_sprite(identity: VisualIdentity, frame: float = 0) -> PixelMatrix:
    """Build the 16x16 sprite for ``identity`` at animation ``frame``.

    Legs and arms alternate between two poses keyed on ``frame mod 4``
    (frames 0-1 vs 2-3). Fractional frames are floored.
    """

    matrix = PixelMatrix(SPRITE_SIZE, SPRITE_SIZE, [TRANSPARENT] * (SPRITE_SIZE * SPRITE_SIZE))

    # Head
    for y in range(3, 7):
        for x in range(5, 11):
            _set_pixel(matrix, x, y, _SKIN)

    # Body with accent stripe
    for y in range(7, 12):
        for x in range(4, 12):
            _set_pixel(matrix, x, y, identity.base_color)
    for x in range(4, 12):
        _set_pixel(matrix, x, 8, identity.accent_color)

    # Eyes
    _set_pixel(matrix, 6, 4, _DARK)
    _set_pixel(matrix, 9, 4, _DARK)

    if identity.accessory == "visor":
        for x in range(5, 11):
            _set_pixel(matrix, x, 2, identity.accessory_color)
    elif identity.accessory == "headset":
        _set_pixel(matrix, 4, 4, identity.accessory_color)
        _set_pixel(matrix, 11, 4, identity.accessory_color)
    elif identity.accessory == "antenna":
        _set_pixel(matrix, 8, 1, identity.accessory_color)
        _set_pixel(matrix, 8, 0, identity.accent_color)
    elif identity.accessory == "badge":
        _set_pixel(matrix, 10, 10, identity.accessory_color)

    phase = int(math.floor(frame)) % 4
    stride = phase < 2
    left_leg = 6 if stride else 5
    right_leg = 9 if stride else 10
    for y in range(12, 15):
        _set_pixel(matrix, left_leg, y, _DARK)
        _set_pixel(matrix, right_leg, y, _DARK)

    # Arms swing opposite to each other
    _set_pixel(matrix, 4, 9 if stride else 10, _DARK)
    _set_pixel(matrix, 11, 10 if stride else 9, _DARK)

    return matrix
