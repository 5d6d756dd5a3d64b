"""
Tick-based movement simulation for office agents.

The engine owns continuously evolving per-agent positions between scene
refreshes. It is driven by an external render loop: ``step`` is called once
per animation frame with the elapsed milliseconds and returns a new state,
leaving its input untouched. There are no timers and no locks; callers
serialize calls themselves (one writer per scene instance).

Movement rules per tick, agents processed in id order:
- Re-plan (BFS) when the path is empty and the agent is not on its target
- Advance toward the next waypoint by ``speed * elapsed_seconds`` tiles,
  snapping onto the waypoint once it is within reach
- Refuse to enter a waypoint tile held by another agent; the agent holds
  position for this tick and retries on the next one (first come, first
  served by id order)
- Face along the larger axis of this tick's displacement
- Advance the walk cycle only while moving
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Set, Tuple

from agent_office.environment import (
    DEFAULT_LAYOUT,
    OfficeGrid,
    Tile,
    find_path,
    nearest_free_tile,
    round_position,
    tile_distance,
)
from agent_office.schemas import (
    AgentSceneState,
    Direction,
    RenderedAgent,
    SceneSnapshot,
    TilePoint,
)

GAIT_SPEEDS: Dict[str, float] = {
    "quick": 4.2,
    "drift": 2.3,
    "steady": 3.1,
}
"""Walking speed in tiles per second for each gait."""

FRAME_RATE = 10.0
FRAME_COUNT = 4
ARRIVAL_EPSILON = 0.05
SNAP_EPSILON = 0.0001
DEFAULT_BLOCKED_REPLAN_TICKS = 8


def speed_for_gait(gait: str) -> float:
    return GAIT_SPEEDS.get(gait, GAIT_SPEEDS["steady"])


def direction_from_delta(dx: float, dy: float, fallback: Direction) -> Direction:
    """Facing for a displacement; ``y`` grows downward on the floor grid."""

    if abs(dx) > abs(dy):
        return "right" if dx >= 0 else "left"
    if abs(dy) > 0:
        return "down" if dy >= 0 else "up"
    return fallback


@dataclass
class SimulatedAgent:
    """Engine-internal state for one agent."""

    scene: AgentSceneState
    position: Tuple[float, float]
    tile: Tile
    path: List[Tile] = field(default_factory=list)
    speed: float = GAIT_SPEEDS["steady"]
    frame: float = 0.0
    direction: Direction = "down"
    is_moving: bool = False
    # Consecutive ticks spent waiting on an occupied waypoint
    blocked_ticks: int = 0

    @property
    def agent_id(self) -> str:
        return self.scene.agent_id

    @property
    def target(self) -> Tile:
        return self.scene.target_tile.as_tuple()


@dataclass
class SimulationState:
    """Positions of every agent in the current scene."""

    width: int
    height: int
    generated_at: str
    agents: Dict[str, SimulatedAgent] = field(default_factory=dict)

    def agent(self, agent_id: str) -> Optional[SimulatedAgent]:
        return self.agents.get(agent_id)

    def occupied_tiles(self) -> Dict[str, Tile]:
        """Rounded tile per agent id."""
        return {agent_id: round_position(*agent.position) for agent_id, agent in self.agents.items()}


class SimulationEngine:
    """Creates, steps and renders ``SimulationState`` values on a fixed grid."""

    def __init__(
        self,
        grid: Optional[OfficeGrid] = None,
        *,
        blocked_replan_ticks: int = DEFAULT_BLOCKED_REPLAN_TICKS,
    ) -> None:
        self.grid = grid if grid is not None else OfficeGrid.from_layout(DEFAULT_LAYOUT)
        self.blocked_replan_ticks = max(1, blocked_replan_ticks)

    def build_path(self, current: Tile, target: Tile, *, avoid: Set[Tile] = frozenset()) -> List[Tile]:
        """Waypoints from ``current`` to ``target`` excluding ``current``.

        Empty when already there or when the target is unreachable.
        """
        return find_path(self.grid, current, target, avoid=avoid)[1:]

    # ------------------------------------------------------------------
    # createState
    # ------------------------------------------------------------------

    def create_state(
        self,
        scene: SceneSnapshot,
        previous: Optional[SimulationState] = None,
    ) -> SimulationState:
        """Seed simulation state for ``scene``.

        Agents that persist from ``previous`` keep their floating position,
        facing and animation frame; new agents spawn on their scene tile.
        Agents absent from ``scene`` are dropped. A spawn tile already taken
        by an agent earlier in id order is moved to the nearest free tile.
        """

        agents: Dict[str, SimulatedAgent] = {}
        taken: Set[Tile] = set()

        for scene_agent in sorted(scene.agents, key=lambda item: item.agent_id):
            existing = previous.agents.get(scene_agent.agent_id) if previous is not None else None
            if existing is not None:
                position = existing.position
                frame = existing.frame
                direction = existing.direction
            else:
                position = (float(scene_agent.tile.x), float(scene_agent.tile.y))
                frame = 0.0
                direction = scene_agent.direction

            current = round_position(*position)
            if current in taken:
                current = nearest_free_tile(self.grid, current, taken)
                position = (float(current[0]), float(current[1]))
            taken.add(current)

            target = scene_agent.target_tile.as_tuple()
            path = self.build_path(current, target)
            agents[scene_agent.agent_id] = SimulatedAgent(
                scene=scene_agent,
                position=position,
                tile=current,
                path=path,
                speed=speed_for_gait(scene_agent.identity.gait),
                frame=frame,
                direction=direction,
                is_moving=bool(path) and current != target,
            )

        return SimulationState(
            width=scene.width,
            height=scene.height,
            generated_at=scene.generated_at,
            agents=agents,
        )

    # ------------------------------------------------------------------
    # step
    # ------------------------------------------------------------------

    def step(self, state: SimulationState, delta_ms: float) -> SimulationState:
        """Advance every agent by ``delta_ms`` milliseconds.

        Occupancy is read-then-commit: the set starts as every agent's rounded
        tile at tick start, and each agent's move is committed in id order
        before the next agent proposes its own, so the first agent to claim a
        tile keeps it.
        """

        elapsed = max(0.0, float(delta_ms)) / 1000.0
        occupied: Set[Tile] = set(state.occupied_tiles().values())
        next_agents: Dict[str, SimulatedAgent] = {}

        for agent_id in sorted(state.agents):
            agent = replace(state.agents[agent_id], path=list(state.agents[agent_id].path))
            next_agents[agent_id] = self._advance(agent, elapsed, occupied)

        return replace(state, agents=next_agents)

    def _advance(self, agent: SimulatedAgent, elapsed: float, occupied: Set[Tile]) -> SimulatedAgent:
        current = round_position(*agent.position)
        target = agent.target

        if not agent.path and current != target:
            agent.path = self.build_path(current, target)
        if agent.path and agent.path[0] == current:
            agent.path.pop(0)

        if not agent.path:
            # Settle onto the centre of the tile already occupied
            self._move_toward(agent, current, agent.speed * elapsed)
            agent.tile = current
            agent.is_moving = False
            agent.blocked_ticks = 0
            return agent

        waypoint = agent.path[0]
        if waypoint != current and waypoint in occupied:
            agent.tile = current
            agent.is_moving = False
            agent.blocked_ticks += 1
            if agent.blocked_ticks >= self.blocked_replan_ticks:
                self._detour(agent, current, occupied)
            return agent

        self._move_toward(agent, waypoint, agent.speed * elapsed)
        if agent.position == (float(waypoint[0]), float(waypoint[1])):
            agent.path.pop(0)

        agent.tile = round_position(*agent.position)
        agent.is_moving = tile_distance(agent.tile, target) > ARRIVAL_EPSILON
        agent.blocked_ticks = 0
        if agent.is_moving:
            agent.frame = (agent.frame + elapsed * FRAME_RATE) % FRAME_COUNT

        occupied.discard(current)
        occupied.add(agent.tile)
        return agent

    @staticmethod
    def _move_toward(agent: SimulatedAgent, waypoint: Tile, max_step: float) -> None:
        x, y = agent.position
        dx = waypoint[0] - x
        dy = waypoint[1] - y
        dist = math.hypot(dx, dy)

        if dist <= max_step or dist <= SNAP_EPSILON:
            new_position = (float(waypoint[0]), float(waypoint[1]))
        else:
            ratio = max_step / dist
            new_position = (x + dx * ratio, y + dy * ratio)

        agent.direction = direction_from_delta(new_position[0] - x, new_position[1] - y, agent.direction)
        agent.position = new_position

    def _detour(self, agent: SimulatedAgent, current: Tile, occupied: Set[Tile]) -> None:
        """Re-plan around tiles held by other agents after waiting too long."""

        avoid = set(occupied)
        avoid.discard(current)
        detour = self.build_path(current, agent.target, avoid=avoid)
        if detour and detour[0] not in occupied:
            agent.path = detour
        agent.blocked_ticks = 0

    # ------------------------------------------------------------------
    # render
    # ------------------------------------------------------------------

    def render(self, state: SimulationState) -> List[RenderedAgent]:
        """Agents with positions rounded to tiles, sorted by id."""

        rendered: List[RenderedAgent] = []
        for agent_id in sorted(state.agents):
            agent = state.agents[agent_id]
            scene = agent.scene
            rendered.append(
                RenderedAgent(
                    agent_id=agent_id,
                    display_name=scene.display_name,
                    role=scene.role,
                    activity_state=scene.activity_state,
                    direction=agent.direction,
                    tile=TilePoint.from_tuple(round_position(*agent.position)),
                    target_tile=scene.target_tile,
                    target_zone_id=scene.target_zone_id,
                    position=agent.position,
                    frame=int(math.floor(agent.frame)) % FRAME_COUNT,
                    is_moving=agent.is_moving,
                    current_task_id=scene.current_task_id,
                    identity=scene.identity,
                )
            )
        return rendered
