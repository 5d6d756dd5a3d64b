"""
Office orchestrator.

Single writer for one scene: owns the last ``SceneSnapshot`` and the last
``SimulationState`` and threads them through the pure synthesizer and engine.

Coordinates the refresh loop:
1. ``ingest`` - synthesize a new scene against the previous one, then rebuild
   simulation state from the previous simulation state (positions persist)
2. ``tick`` - advance the simulation by the frame's elapsed milliseconds
3. ``rendered_agents`` - hand rounded positions to the display layer

Callers serialize calls themselves; nothing here is thread-safe.
"""

from datetime import datetime
from typing import Callable, List, Optional

from .activity import is_blocked_status
from .config import Config
from .environment import render_ascii_floor, round_position
from .logging_utils import log_deterministic, log_info, log_ingest, log_success
from .scene import SceneSynthesizer, refresh_sync_status
from .schemas import RenderedAgent, SceneSnapshot, SceneSource, TilePoint, WorkspaceSnapshot
from .simulation import SimulationEngine, SimulationState

SceneListener = Callable[[Optional[SceneSnapshot], SceneSnapshot], None]


class OfficeOrchestrator:
    """
    Drives scene synthesis and movement simulation for one office view.

    All collaborators are injected; defaults use the built-in floor plan.
    """

    def __init__(
        self,
        synthesizer: Optional[SceneSynthesizer] = None,
        engine: Optional[SimulationEngine] = None,
        *,
        debug: Optional[bool] = None,
        verbose: bool = True,
        scene_listeners: Optional[List[SceneListener]] = None,
    ):
        """Initialize the orchestrator.

        Args:
            synthesizer: Scene synthesizer (defaults to one built from Config)
            engine: Simulation engine; defaults to one on the synthesizer's grid
                so both agree on walls
            debug: Print an ASCII floor after each ingest (defaults to
                Config.DEBUG_SCENE)
            verbose: Print one summary line per ingest
            scene_listeners: Callables invoked after each ingest with
                (previous_scene, new_scene)
        """
        self.synthesizer = synthesizer or SceneSynthesizer(**Config.synthesizer_options())
        self.engine = engine or SimulationEngine(self.synthesizer.grid)
        self.debug = Config.DEBUG_SCENE if debug is None else debug
        self.verbose = verbose
        self.scene_listeners = scene_listeners or []

        self._scene: Optional[SceneSnapshot] = None
        self._simulation: Optional[SimulationState] = None

    @property
    def scene(self) -> Optional[SceneSnapshot]:
        return self._scene

    @property
    def simulation(self) -> Optional[SimulationState]:
        return self._simulation

    def ingest(
        self,
        workspace: WorkspaceSnapshot,
        source: SceneSource = "ingest",
        now: Optional[datetime] = None,
    ) -> SceneSnapshot:
        """Synthesize a scene for ``workspace`` and re-seed the simulation."""

        previous = self._scene
        scene = self.synthesizer.synthesize(workspace, source, self._with_rendered_positions(previous), now=now)
        self._simulation = self.engine.create_state(scene, self._simulation)
        self._scene = scene

        if self.verbose:
            self._log_ingest(previous, scene)
        if self.debug:
            print(self.floor_ascii())

        for listener in self.scene_listeners:
            listener(previous, scene)
        return scene

    def tick(self, delta_ms: float) -> List[RenderedAgent]:
        """Advance the simulation; a no-op before the first ingest."""

        if self._simulation is None:
            return []
        self._simulation = self.engine.step(self._simulation, delta_ms)
        return self.engine.render(self._simulation)

    def rendered_agents(self) -> List[RenderedAgent]:
        if self._simulation is None:
            return []
        return self.engine.render(self._simulation)

    def refresh(self, now: Optional[datetime] = None) -> Optional[SceneSnapshot]:
        """Recompute sync freshness of the current scene for ``now``."""

        if self._scene is None:
            return None
        self._scene = refresh_sync_status(self._scene, now)
        return self._scene

    def floor_ascii(self) -> str:
        """ASCII floor with each agent drawn as the first letter of its callsign."""

        markers = {}
        if self._simulation is not None:
            for agent in self._simulation.agents.values():
                markers[round_position(*agent.position)] = agent.scene.identity.callsign
        return render_ascii_floor(self.synthesizer.grid, self.synthesizer.layout, agents=markers)

    def _with_rendered_positions(self, scene: Optional[SceneSnapshot]) -> Optional[SceneSnapshot]:
        """Copy of ``scene`` whose agent tiles and facing are where the simulation drew them."""

        if scene is None or self._simulation is None:
            return scene
        agents = []
        for state in scene.agents:
            simulated = self._simulation.agent(state.agent_id)
            if simulated is None:
                agents.append(state)
                continue
            agents.append(
                state.model_copy(
                    update={
                        "tile": TilePoint.from_tuple(round_position(*simulated.position)),
                        "direction": simulated.direction,
                        "is_moving": simulated.is_moving,
                    }
                )
            )
        return scene.model_copy(update={"agents": agents})

    def _log_ingest(self, previous: Optional[SceneSnapshot], scene: SceneSnapshot) -> None:
        blocked = sum(1 for task in scene.tasks if is_blocked_status(task.status))
        log_ingest(
            f"{scene.generated_at} ({scene.source}, {scene.sync_status}) "
            f"agents={len(scene.agents)} tasks={len(scene.tasks)} "
            f"blocked={blocked} events={len(scene.events)}"
        )

        if previous is None:
            log_success("Office scene initialized")
            return

        current_ids = {agent.agent_id for agent in scene.agents}
        for agent in previous.agents:
            if agent.agent_id not in current_ids:
                log_info(f"{agent.display_name} ({agent.agent_id}) left the office")

        moving = sum(1 for agent in scene.agents if agent.is_moving)
        if moving:
            log_deterministic(f"{moving} agents heading to new zones")
